"""E2E test fixtures for HTTP testing."""

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.main import app


@pytest_asyncio.fixture
async def http_client(clean_db):
    """HTTP client for testing actual FastAPI app.

    Uses the clean_db fixture to ensure database is clean for each test.
    The app's lifespan is not run; background tasks are drained explicitly
    by tests that depend on them.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def mock_job_order_webhook():
    """Capture job order notifications instead of sending them."""
    with patch(
        "app.services.job_orders.job_order_webhook.notify", new_callable=AsyncMock
    ) as mock_notify:
        mock_notify.return_value = True
        yield mock_notify
