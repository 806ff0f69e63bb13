"""Pytest configuration for tests."""

import os
from pathlib import Path

import asyncpg
import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Load .env.test file if it exists
env_test_path = Path(__file__).parent.parent / ".env.test"
if env_test_path.exists():
    load_dotenv(env_test_path)

# Set test environment variables before any imports (only if not already set)
os.environ.setdefault("DATABASE_URL", "postgresql://localhost:5432/hiring_pipeline_test")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("JOB_ORDER_WEBHOOK_URL", "")
os.environ.setdefault("MUTATION_RATE_LIMIT", "10000/minute")

SCHEMA_PATH = Path(__file__).parent.parent / "database" / "schema.sql"


@pytest_asyncio.fixture
async def db_pool():
    """Create a test database connection pool and initialize app's DB.

    Applies database/schema.sql (idempotent). Skips when PostgreSQL is not
    reachable at DATABASE_URL.
    """
    from app.core import database as db_module
    from app.core.config import settings

    try:
        pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=1,
            max_size=5,
            init=db_module._init_connection,
        )
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    async with pool.acquire() as conn:
        await conn.execute(SCHEMA_PATH.read_text())

    # Initialize the app's database singleton so service functions work
    db_module.db.pool = pool

    yield pool

    # Clean up
    db_module.db.pool = None
    await pool.close()


@pytest_asyncio.fixture
async def clean_db(db_pool):
    """Clean database before each test."""
    async with db_pool.acquire() as conn:
        # Reverse dependency order
        await conn.execute("DELETE FROM activity_log")
        await conn.execute("DELETE FROM pooled_candidates")
        await conn.execute("DELETE FROM candidate_timeline")
        await conn.execute("DELETE FROM candidate_job_applications")
        await conn.execute("DELETE FROM candidates")
        await conn.execute("DELETE FROM job_orders")

    yield db_pool


@pytest_asyncio.fixture
async def sample_job_order(clean_db):
    """An open job order."""
    from tests.fixtures.factories import create_test_job_order

    return await create_test_job_order(clean_db, title="Backend Engineer", jo_number="JO-001")


@pytest_asyncio.fixture
async def sample_candidate(clean_db):
    """A candidate with contact details."""
    from tests.fixtures.factories import create_test_candidate

    return await create_test_candidate(clean_db, full_name="Ada Lovelace")


@pytest_asyncio.fixture
async def sample_application(clean_db, sample_job_order, sample_candidate):
    """An application in tech_interview with match_score 87."""
    from tests.fixtures.factories import create_test_application

    return await create_test_application(
        clean_db,
        candidate_id=sample_candidate["id"],
        job_order_id=sample_job_order["id"],
        pipeline_status="tech_interview",
        match_score=87,
        employment_type="full_time",
        remarks="Strong systems background",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "e2e: marks tests as end-to-end HTTP tests (slower)")
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast)")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (medium speed)"
    )
