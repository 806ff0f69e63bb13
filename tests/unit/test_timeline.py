"""Tests for the timeline read side (app/services/timeline.py)."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.services import timeline


@pytest.mark.asyncio
async def test_list_timeline_filters():
    """Filters are combined with AND, newest first."""
    application_id, candidate_id = uuid4(), uuid4()

    with patch("app.services.timeline.db") as mock_db:
        mock_db.fetch = AsyncMock(return_value=[])

        await timeline.list_timeline(application_id=application_id, candidate_id=candidate_id)

    query, *params = mock_db.fetch.call_args.args
    assert "application_id = $1 AND candidate_id = $2" in query
    assert "ORDER BY changed_date DESC" in query
    assert params == [application_id, candidate_id]


@pytest.mark.asyncio
async def test_list_timeline_unfiltered():
    """No filters, no WHERE clause."""
    with patch("app.services.timeline.db") as mock_db:
        mock_db.fetch = AsyncMock(return_value=[])

        await timeline.list_timeline()

    assert "WHERE" not in mock_db.fetch.call_args.args[0]


@pytest.mark.asyncio
async def test_list_activity_clamps_paging():
    """limit is clamped to the page maximum and offset to zero."""
    with patch("app.services.timeline.db") as mock_db:
        mock_db.fetch = AsyncMock(return_value=[])

        await timeline.list_activity(activity_type="pool_candidate", limit=10_000, offset=-5)

    query, *params = mock_db.fetch.call_args.args
    assert "activity_type = $1" in query
    assert "LIMIT $2 OFFSET $3" in query
    assert params == ["pool_candidate", timeline.MAX_ACTIVITY_PAGE, 0]
