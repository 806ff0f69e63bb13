"""Tests for the transition engine (app/services/transitions.py)."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.core.errors import InvalidStateTransitionError, NotFoundError, ValidationError
from app.models.pipeline import PipelineStatus
from app.services.transitions import (
    apply_transition,
    compute_duration_days,
    duration_since_last_change,
    lock_application,
    parse_pipeline_status,
    transition_application,
)
from tests.fixtures.factories import make_application


class AsyncContextManager:
    """Helper for mocking async context managers."""

    def __init__(self, return_value):
        self.return_value = return_value

    async def __aenter__(self):
        return self.return_value

    async def __aexit__(self, *args):
        return None


def make_conn(application, last_changed=None, now=None):
    """Connection mock that serves lock, update and timing queries."""
    now = now or datetime.now(UTC)
    conn = MagicMock()

    async def fetchrow(query, *args):
        if "FOR UPDATE" in query:
            return application
        if "UPDATE candidate_job_applications" in query:
            return {**application, "pipeline_status": args[0]}
        if "last_changed_date" in query:
            return {"now": now, "last_changed_date": last_changed}
        raise AssertionError(f"unexpected query: {query}")

    conn.fetchrow = AsyncMock(side_effect=fetchrow)
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    return conn


def executed_sql(conn):
    return [c.args[0] for c in conn.execute.call_args_list]


# ============================================
# Pure helpers
# ============================================


def test_compute_duration_days_floors():
    """Partial days are floored."""
    now = datetime(2024, 5, 10, 12, 0, tzinfo=UTC)

    assert compute_duration_days(now - timedelta(days=2, hours=23), now) == 2


def test_compute_duration_days_clamps_negative():
    """Clock skew never produces a negative duration."""
    now = datetime(2024, 5, 10, tzinfo=UTC)

    assert compute_duration_days(now + timedelta(hours=5), now) == 0


def test_compute_duration_days_none_without_reference():
    """No previous entry and no applied_date gives None."""
    assert compute_duration_days(None, datetime.now(UTC)) is None


def test_parse_pipeline_status_rejects_unknown():
    """Unknown values raise ValidationError before any write."""
    with pytest.raises(ValidationError) as exc_info:
        parse_pipeline_status("interviewing")

    assert exc_info.value.code == "VALIDATION_ERROR"
    assert "interviewing" in exc_info.value.message


# ============================================
# Locking and timing
# ============================================


@pytest.mark.asyncio
async def test_lock_application_not_found():
    """Missing application raises NotFoundError."""
    conn = MagicMock()
    conn.fetchrow = AsyncMock(return_value=None)

    with pytest.raises(NotFoundError):
        await lock_application(conn, uuid4())

    assert "FOR UPDATE" in conn.fetchrow.call_args.args[0]


@pytest.mark.asyncio
async def test_duration_uses_last_timeline_entry():
    """The latest timeline entry wins over applied_date."""
    now = datetime.now(UTC)
    application = make_application(applied_days_ago=30)
    conn = make_conn(application, last_changed=now - timedelta(days=4), now=now)

    days = await duration_since_last_change(conn, application["id"], application["applied_date"])

    assert days == 4


@pytest.mark.asyncio
async def test_duration_falls_back_to_applied_date():
    """Without timeline entries the duration is measured from applied_date."""
    now = datetime.now(UTC)
    application = make_application(applied_date=now - timedelta(days=9))
    conn = make_conn(application, last_changed=None, now=now)

    days = await duration_since_last_change(conn, application["id"], application["applied_date"])

    assert days == 9


# ============================================
# apply_transition
# ============================================


@pytest.mark.asyncio
async def test_apply_transition_updates_and_journals():
    """Status update is followed by a timeline entry with duration and actor."""
    application = make_application("hr_interview", applied_days_ago=5)
    conn = make_conn(application)

    result = await apply_transition(
        conn, application, PipelineStatus.TECH_INTERVIEW, actor="Grace", notes="Passed screen"
    )

    assert result["pipeline_status"] == "tech_interview"
    assert result["duration_days"] == 5

    timeline_call = conn.execute.call_args_list[0]
    assert "INSERT INTO candidate_timeline" in timeline_call.args[0]
    assert timeline_call.args[1:] == (
        application["id"],
        application["candidate_id"],
        "hr_interview",
        "tech_interview",
        5,
        "Passed screen",
        "Grace",
    )
    assert not any("hired_count" in sql for sql in executed_sql(conn))


@pytest.mark.asyncio
async def test_apply_transition_to_hired_increments_hired_count():
    """Hiring bumps the owning job order's hired_count in the same transaction."""
    application = make_application("offer")
    conn = make_conn(application)

    await apply_transition(conn, application, PipelineStatus.HIRED)

    hired_calls = [c for c in conn.execute.call_args_list if "hired_count" in c.args[0]]
    assert len(hired_calls) == 1
    assert hired_calls[0].args[1] == application["job_order_id"]


# ============================================
# transition_application
# ============================================


@pytest.mark.asyncio
async def test_transition_same_status_is_noop():
    """Re-applying the current status writes nothing."""
    application = make_application("offer")
    conn = make_conn(application)

    result = await transition_application(application["id"], "offer", conn=conn)

    assert result["pipeline_status"] == "offer"
    assert result["duration_days"] is None
    conn.execute.assert_not_called()
    assert conn.fetchrow.await_count == 1


@pytest.mark.asyncio
async def test_transition_unknown_status_rejected_before_lock():
    """Validation happens before the row is touched."""
    conn = make_conn(make_application())

    with pytest.raises(ValidationError):
        await transition_application(uuid4(), "on_site", conn=conn)

    conn.fetchrow.assert_not_called()


@pytest.mark.asyncio
async def test_transition_out_of_pooled_rejected_when_disallowed():
    """Pooled applications are moved only by pooling and activation."""
    application = make_application("pooled")
    conn = make_conn(application)

    with pytest.raises(InvalidStateTransitionError):
        await transition_application(
            application["id"], "hr_interview", conn=conn, allow_pooled=False
        )

    conn.execute.assert_not_called()


@pytest.mark.asyncio
async def test_transition_opens_own_transaction_without_conn():
    """Standalone calls run inside db.transaction()."""
    application = make_application("hr_interview")
    conn = make_conn(application)

    with patch("app.services.transitions.db") as mock_db:
        mock_db.transaction.return_value = AsyncContextManager(conn)

        result = await transition_application(application["id"], "rejected", actor="HR")

    mock_db.transaction.assert_called_once()
    assert result["pipeline_status"] == "rejected"


@pytest.mark.asyncio
@pytest.mark.parametrize(("current", "target"), [("hired", "offer"), ("rejected", "hr_interview")])
async def test_transition_out_of_terminal_status_rejected(current, target):
    """Hired and rejected are final; nothing is written."""
    application = make_application(current)
    conn = make_conn(application)

    with pytest.raises(InvalidStateTransitionError) as exc_info:
        await transition_application(application["id"], target, conn=conn)

    assert exc_info.value.context["from_status"] == current
    conn.execute.assert_not_called()
    assert conn.fetchrow.await_count == 1


@pytest.mark.asyncio
async def test_rehiring_does_not_bump_hired_count_twice():
    """A hired application re-set to hired is a no-op, not a second hire."""
    application = make_application("hired")
    conn = make_conn(application)

    await transition_application(application["id"], "hired", conn=conn)

    assert not any("hired_count" in sql for sql in executed_sql(conn))
