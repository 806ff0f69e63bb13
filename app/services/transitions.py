"""Pipeline status transitions and timeline journaling."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any
from uuid import UUID

import asyncpg
from structlog import get_logger

from app.core.database import db
from app.core.errors import (
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
    service_boundary,
)
from app.models.pipeline import PipelineStatus
from app.types.database import ApplicationRecordTD

logger = get_logger()

SECONDS_PER_DAY = 86400


def parse_pipeline_status(value: str) -> PipelineStatus:
    """
    Coerce a raw value into the closed status set.

    Raises:
        ValidationError: If value is not a pipeline status
    """
    try:
        return PipelineStatus(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid pipeline status: {value}. "
            f"Must be one of: {', '.join(s.value for s in PipelineStatus)}",
            context={"pipeline_status": value},
        ) from e


def compute_duration_days(since: datetime | None, now: datetime) -> int | None:
    """
    Whole days spent in the previous state.

    Floored, clamped to zero. None when there is no reference point.
    """
    if since is None:
        return None
    seconds = (now - since).total_seconds()
    return max(0, math.floor(seconds / SECONDS_PER_DAY))


async def lock_application(
    conn: asyncpg.Connection, application_id: str | UUID
) -> ApplicationRecordTD:
    """
    Fetch an application row with FOR UPDATE.

    Blocks until any concurrent transaction holding the row finishes, so the
    caller always sees committed current state.

    Raises:
        NotFoundError: If the application does not exist
    """
    row = await conn.fetchrow(
        """
        SELECT *
        FROM candidate_job_applications
        WHERE id = $1
        FOR UPDATE
    """,
        application_id,
    )

    if not row:
        raise NotFoundError(
            "Application not found", context={"application_id": str(application_id)}
        )

    return dict(row)  # type: ignore[return-value]


async def duration_since_last_change(
    conn: asyncpg.Connection,
    application_id: str | UUID,
    applied_date: datetime | None,
) -> int | None:
    """
    Days since the application's latest timeline entry, else since applied_date.

    Measured against the transaction's NOW(), the same clock that stamps
    the timeline entry about to be written.
    """
    timing = await conn.fetchrow(
        """
        SELECT
            NOW() AS now,
            (SELECT changed_date
             FROM candidate_timeline
             WHERE application_id = $1
             ORDER BY changed_date DESC
             LIMIT 1) AS last_changed_date
    """,
        application_id,
    )

    since = timing["last_changed_date"] or applied_date
    return compute_duration_days(since, timing["now"])


async def append_timeline_entry(
    conn: asyncpg.Connection,
    application_id: str | UUID,
    candidate_id: str | UUID,
    from_status: str | None,
    to_status: str,
    duration_days: int | None = None,
    notes: str | None = None,
    changed_by: str | None = None,
) -> None:
    """Insert an immutable timeline row. changed_date defaults to now()."""
    await conn.execute(
        """
        INSERT INTO candidate_timeline
        (application_id, candidate_id, from_status, to_status, duration_days, notes, changed_by)
        VALUES ($1, $2, $3, $4, $5, $6, $7)
    """,
        application_id,
        candidate_id,
        from_status,
        to_status,
        duration_days,
        notes,
        changed_by,
    )


async def apply_transition(
    conn: asyncpg.Connection,
    application: ApplicationRecordTD,
    new_status: PipelineStatus,
    *,
    actor: str | None = None,
    notes: str | None = None,
) -> ApplicationRecordTD:
    """
    Move a locked application to new_status inside the caller's transaction.

    1. Update pipeline_status, status_changed_date, updated_at
    2. Compute duration_days from the latest timeline entry, else applied_date
    3. Append the timeline entry
    4. Bump the job order's hired_count when hiring

    Args:
        conn: Connection with an open transaction
        application: Row previously returned by lock_application
        new_status: Target status (must differ from the current one)
        actor: Name recorded as changed_by
        notes: Timeline note

    Returns:
        Updated application with a non-persisted duration_days field
    """
    from_status = application["pipeline_status"]
    application_id = application["id"]

    updated = await conn.fetchrow(
        """
        UPDATE candidate_job_applications
        SET pipeline_status = $1, status_changed_date = NOW(), updated_at = NOW()
        WHERE id = $2
        RETURNING *
    """,
        new_status.value,
        application_id,
    )

    duration_days = await duration_since_last_change(
        conn, application_id, application.get("applied_date")
    )

    await append_timeline_entry(
        conn,
        application_id,
        application["candidate_id"],
        from_status,
        new_status.value,
        duration_days=duration_days,
        notes=notes,
        changed_by=actor,
    )

    if new_status is PipelineStatus.HIRED:
        await conn.execute(
            """
            UPDATE job_orders
            SET hired_count = hired_count + 1, updated_at = NOW()
            WHERE id = $1
        """,
            application["job_order_id"],
        )

    result: dict[str, Any] = dict(updated)
    result["duration_days"] = duration_days

    logger.info(
        "application_transitioned",
        application_id=str(application_id),
        from_status=from_status,
        to_status=new_status.value,
        duration_days=duration_days,
        actor=actor,
    )

    return result  # type: ignore[return-value]


async def _transition_locked(
    conn: asyncpg.Connection,
    application_id: str | UUID,
    new_status: PipelineStatus,
    actor: str | None,
    notes: str | None,
    allow_pooled: bool,
) -> ApplicationRecordTD:
    application = await lock_application(conn, application_id)

    if not allow_pooled and PipelineStatus.POOLED in (
        application["pipeline_status"],
        new_status,
    ):
        raise InvalidStateTransitionError(
            "Pooled applications move only through pooling and activation",
            context={
                "application_id": str(application_id),
                "from_status": application["pipeline_status"],
                "to_status": new_status.value,
            },
        )

    if application["pipeline_status"] == new_status.value:
        logger.info(
            "application_transition_noop",
            application_id=str(application_id),
            status=new_status.value,
        )
        application["duration_days"] = None
        return application

    if PipelineStatus(application["pipeline_status"]).is_terminal:
        raise InvalidStateTransitionError(
            f"Application is {application['pipeline_status']}; terminal statuses are final",
            context={
                "application_id": str(application_id),
                "from_status": application["pipeline_status"],
                "to_status": new_status.value,
            },
        )

    return await apply_transition(conn, application, new_status, actor=actor, notes=notes)


@service_boundary
async def transition_application(
    application_id: str | UUID,
    new_status: str,
    actor: str | None = None,
    notes: str | None = None,
    conn: asyncpg.Connection | None = None,
    allow_pooled: bool = True,
) -> ApplicationRecordTD:
    """
    Move an application to a new pipeline status and journal it.

    A transition to the current status is a successful no-op with no writes.
    When conn is given the work joins the caller's transaction; otherwise it
    runs in its own transaction, so the status update and timeline entry
    land together or not at all.

    Args:
        application_id: Application UUID
        new_status: Target pipeline status
        actor: Name recorded on the timeline entry
        notes: Timeline note
        conn: Optional connection with an open transaction
        allow_pooled: When False, moves into or out of 'pooled' are rejected

    Returns:
        Updated application annotated with duration_days

    Raises:
        ValidationError: If new_status is not a pipeline status
        NotFoundError: If the application does not exist
        InvalidStateTransitionError: If the application is hired or rejected,
            or allow_pooled is False and the move touches 'pooled'
    """
    status = parse_pipeline_status(new_status)

    if conn is not None:
        return await _transition_locked(conn, application_id, status, actor, notes, allow_pooled)

    async with db.transaction() as tx:
        return await _transition_locked(tx, application_id, status, actor, notes, allow_pooled)
