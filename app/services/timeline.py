"""Read side for candidate timelines and the activity log."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from app.core.database import db
from app.types.database import TimelineEntryRecordTD

MAX_ACTIVITY_PAGE = 200


async def list_timeline(
    application_id: str | UUID | None = None,
    candidate_id: str | UUID | None = None,
) -> list[TimelineEntryRecordTD]:
    """Timeline entries, newest first, optionally filtered."""
    conditions: list[str] = []
    params: list[Any] = []

    if application_id:
        params.append(application_id)
        conditions.append(f"application_id = ${len(params)}")
    if candidate_id:
        params.append(candidate_id)
        conditions.append(f"candidate_id = ${len(params)}")

    where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    rows = await db.fetch(
        f"""
        SELECT *
        FROM candidate_timeline
        {where_clause}
        ORDER BY changed_date DESC
    """,
        *params,
    )

    return [dict(r) for r in rows]  # type: ignore[misc]


async def list_activity(
    entity_type: str | None = None,
    activity_type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """
    Activity log entries, newest first.

    limit is clamped to [1, MAX_ACTIVITY_PAGE]; offset to >= 0.
    """
    conditions: list[str] = []
    params: list[Any] = []

    if entity_type:
        params.append(entity_type)
        conditions.append(f"entity_type = ${len(params)}")
    if activity_type:
        params.append(activity_type)
        conditions.append(f"activity_type = ${len(params)}")

    where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    params.append(max(1, min(limit, MAX_ACTIVITY_PAGE)))
    limit_param = len(params)
    params.append(max(0, offset))
    offset_param = len(params)

    rows = await db.fetch(
        f"""
        SELECT *
        FROM activity_log
        {where_clause}
        ORDER BY action_date DESC
        LIMIT ${limit_param} OFFSET ${offset_param}
    """,
        *params,
    )

    return [dict(r) for r in rows]
