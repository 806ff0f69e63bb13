"""Activity log sink for audit entries."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import asyncpg
from structlog import get_logger

from app.core.database import db

logger = get_logger()

INSERT_ACTIVITY_SQL = """
    INSERT INTO activity_log
    (activity_type, entity_type, entity_id, performed_by_name, action_date, details)
    VALUES ($1, $2, $3, $4, NOW(), $5)
"""


async def log_activity(
    activity_type: str,
    entity_type: str,
    entity_id: str | UUID | None,
    performed_by_name: str | None,
    details: dict[str, Any],
    conn: asyncpg.Connection | None = None,
) -> bool:
    """
    Record an activity log entry. Best-effort: failures are logged, never raised.

    When conn carries an open transaction the insert runs inside a savepoint,
    so a failed audit write rolls back alone and the caller's transaction
    stays usable.

    Args:
        activity_type: e.g. "pool_candidate", "activate_from_pool"
        entity_type: e.g. "application", "job_order"
        entity_id: UUID of the entity the entry describes
        performed_by_name: Actor name ("System" for automated actions)
        details: JSON-serializable context
        conn: Optional connection with an open transaction

    Returns:
        True if the entry was written
    """
    try:
        if conn is not None:
            async with conn.transaction():
                await conn.execute(
                    INSERT_ACTIVITY_SQL,
                    activity_type,
                    entity_type,
                    entity_id,
                    performed_by_name,
                    details,
                )
        else:
            await db.execute(
                INSERT_ACTIVITY_SQL,
                activity_type,
                entity_type,
                entity_id,
                performed_by_name,
                details,
            )
    except Exception as e:
        logger.warning(
            "activity_log_write_failed",
            activity_type=activity_type,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id else None,
            error=str(e),
        )
        return False

    logger.debug(
        "activity_logged",
        activity_type=activity_type,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id else None,
    )
    return True
