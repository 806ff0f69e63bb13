"""Job order status controller and external notifications."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from structlog import get_logger

from app.clients.job_order_webhook import job_order_webhook
from app.core.database import db
from app.core.errors import NotFoundError, ValidationError, service_boundary
from app.core.tasks import fire_and_forget
from app.models.pipeline import JobOrderStatus, NotificationAction
from app.services.pooling import bulk_pool_job_order
from app.types.database import JobOrderRecordTD

logger = get_logger()


def parse_job_order_status(value: str) -> JobOrderStatus:
    """
    Coerce a raw value into the closed job order status set.

    Raises:
        ValidationError: If value is not a job order status
    """
    try:
        return JobOrderStatus(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(s.value for s in JobOrderStatus)}",
            context={"status": value},
        ) from e


def classify_notification_action(
    old_status: JobOrderStatus | str, new_status: JobOrderStatus | str
) -> NotificationAction:
    """
    Decide which webhook action a status change produces.

    Leaving the active set (open/on_hold/pooling -> closed/archived) removes
    the job order downstream; every other change is an update.
    """
    old = JobOrderStatus(old_status)
    new = JobOrderStatus(new_status)

    if old.is_active and not new.is_active:
        return NotificationAction.DELETE
    return NotificationAction.UPDATE


async def _run_bulk_pool(job_order_id: str | UUID) -> None:
    try:
        await bulk_pool_job_order(job_order_id)
    except Exception as e:
        logger.error(
            "job_order_bulk_pool_failed",
            job_order_id=str(job_order_id),
            error=str(e),
            error_type=type(e).__name__,
        )


@service_boundary
async def set_job_order_status(
    job_order_id: str | UUID, new_status: str
) -> JobOrderRecordTD:
    """
    Change a job order's status and fan out the side effects.

    After the update commits:
    - the job order webhook is notified (fire-and-forget)
    - on 'pooling', every in-flight application is pooled (fire-and-forget)

    Neither side effect can fail the status change.

    Args:
        job_order_id: Job order UUID
        new_status: Target job order status

    Returns:
        Updated job order

    Raises:
        ValidationError: If new_status is not a job order status
        NotFoundError: If the job order does not exist
    """
    status = parse_job_order_status(new_status)

    old_status = await db.fetchval("SELECT status FROM job_orders WHERE id = $1", job_order_id)
    if old_status is None:
        raise NotFoundError("Job order not found", context={"job_order_id": str(job_order_id)})

    row = await db.fetchrow(
        """
        UPDATE job_orders
        SET status = $1, updated_at = NOW()
        WHERE id = $2
        RETURNING *
    """,
        status.value,
        job_order_id,
    )
    if not row:
        raise NotFoundError("Job order not found", context={"job_order_id": str(job_order_id)})

    job_order: dict[str, Any] = dict(row)
    action = classify_notification_action(old_status, status)

    logger.info(
        "job_order_status_changed",
        job_order_id=str(job_order_id),
        from_status=old_status,
        to_status=status.value,
        notification_action=action.value,
    )

    fire_and_forget(
        job_order_webhook.notify(action.value, job_order),
        name=f"job_order_notify:{job_order_id}",
    )

    if status is JobOrderStatus.POOLING:
        fire_and_forget(
            _run_bulk_pool(job_order_id),
            name=f"job_order_bulk_pool:{job_order_id}",
        )

    return job_order  # type: ignore[return-value]


async def get_job_order(job_order_id: str | UUID) -> JobOrderRecordTD | None:
    """Fetch a job order by ID, or None."""
    row = await db.fetchrow("SELECT * FROM job_orders WHERE id = $1", job_order_id)
    return dict(row) if row else None  # type: ignore[return-value]


async def list_pooling_job_orders() -> list[dict[str, Any]]:
    """
    Job orders in 'pooling' or with any pool records, with pool counts.

    Returns:
        Rows with available_pool_count and total_pool_count, newest first
    """
    rows = await db.fetch(
        """
        SELECT
            j.*,
            COUNT(pc.id) FILTER (WHERE pc.disposition = 'available') AS available_pool_count,
            COUNT(pc.id) AS total_pool_count
        FROM job_orders j
        LEFT JOIN pooled_candidates pc ON pc.original_job_order_id = j.id
        GROUP BY j.id
        HAVING j.status = 'pooling' OR COUNT(pc.id) > 0
        ORDER BY j.created_at DESC
    """
    )

    return [dict(r) for r in rows]
