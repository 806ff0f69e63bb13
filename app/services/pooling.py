"""Talent pooling: pool, bulk-pool, activate, and curate pooled candidates."""

from __future__ import annotations

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
from app.models.pipeline import Disposition, PipelineStatus
from app.services.activity_log import log_activity
from app.services.transitions import (
    append_timeline_entry,
    apply_transition,
    duration_since_last_change,
    lock_application,
    parse_pipeline_status,
)
from app.types.database import ApplicationRecordTD, PooledCandidateRecordTD

logger = get_logger()

AUTO_POOL_REASON = "JO moved to pooling"
AUTO_POOL_ACTOR = "System"
AUTO_POOL_NOTE = "Auto-pooled: JO status changed to pooling"
ACTIVATION_NOTE = "Re-activated from talent pool"


def parse_disposition(value: str) -> Disposition:
    """
    Coerce a raw value into the closed disposition set.

    Raises:
        ValidationError: If value is not a disposition
    """
    try:
        return Disposition(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid disposition. Must be one of: {', '.join(d.value for d in Disposition)}",
            context={"disposition": value},
        ) from e


async def _insert_pool_record(
    conn: asyncpg.Connection,
    application: ApplicationRecordTD,
    from_status: str,
    pool_reason: str | None,
    pool_notes: str | None,
    pooled_by: str | None,
    idempotent: bool = False,
) -> PooledCandidateRecordTD | None:
    """
    Insert the lineage row for a pooled application.

    With idempotent=True a conflict on original_application_id is ignored
    and None is returned.
    """
    conflict_clause = "ON CONFLICT (original_application_id) DO NOTHING" if idempotent else ""

    row = await conn.fetchrow(
        f"""
        INSERT INTO pooled_candidates
        (candidate_id, original_application_id, original_job_order_id,
         pooled_from_status, pool_reason, pool_notes, pooled_by)
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        {conflict_clause}
        RETURNING *
    """,
        application["candidate_id"],
        application["id"],
        application["job_order_id"],
        from_status,
        pool_reason,
        pool_notes,
        pooled_by,
    )

    return dict(row) if row else None  # type: ignore[return-value]


async def _existing_pool_record(
    conn: asyncpg.Connection, application_id: str | UUID
) -> UUID | None:
    """ID of the lineage row already holding this application, if any."""
    return await conn.fetchval(
        "SELECT id FROM pooled_candidates WHERE original_application_id = $1",
        application_id,
    )


@service_boundary
async def pool_application(
    application_id: str | UUID,
    pool_reason: str | None = None,
    pool_notes: str | None = None,
    pooled_by: str | None = None,
) -> PooledCandidateRecordTD:
    """
    Move one application into the talent pool.

    All-or-nothing in a single transaction:
    1. Lock and fetch the application
    2. Set pipeline_status = 'pooled' and append the timeline entry
    3. Insert the pooled_candidates lineage row (disposition 'available')
    4. Record a pool_candidate activity entry (best-effort, savepointed)

    Args:
        application_id: Application UUID
        pool_reason: Why the candidate is being pooled
        pool_notes: Free-form notes
        pooled_by: Actor name

    Returns:
        The new pooled candidate record

    Raises:
        NotFoundError: If the application does not exist
        InvalidStateTransitionError: If the application is already pooled, or
            already has a lineage row from an earlier pool and re-activation
    """
    async with db.transaction() as conn:
        application = await lock_application(conn, application_id)
        from_status = application["pipeline_status"]

        if from_status == PipelineStatus.POOLED:
            raise InvalidStateTransitionError(
                "Application is already pooled",
                context={"application_id": str(application_id)},
            )

        prior_pool_id = await _existing_pool_record(conn, application_id)
        if prior_pool_id:
            raise InvalidStateTransitionError(
                "Application was pooled and re-activated before; it cannot be pooled again",
                context={
                    "application_id": str(application_id),
                    "pooled_id": str(prior_pool_id),
                },
            )

        await apply_transition(
            conn,
            application,
            PipelineStatus.POOLED,
            actor=pooled_by,
            notes=f"Pooled: {pool_reason or 'No reason'}",
        )

        pooled = await _insert_pool_record(
            conn, application, from_status, pool_reason, pool_notes, pooled_by
        )

        await log_activity(
            "pool_candidate",
            "application",
            application["id"],
            pooled_by or AUTO_POOL_ACTOR,
            {
                "candidate_id": str(application["candidate_id"]),
                "job_order_id": str(application["job_order_id"]),
                "from_status": from_status,
                "pool_reason": pool_reason,
                "pool_notes": pool_notes,
            },
            conn=conn,
        )

    logger.info(
        "application_pooled",
        application_id=str(application_id),
        pooled_id=str(pooled["id"]),  # type: ignore[index]
        from_status=from_status,
    )

    return pooled  # type: ignore[return-value]


async def _auto_pool_one(application_id: UUID, job_order_id: str | UUID) -> bool:
    """
    Pool one application of a job order that moved to pooling.

    Runs in its own transaction. Returns False when the application is no
    longer eligible by the time its lock is acquired, or when it already
    owns a lineage row (pooled once, then re-activated onto the same job order).
    """
    async with db.transaction() as conn:
        application = await lock_application(conn, application_id)
        from_status = application["pipeline_status"]

        if not PipelineStatus(from_status).is_poolable:
            logger.info(
                "auto_pool_skipped",
                application_id=str(application_id),
                status=from_status,
            )
            return False

        prior_pool_id = await _existing_pool_record(conn, application_id)
        if prior_pool_id:
            logger.info(
                "auto_pool_skipped",
                application_id=str(application_id),
                status=from_status,
                pooled_id=str(prior_pool_id),
            )
            return False

        await apply_transition(
            conn,
            application,
            PipelineStatus.POOLED,
            actor=AUTO_POOL_ACTOR,
            notes=AUTO_POOL_NOTE,
        )

        pooled = await _insert_pool_record(
            conn,
            application,
            from_status,
            AUTO_POOL_REASON,
            None,
            AUTO_POOL_ACTOR,
            idempotent=True,
        )

        await log_activity(
            "pool_candidate",
            "application",
            application_id,
            AUTO_POOL_ACTOR,
            {
                "candidate_id": str(application["candidate_id"]),
                "job_order_id": str(job_order_id),
                "from_status": from_status,
                "pool_reason": AUTO_POOL_REASON,
                "auto": True,
                "pool_record_created": pooled is not None,
            },
            conn=conn,
        )

    return True


@service_boundary
async def bulk_pool_job_order(job_order_id: str | UUID) -> dict[str, Any]:
    """
    Pool every in-flight application of a job order.

    Selects applications not in {pooled, hired, rejected} and pools each in
    its own transaction. A failure on one application is logged and counted;
    it never stops the others and is never raised. Pool records are inserted
    with ON CONFLICT DO NOTHING, so re-entering pooling is safe.

    Args:
        job_order_id: Job order UUID

    Returns:
        {"job_order_id", "eligible", "pooled", "skipped", "failed"}
    """
    rows = await db.fetch(
        """
        SELECT id
        FROM candidate_job_applications
        WHERE job_order_id = $1
          AND pipeline_status = ANY($2::text[])
        ORDER BY created_at
    """,
        job_order_id,
        [s.value for s in PipelineStatus.poolable()],
    )

    pooled = skipped = failed = 0

    for row in rows:
        application_id = row["id"]
        try:
            if await _auto_pool_one(application_id, job_order_id):
                pooled += 1
            else:
                skipped += 1
        except Exception as e:
            failed += 1
            logger.error(
                "auto_pool_application_failed",
                job_order_id=str(job_order_id),
                application_id=str(application_id),
                error=str(e),
                error_type=type(e).__name__,
            )

    summary = {
        "job_order_id": str(job_order_id),
        "eligible": len(rows),
        "pooled": pooled,
        "skipped": skipped,
        "failed": failed,
    }

    logger.info("job_order_bulk_pooled", **summary)

    return summary


@service_boundary
async def activate_pooled_candidate(
    pooled_id: str | UUID,
    target_job_order_id: str | UUID,
    target_status: str = PipelineStatus.HR_INTERVIEW.value,
    activated_by: str | None = None,
) -> ApplicationRecordTD:
    """
    Re-activate a pooled candidate onto a (possibly different) job order.

    In one transaction:
    1. Lock the pool record; it must have disposition 'available'
    2. Reject if the candidate already has a non-pooled application there
    3. Carry match_score, employment_type, remarks over from the original
    4. Upsert the application for (candidate, target job order)
    5. Mark the pool record activated with lineage to the new application
    6. Append a pooled -> target_status timeline entry on the new application
    7. Record an activate_from_pool activity entry

    The original pooled application is not modified unless it is itself
    the (candidate, target job order) row.

    Args:
        pooled_id: Pooled candidate record UUID
        target_job_order_id: Job order to activate onto
        target_status: Initial pipeline status of the new application
        activated_by: Actor name

    Returns:
        The created or updated application

    Raises:
        ValidationError: If target_status is pooled or terminal (hired, rejected)
        NotFoundError: If the pool record or target job order does not exist
        InvalidStateTransitionError: If the disposition is not 'available' or
            an active application already exists
    """
    status = parse_pipeline_status(target_status)
    if not status.is_poolable:
        raise ValidationError(
            "Target pipeline status must be one of: "
            f"{', '.join(s.value for s in PipelineStatus.poolable())}",
            context={"target_status": target_status},
        )

    async with db.transaction() as conn:
        pooled = await conn.fetchrow(
            """
            SELECT *
            FROM pooled_candidates
            WHERE id = $1
            FOR UPDATE
        """,
            pooled_id,
        )

        if not pooled:
            raise NotFoundError("Pooled record not found", context={"pooled_id": str(pooled_id)})

        if pooled["disposition"] != Disposition.AVAILABLE:
            raise InvalidStateTransitionError(
                f"Cannot activate: disposition is '{pooled['disposition']}'",
                context={"pooled_id": str(pooled_id), "disposition": pooled["disposition"]},
            )

        job_order_exists = await conn.fetchval(
            "SELECT EXISTS (SELECT 1 FROM job_orders WHERE id = $1)",
            target_job_order_id,
        )
        if not job_order_exists:
            raise NotFoundError(
                "Target job order not found",
                context={"job_order_id": str(target_job_order_id)},
            )

        existing_active = await conn.fetchval(
            """
            SELECT id
            FROM candidate_job_applications
            WHERE candidate_id = $1
              AND job_order_id = $2
              AND pipeline_status <> 'pooled'
            LIMIT 1
        """,
            pooled["candidate_id"],
            target_job_order_id,
        )
        if existing_active:
            raise InvalidStateTransitionError(
                "Candidate already has an active application for this job order",
                context={
                    "candidate_id": str(pooled["candidate_id"]),
                    "application_id": str(existing_active),
                },
            )

        original = await conn.fetchrow(
            """
            SELECT match_score, employment_type, remarks
            FROM candidate_job_applications
            WHERE id = $1
        """,
            pooled["original_application_id"],
        )
        carry_over: dict[str, Any] = dict(original) if original else {}

        new_app = await conn.fetchrow(
            """
            INSERT INTO candidate_job_applications
            (candidate_id, job_order_id, pipeline_status, match_score,
             employment_type, remarks, status_changed_date)
            VALUES ($1, $2, $3, $4, $5, $6, NOW())
            ON CONFLICT (candidate_id, job_order_id) DO UPDATE SET
                pipeline_status = EXCLUDED.pipeline_status,
                match_score = COALESCE(candidate_job_applications.match_score,
                                       EXCLUDED.match_score),
                status_changed_date = NOW(),
                updated_at = NOW()
            RETURNING *
        """,
            pooled["candidate_id"],
            target_job_order_id,
            status.value,
            carry_over.get("match_score"),
            carry_over.get("employment_type"),
            carry_over.get("remarks"),
        )

        await conn.execute(
            """
            UPDATE pooled_candidates
            SET disposition = 'activated',
                disposition_changed_at = NOW(),
                new_application_id = $1,
                new_job_order_id = $2,
                updated_at = NOW()
            WHERE id = $3
        """,
            new_app["id"],
            target_job_order_id,
            pooled_id,
        )

        duration_days = await duration_since_last_change(
            conn, new_app["id"], new_app["applied_date"]
        )

        await append_timeline_entry(
            conn,
            new_app["id"],
            pooled["candidate_id"],
            PipelineStatus.POOLED.value,
            status.value,
            duration_days=duration_days,
            notes=ACTIVATION_NOTE,
            changed_by=activated_by,
        )

        await log_activity(
            "activate_from_pool",
            "application",
            new_app["id"],
            activated_by or AUTO_POOL_ACTOR,
            {
                "pooled_record_id": str(pooled_id),
                "original_application_id": str(pooled["original_application_id"]),
                "original_jo_id": str(pooled["original_job_order_id"]),
                "target_jo_id": str(target_job_order_id),
                "target_status": status.value,
            },
            conn=conn,
        )

    result: dict[str, Any] = dict(new_app)
    result["duration_days"] = duration_days

    logger.info(
        "pooled_candidate_activated",
        pooled_id=str(pooled_id),
        new_application_id=str(new_app["id"]),
        target_job_order_id=str(target_job_order_id),
        target_status=status.value,
    )

    return result  # type: ignore[return-value]


@service_boundary
async def set_pooled_disposition(
    pooled_id: str | UUID,
    disposition: str,
    notes: str | None = None,
) -> PooledCandidateRecordTD:
    """
    Set the curated disposition of a pooled record.

    Activated records are terminal: only their notes may change, and only by
    passing disposition 'activated' again. 'activated' cannot be set here on
    any other record. Application and timeline rows are never touched.

    Raises:
        ValidationError: If disposition is not in the enum, or is 'activated'
            on a record that was not activated
        NotFoundError: If the pool record does not exist
        InvalidStateTransitionError: If the record is activated and a
            different disposition was requested
    """
    target = parse_disposition(disposition)

    async with db.transaction() as conn:
        current = await conn.fetchval(
            "SELECT disposition FROM pooled_candidates WHERE id = $1 FOR UPDATE",
            pooled_id,
        )

        if current is None:
            raise NotFoundError("Pooled record not found", context={"pooled_id": str(pooled_id)})

        if current == Disposition.ACTIVATED:
            if target is not Disposition.ACTIVATED:
                raise InvalidStateTransitionError(
                    "Pooled record was activated; only its notes can be changed",
                    context={"pooled_id": str(pooled_id), "requested": target.value},
                )
            row = await conn.fetchrow(
                """
                UPDATE pooled_candidates
                SET disposition_notes = $1, updated_at = NOW()
                WHERE id = $2
                RETURNING *
            """,
                notes,
                pooled_id,
            )
        else:
            if target is Disposition.ACTIVATED:
                raise ValidationError(
                    "Disposition 'activated' is set by activating the pooled candidate",
                    context={"pooled_id": str(pooled_id)},
                )
            row = await conn.fetchrow(
                """
                UPDATE pooled_candidates
                SET disposition = $1,
                    disposition_notes = $2,
                    disposition_changed_at = NOW(),
                    updated_at = NOW()
                WHERE id = $3
                RETURNING *
            """,
                target.value,
                notes,
                pooled_id,
            )

    logger.info(
        "pooled_disposition_updated",
        pooled_id=str(pooled_id),
        from_disposition=current,
        to_disposition=target.value,
    )

    return dict(row)  # type: ignore[return-value]


@service_boundary
async def bulk_set_pooled_disposition(
    ids: list[str] | list[UUID],
    disposition: str,
    notes: str | None = None,
) -> dict[str, Any]:
    """
    Set one disposition on many pooled records.

    Activated records are left as they are.

    Returns:
        {"updated": count, "records": [updated rows]}

    Raises:
        ValidationError: If ids is empty or disposition is not curatable
    """
    if not ids:
        raise ValidationError("ids array is required")

    target = parse_disposition(disposition)
    if target not in Disposition.curatable():
        raise ValidationError(
            "Invalid disposition. Must be one of: "
            f"{', '.join(d.value for d in Disposition.curatable())}",
            context={"disposition": disposition},
        )

    rows = await db.fetch(
        """
        UPDATE pooled_candidates
        SET disposition = $1,
            disposition_notes = $2,
            disposition_changed_at = NOW(),
            updated_at = NOW()
        WHERE id = ANY($3::uuid[])
          AND disposition <> 'activated'
        RETURNING *
    """,
        target.value,
        notes,
        list(ids),
    )

    logger.info(
        "pooled_dispositions_bulk_updated",
        requested=len(ids),
        updated=len(rows),
        disposition=target.value,
    )

    return {"updated": len(rows), "records": [dict(r) for r in rows]}


async def get_pooled_candidate(pooled_id: str | UUID) -> PooledCandidateRecordTD | None:
    """Fetch a pooled record by ID, or None."""
    row = await db.fetchrow("SELECT * FROM pooled_candidates WHERE id = $1", pooled_id)
    return dict(row) if row else None  # type: ignore[return-value]


async def list_pooled_candidates(
    disposition: str | None = None,
    job_order_id: str | UUID | None = None,
    search: str | None = None,
) -> list[dict[str, Any]]:
    """
    List pooled records with candidate and original job order details.

    Args:
        disposition: Filter by disposition
        job_order_id: Filter by original job order
        search: Case-insensitive match on name, email, or current position

    Returns:
        Rows ordered by pooled_at, newest first
    """
    conditions: list[str] = []
    params: list[Any] = []

    if disposition:
        params.append(parse_disposition(disposition).value)
        conditions.append(f"pc.disposition = ${len(params)}")
    if job_order_id:
        params.append(job_order_id)
        conditions.append(f"pc.original_job_order_id = ${len(params)}")
    if search:
        params.append(f"%{search}%")
        n = len(params)
        conditions.append(
            f"(c.full_name ILIKE ${n} OR c.email ILIKE ${n} OR c.current_position ILIKE ${n})"
        )

    where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    rows = await db.fetch(
        f"""
        SELECT
            pc.*,
            c.full_name, c.email, c.phone, c.current_position, c.current_company,
            j.jo_number AS original_jo_number,
            j.title AS original_jo_title,
            j.department_name AS original_department,
            a.match_score,
            a.pipeline_status AS current_app_status
        FROM pooled_candidates pc
        JOIN candidates c ON pc.candidate_id = c.id
        JOIN job_orders j ON pc.original_job_order_id = j.id
        JOIN candidate_job_applications a ON pc.original_application_id = a.id
        {where_clause}
        ORDER BY pc.pooled_at DESC
    """,
        *params,
    )

    logger.info("pooled_candidates_listed", count=len(rows))

    return [dict(r) for r in rows]
