"""Test fixtures and factories.

The create_test_* helpers insert rows through a pool and return them as
dicts. The make_* helpers build in-memory records for unit tests.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

import asyncpg


async def create_test_job_order(
    pool: asyncpg.Pool,
    title: str = "Software Engineer",
    status: str = "open",
    jo_number: str | None = None,
    department_name: str = "Engineering",
    hired_count: int = 0,
) -> dict[str, Any]:
    """Insert a job order."""
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            INSERT INTO job_orders (jo_number, title, department_name, status, hired_count)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
            """,
            jo_number or f"JO-{uuid4().hex[:6]}",
            title,
            department_name,
            status,
            hired_count,
        )
    return dict(row)


async def create_test_candidate(
    pool: asyncpg.Pool,
    full_name: str = "Test Candidate",
    email: str | None = None,
    current_position: str = "Developer",
) -> dict[str, Any]:
    """Insert a candidate."""
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            INSERT INTO candidates (full_name, email, current_position)
            VALUES ($1, $2, $3)
            RETURNING *
            """,
            full_name,
            email or f"{uuid4().hex[:8]}@example.com",
            current_position,
        )
    return dict(row)


async def create_test_application(
    pool: asyncpg.Pool,
    candidate_id: UUID,
    job_order_id: UUID,
    pipeline_status: str = "hr_interview",
    match_score: float | None = None,
    employment_type: str | None = None,
    remarks: str | None = None,
    applied_days_ago: int = 0,
) -> dict[str, Any]:
    """Insert an application. applied_date is backdated by applied_days_ago."""
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            INSERT INTO candidate_job_applications
            (candidate_id, job_order_id, pipeline_status, match_score,
             employment_type, remarks, applied_date)
            VALUES ($1, $2, $3, $4, $5, $6, NOW() - make_interval(days => $7))
            RETURNING *
            """,
            candidate_id,
            job_order_id,
            pipeline_status,
            Decimal(str(match_score)) if match_score is not None else None,
            employment_type,
            remarks,
            applied_days_ago,
        )
    return dict(row)


async def create_test_timeline_entry(
    pool: asyncpg.Pool,
    application_id: UUID,
    candidate_id: UUID,
    to_status: str,
    from_status: str | None = None,
    days_ago: float = 0,
) -> dict[str, Any]:
    """Insert a timeline entry with changed_date backdated by days_ago."""
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            INSERT INTO candidate_timeline
            (application_id, candidate_id, from_status, to_status, changed_date)
            VALUES ($1, $2, $3, $4, NOW() - make_interval(secs => $5))
            RETURNING *
            """,
            application_id,
            candidate_id,
            from_status,
            to_status,
            float(days_ago * 86400),
        )
    return dict(row)


async def set_pooled_disposition_raw(
    pool: asyncpg.Pool, pooled_id: UUID, disposition: str
) -> None:
    """Force a disposition without going through the service."""
    async with pool.acquire() as conn:
        await conn.execute(
            "UPDATE pooled_candidates SET disposition = $1 WHERE id = $2",
            disposition,
            pooled_id,
        )


def make_application(
    pipeline_status: str = "hr_interview",
    applied_days_ago: int = 3,
    **overrides: Any,
) -> dict[str, Any]:
    """Build an application record as returned by asyncpg."""
    now = datetime.now(UTC)
    record = {
        "id": uuid4(),
        "candidate_id": uuid4(),
        "job_order_id": uuid4(),
        "pipeline_status": pipeline_status,
        "match_score": Decimal("87.00"),
        "employment_type": "full_time",
        "remarks": None,
        "applied_date": now - timedelta(days=applied_days_ago),
        "status_changed_date": None,
        "created_at": now,
        "updated_at": now,
    }
    record.update(overrides)
    return record


def make_pooled_candidate(disposition: str = "available", **overrides: Any) -> dict[str, Any]:
    """Build a pooled_candidates record."""
    now = datetime.now(UTC)
    record = {
        "id": uuid4(),
        "candidate_id": uuid4(),
        "original_application_id": uuid4(),
        "original_job_order_id": uuid4(),
        "pooled_from_status": "tech_interview",
        "pool_reason": "Headcount frozen",
        "pool_notes": None,
        "pooled_by": "HR",
        "pooled_at": now,
        "disposition": disposition,
        "disposition_changed_at": None,
        "disposition_notes": None,
        "new_application_id": None,
        "new_job_order_id": None,
        "created_at": now,
        "updated_at": now,
    }
    record.update(overrides)
    return record


def make_job_order(status: str = "open", **overrides: Any) -> dict[str, Any]:
    """Build a job_orders record."""
    now = datetime.now(UTC)
    record = {
        "id": uuid4(),
        "jo_number": "JO-100",
        "title": "Software Engineer",
        "description": None,
        "department_name": "Engineering",
        "level": None,
        "quantity": 1,
        "hired_count": 0,
        "employment_type": None,
        "status": status,
        "created_at": now,
        "updated_at": now,
    }
    record.update(overrides)
    return record
