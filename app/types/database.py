"""Database record type definitions.

NOTE: This file must track database/schema.sql manually.
Use NotRequired for nullable/optional columns.
Add new types incrementally as needed - don't create unused types.
"""

from datetime import datetime
from decimal import Decimal
from typing import NotRequired, TypedDict
from uuid import UUID


class JobOrderRecordTD(TypedDict):
    """Record from job_orders table.

    Used in: job_orders.py (set_job_order_status, get_job_order)
    """

    id: UUID
    jo_number: NotRequired[str | None]
    title: str
    description: NotRequired[str | None]
    department_name: NotRequired[str | None]
    level: NotRequired[str | None]
    quantity: NotRequired[int | None]
    hired_count: int
    employment_type: NotRequired[str | None]
    status: str
    created_at: NotRequired[datetime | None]
    updated_at: NotRequired[datetime | None]


class ApplicationRecordTD(TypedDict):
    """Record from candidate_job_applications table.

    Used in: transitions.py, pooling.py
    """

    id: UUID
    candidate_id: UUID
    job_order_id: UUID
    pipeline_status: str
    match_score: NotRequired[Decimal | None]
    employment_type: NotRequired[str | None]
    remarks: NotRequired[str | None]
    applied_date: NotRequired[datetime | None]
    status_changed_date: NotRequired[datetime | None]
    created_at: NotRequired[datetime | None]
    updated_at: NotRequired[datetime | None]
    duration_days: NotRequired[int | None]  # not a column; set by transitions


class TimelineEntryRecordTD(TypedDict):
    """Record from candidate_timeline table.

    Used in: timeline.py
    """

    id: UUID
    application_id: UUID
    candidate_id: UUID
    from_status: NotRequired[str | None]
    to_status: str
    changed_date: datetime
    duration_days: NotRequired[int | None]
    notes: NotRequired[str | None]
    changed_by: NotRequired[str | None]


class PooledCandidateRecordTD(TypedDict):
    """Record from pooled_candidates table.

    Used in: pooling.py
    """

    id: UUID
    candidate_id: UUID
    original_application_id: UUID
    original_job_order_id: UUID
    pooled_from_status: str
    pool_reason: NotRequired[str | None]
    pool_notes: NotRequired[str | None]
    pooled_by: NotRequired[str | None]
    pooled_at: datetime
    disposition: str
    disposition_changed_at: NotRequired[datetime | None]
    disposition_notes: NotRequired[str | None]
    new_application_id: NotRequired[UUID | None]
    new_job_order_id: NotRequired[UUID | None]
    created_at: NotRequired[datetime | None]
    updated_at: NotRequired[datetime | None]
