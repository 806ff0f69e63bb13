"""Pipeline enums and Pydantic request/response models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

# ============================================
# Closed status sets
# ============================================


class PipelineStatus(StrEnum):
    """Stage of an application in the hiring funnel."""

    HR_INTERVIEW = "hr_interview"
    TECH_INTERVIEW = "tech_interview"
    OFFER = "offer"
    HIRED = "hired"
    REJECTED = "rejected"
    POOLED = "pooled"

    @property
    def is_terminal(self) -> bool:
        """Hired and rejected end the funnel."""
        return self in (PipelineStatus.HIRED, PipelineStatus.REJECTED)

    @property
    def is_poolable(self) -> bool:
        """Still moving through the funnel, so eligible for pooling."""
        return not self.is_terminal and self is not PipelineStatus.POOLED

    @classmethod
    def poolable(cls) -> list[PipelineStatus]:
        return [s for s in cls if s.is_poolable]


class JobOrderStatus(StrEnum):
    """Status of a job order."""

    OPEN = "open"
    ON_HOLD = "on_hold"
    POOLING = "pooling"
    CLOSED = "closed"
    ARCHIVED = "archived"

    @property
    def is_active(self) -> bool:
        """Closed and archived job orders are no longer visible externally."""
        return self not in (JobOrderStatus.CLOSED, JobOrderStatus.ARCHIVED)


class Disposition(StrEnum):
    """Curated status of a pooled candidate record."""

    AVAILABLE = "available"
    NOT_SUITABLE = "not_suitable"
    ON_HOLD = "on_hold"
    ACTIVATED = "activated"
    ARCHIVED = "archived"

    @classmethod
    def curatable(cls) -> list[Disposition]:
        """Dispositions HR may set directly. Activated is reserved for activation."""
        return [d for d in cls if d is not Disposition.ACTIVATED]


class NotificationAction(StrEnum):
    """Action sent to the job order webhook."""

    CREATE = "create"  # webhook contract; job orders are created outside this service
    UPDATE = "update"
    DELETE = "delete"


# ============================================
# Input Models
# ============================================


class PoolApplicationRequest(BaseModel):
    """Body for POST /applications/{id}/pool."""

    pool_reason: str | None = None
    pool_notes: str | None = None
    pooled_by: str | None = None


class TransitionRequest(BaseModel):
    """Body for PATCH /applications/{id}/status."""

    pipeline_status: PipelineStatus
    changed_by: str | None = None
    notes: str | None = None


class ActivatePooledRequest(BaseModel):
    """Body for POST /pooled-candidates/{id}/activate."""

    target_job_order_id: UUID
    target_pipeline_status: PipelineStatus = PipelineStatus.HR_INTERVIEW
    activated_by: str | None = None


class DispositionUpdateRequest(BaseModel):
    """Body for PATCH /pooled-candidates/{id}."""

    disposition: Disposition
    disposition_notes: str | None = None


class BulkDispositionRequest(BaseModel):
    """Body for POST /pooled-candidates/bulk-action."""

    ids: list[UUID] = Field(min_length=1)
    disposition: Disposition
    disposition_notes: str | None = None


class JobOrderStatusRequest(BaseModel):
    """Body for PATCH /job-orders/{id}/status."""

    status: JobOrderStatus


# ============================================
# Response Models
# ============================================


class ApplicationResponse(BaseModel):
    """Application (pipeline) record."""

    id: UUID
    candidate_id: UUID
    job_order_id: UUID
    pipeline_status: PipelineStatus
    match_score: float | None = None
    employment_type: str | None = None
    remarks: str | None = None
    applied_date: datetime | None = None
    status_changed_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    duration_days: int | None = None  # not stored; computed by the last transition


class PooledCandidateResponse(BaseModel):
    """Pooled candidate lineage record."""

    id: UUID
    candidate_id: UUID
    original_application_id: UUID
    original_job_order_id: UUID
    pooled_from_status: PipelineStatus
    pool_reason: str | None = None
    pool_notes: str | None = None
    pooled_by: str | None = None
    pooled_at: datetime | None = None
    disposition: Disposition
    disposition_changed_at: datetime | None = None
    disposition_notes: str | None = None
    new_application_id: UUID | None = None
    new_job_order_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PooledCandidateListItem(PooledCandidateResponse):
    """Pooled record joined with candidate and original job order details."""

    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    current_position: str | None = None
    current_company: str | None = None
    original_jo_number: str | None = None
    original_jo_title: str | None = None
    original_department: str | None = None
    match_score: float | None = None
    current_app_status: PipelineStatus | None = None


class BulkDispositionResponse(BaseModel):
    """Result of a bulk disposition update."""

    updated: int
    records: list[PooledCandidateResponse]


class JobOrderResponse(BaseModel):
    """Job order record."""

    id: UUID
    jo_number: str | None = None
    title: str
    description: str | None = None
    department_name: str | None = None
    level: str | None = None
    quantity: int | None = None
    hired_count: int = 0
    employment_type: str | None = None
    status: JobOrderStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PoolingJobOrderResponse(JobOrderResponse):
    """Job order with talent pool counts."""

    available_pool_count: int = 0
    total_pool_count: int = 0


class TimelineEntryResponse(BaseModel):
    """Timeline entry for one status transition."""

    id: UUID
    application_id: UUID
    candidate_id: UUID
    from_status: PipelineStatus | None = None
    to_status: PipelineStatus
    changed_date: datetime
    duration_days: int | None = None
    notes: str | None = None
    changed_by: str | None = None


class ActivityLogResponse(BaseModel):
    """Activity log entry."""

    id: UUID
    activity_type: str
    entity_type: str
    entity_id: UUID | None = None
    performed_by_name: str | None = None
    action_date: datetime
    details: dict[str, Any] | None = None
