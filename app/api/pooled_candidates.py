"""Talent pool endpoints: listing, activation and disposition curation."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, Request
from structlog import get_logger

from app.core.errors import NotFoundError
from app.middleware.rate_limit import MUTATION_LIMIT, limiter
from app.models.pipeline import (
    ActivatePooledRequest,
    ApplicationResponse,
    BulkDispositionRequest,
    BulkDispositionResponse,
    Disposition,
    DispositionUpdateRequest,
    PooledCandidateListItem,
    PooledCandidateResponse,
)
from app.services import pooling as pooling_service

logger = get_logger()
router = APIRouter(prefix="/pooled-candidates", tags=["pooled-candidates"])


@router.get("", response_model=list[PooledCandidateListItem])
async def list_pooled_candidates(
    disposition: Disposition | None = Query(None),
    job_order_id: UUID | None = Query(None),
    search: str | None = Query(None, max_length=200),
) -> list[dict[str, Any]]:
    """List pooled candidates with candidate and original job order details."""
    return await pooling_service.list_pooled_candidates(
        disposition=disposition.value if disposition else None,
        job_order_id=job_order_id,
        search=search,
    )


@router.post("/bulk-action", response_model=BulkDispositionResponse)
@limiter.limit(MUTATION_LIMIT)
async def bulk_update_disposition(
    request: Request, body: BulkDispositionRequest
) -> dict[str, Any]:
    """
    Set one disposition on many pooled records.

    Only available, not_suitable, on_hold and archived are accepted.
    Activated records are left untouched.
    """
    logger.info(
        "bulk_disposition_requested",
        count=len(body.ids),
        disposition=body.disposition.value,
    )
    return await pooling_service.bulk_set_pooled_disposition(
        body.ids, body.disposition.value, body.disposition_notes
    )


@router.get("/{pooled_id}", response_model=PooledCandidateResponse)
async def get_pooled_candidate(pooled_id: UUID) -> dict[str, Any]:
    """Fetch one pooled record."""
    pooled = await pooling_service.get_pooled_candidate(pooled_id)
    if not pooled:
        raise NotFoundError("Pooled record not found", context={"pooled_id": str(pooled_id)})
    return pooled  # type: ignore[return-value]


@router.post("/{pooled_id}/activate", response_model=ApplicationResponse)
@limiter.limit(MUTATION_LIMIT)
async def activate_pooled_candidate(
    request: Request, pooled_id: UUID, body: ActivatePooledRequest
) -> dict[str, Any]:
    """
    Re-activate a pooled candidate onto a job order.

    Returns 409 when the record is not 'available' or the candidate already
    has an active application for the target job order.
    """
    application = await pooling_service.activate_pooled_candidate(
        pooled_id,
        body.target_job_order_id,
        target_status=body.target_pipeline_status.value,
        activated_by=body.activated_by,
    )
    return application  # type: ignore[return-value]


@router.patch("/{pooled_id}", response_model=PooledCandidateResponse)
@limiter.limit(MUTATION_LIMIT)
async def update_disposition(
    request: Request, pooled_id: UUID, body: DispositionUpdateRequest
) -> dict[str, Any]:
    """Set the disposition (and notes) of one pooled record."""
    pooled = await pooling_service.set_pooled_disposition(
        pooled_id, body.disposition.value, body.disposition_notes
    )
    return pooled  # type: ignore[return-value]
