"""Application endpoints: pooling and pipeline transitions."""

from uuid import UUID

from fastapi import APIRouter, Request, status

from app.core.errors import InvalidStateTransitionError
from app.middleware.rate_limit import MUTATION_LIMIT, limiter
from app.models.pipeline import (
    ApplicationResponse,
    PipelineStatus,
    PooledCandidateResponse,
    PoolApplicationRequest,
    TransitionRequest,
)
from app.services import pooling as pooling_service
from app.services import transitions as transitions_service

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post(
    "/{application_id}/pool",
    response_model=PooledCandidateResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(MUTATION_LIMIT)
async def pool_application(
    request: Request, application_id: UUID, body: PoolApplicationRequest
) -> PooledCandidateResponse:
    """
    Move an application into the talent pool.

    Returns 409 if the application is already pooled.
    """
    pooled = await pooling_service.pool_application(
        application_id,
        pool_reason=body.pool_reason,
        pool_notes=body.pool_notes,
        pooled_by=body.pooled_by,
    )
    return PooledCandidateResponse.model_validate(pooled)


@router.patch("/{application_id}/status", response_model=ApplicationResponse)
@limiter.limit(MUTATION_LIMIT)
async def update_application_status(
    request: Request, application_id: UUID, body: TransitionRequest
) -> ApplicationResponse:
    """
    Move an application between active pipeline stages.

    Pooling and re-activation carry lineage and go through
    POST /applications/{id}/pool and POST /pooled-candidates/{id}/activate.
    """
    if body.pipeline_status is PipelineStatus.POOLED:
        raise InvalidStateTransitionError(
            "Use POST /applications/{id}/pool to pool an application",
            context={"application_id": str(application_id)},
        )

    application = await transitions_service.transition_application(
        application_id,
        body.pipeline_status.value,
        actor=body.changed_by,
        notes=body.notes,
        allow_pooled=False,
    )
    return ApplicationResponse.model_validate(application)
