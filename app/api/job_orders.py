"""Job order endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Request

from app.core.errors import NotFoundError
from app.middleware.rate_limit import MUTATION_LIMIT, limiter
from app.models.pipeline import (
    JobOrderResponse,
    JobOrderStatusRequest,
    PoolingJobOrderResponse,
)
from app.services import job_orders as job_orders_service

router = APIRouter(prefix="/job-orders", tags=["job-orders"])


@router.get("/pooled", response_model=list[PoolingJobOrderResponse])
async def list_pooling_job_orders() -> list[dict[str, Any]]:
    """Job orders in pooling, or with pooled candidates, with pool counts."""
    return await job_orders_service.list_pooling_job_orders()


@router.get("/{job_order_id}", response_model=JobOrderResponse)
async def get_job_order(job_order_id: UUID) -> dict[str, Any]:
    """Fetch one job order, including its hired_count."""
    job_order = await job_orders_service.get_job_order(job_order_id)
    if not job_order:
        raise NotFoundError("Job order not found", context={"job_order_id": str(job_order_id)})
    return job_order  # type: ignore[return-value]


@router.patch("/{job_order_id}/status", response_model=JobOrderResponse)
@limiter.limit(MUTATION_LIMIT)
async def update_job_order_status(
    request: Request, job_order_id: UUID, body: JobOrderStatusRequest
) -> dict[str, Any]:
    """
    Change a job order's status.

    The job board webhook is notified in the background. Moving to
    'pooling' also pools every in-flight application in the background;
    the response does not wait for either.
    """
    job_order = await job_orders_service.set_job_order_status(job_order_id, body.status.value)
    return job_order  # type: ignore[return-value]
