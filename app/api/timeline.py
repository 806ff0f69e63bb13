"""Read-only timeline and activity log endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query

from app.models.pipeline import ActivityLogResponse, TimelineEntryResponse
from app.services import timeline as timeline_service

router = APIRouter(tags=["timeline"])


@router.get("/timeline", response_model=list[TimelineEntryResponse])
async def list_timeline(
    application_id: UUID | None = Query(None),
    candidate_id: UUID | None = Query(None),
) -> list[Any]:
    """Status history, newest first."""
    return await timeline_service.list_timeline(
        application_id=application_id, candidate_id=candidate_id
    )


@router.get("/activity-log", response_model=list[ActivityLogResponse])
async def list_activity(
    entity_type: str | None = Query(None),
    activity_type: str | None = Query(None),
    limit: int = Query(50, ge=1, le=timeline_service.MAX_ACTIVITY_PAGE),
    offset: int = Query(0, ge=0),
) -> list[dict[str, Any]]:
    """Audit entries, newest first."""
    return await timeline_service.list_activity(
        entity_type=entity_type,
        activity_type=activity_type,
        limit=limit,
        offset=offset,
    )
