"""Session statistics API router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from helpdesk.dependencies import get_stats_service, require_role
from helpdesk.schemas.response_schema import ApiResponse, success_response
from helpdesk.schemas.stats_schema import SessionStatsResponse
from helpdesk.services.stats_service import StatsService

router = APIRouter(
    prefix="/api/v1/stats",
    tags=["stats"],
    dependencies=[Depends(require_role("admin"))],
)


@router.get("/sessions", response_model=ApiResponse[SessionStatsResponse])
async def session_stats(
    service: Annotated[StatsService, Depends(get_stats_service)],
    tenant_id: int | None = Query(default=None),
) -> dict:
    """Counts by status, average rating and time to close."""
    return success_response(await service.session_stats(tenant_id))
