"""Quick reply API router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from helpdesk.dependencies import (
    CurrentUser,
    get_quick_reply_service,
    require_role,
)
from helpdesk.schemas.quick_reply_schema import (
    CreateQuickReplyRequest,
    QuickReplyResponse,
    UpdateQuickReplyRequest,
)
from helpdesk.schemas.response_schema import ApiResponse, success_response
from helpdesk.services.quick_reply_service import QuickReplyService

router = APIRouter(
    prefix="/api/v1/quick-replies",
    tags=["quick-replies"],
    dependencies=[Depends(require_role("agent", "admin"))],
)

QuickReplyServiceDep = Annotated[QuickReplyService, Depends(get_quick_reply_service)]


@router.get("", response_model=ApiResponse[list[QuickReplyResponse]])
async def list_quick_replies(
    service: QuickReplyServiceDep,
    category: str | None = Query(default=None),
) -> dict:
    """Active replies, most used first."""
    replies = await service.list_replies(category)
    return success_response([QuickReplyResponse.model_validate(r) for r in replies])


@router.post("", response_model=ApiResponse[QuickReplyResponse], status_code=201)
async def create_quick_reply(
    body: CreateQuickReplyRequest,
    service: QuickReplyServiceDep,
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
) -> dict:
    """Add a canned reply."""
    reply = await service.create(
        category=body.category,
        title=body.title,
        body=body.body,
        created_by=current_user.id,
    )
    return success_response(
        QuickReplyResponse.model_validate(reply),
        status=201,
        message="Quick reply created",
    )


@router.patch(
    "/{reply_id}",
    response_model=ApiResponse[QuickReplyResponse],
    dependencies=[Depends(require_role("admin"))],
)
async def update_quick_reply(
    reply_id: int,
    body: UpdateQuickReplyRequest,
    service: QuickReplyServiceDep,
) -> dict:
    """Edit a canned reply or take it out of rotation."""
    reply = await service.update(
        reply_id,
        category=body.category,
        title=body.title,
        body=body.body,
        is_active=body.is_active,
    )
    return success_response(
        QuickReplyResponse.model_validate(reply), message="Quick reply updated"
    )
