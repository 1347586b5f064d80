"""Support session API router: lifecycle, polling and messaging."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from helpdesk.core.exceptions import InvalidInputError, NotBoundAgentError
from helpdesk.dependencies import (
    CurrentUser,
    get_participant,
    get_session_registry,
    get_sync_gateway,
    require_role,
)
from helpdesk.models.enums import PartyRole, SessionStatus
from helpdesk.schemas.message_schema import (
    MarkReadRequest,
    MessageResponse,
    ReadStateResponse,
    SendMessageRequest,
)
from helpdesk.schemas.response_schema import ApiResponse, success_response
from helpdesk.schemas.session_schema import (
    AssignAgentRequest,
    CloseSessionRequest,
    SessionListResponse,
    SessionResponse,
    StartSessionRequest,
)
from helpdesk.schemas.sync_schema import Participant, PollResponse
from helpdesk.services.session_registry import SessionRegistry
from helpdesk.services.sync_gateway import SyncGateway

router = APIRouter(
    prefix="/api/v1/sessions",
    tags=["sessions"],
    dependencies=[Depends(require_role("customer", "agent", "admin"))],
)

RegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
GatewayDep = Annotated[SyncGateway, Depends(get_sync_gateway)]
ParticipantDep = Annotated[Participant, Depends(get_participant)]


@router.post("", response_model=ApiResponse[SessionResponse], status_code=201)
async def start_session(
    body: StartSessionRequest,
    request: Request,
    registry: RegistryDep,
    current_user: Annotated[CurrentUser, Depends(require_role("customer"))],
) -> dict:
    """Open a support session for the calling customer."""
    chat_session = await registry.start_session(
        customer_id=current_user.id,
        category=body.category,
        priority=body.priority,
        initial_message=body.initial_message,
        tenant_id=body.tenant_id,
        customer_name=body.customer_name or current_user.email.split("@")[0],
        current_page=body.current_page,
        user_agent=request.headers.get("user-agent"),
    )
    return success_response(
        SessionResponse.model_validate(chat_session),
        status=201,
        message="Session started",
    )


@router.get(
    "",
    response_model=ApiResponse[SessionListResponse],
    dependencies=[Depends(require_role("agent", "admin"))],
)
async def list_sessions(
    registry: RegistryDep,
    status: SessionStatus = Query(default=SessionStatus.WAITING),
    tenant_id: int | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
) -> dict:
    """List sessions in one status; the waiting queue comes in assignment order."""
    sessions = await registry.list_by_status(status, tenant_id=tenant_id, limit=limit)
    return success_response(
        SessionListResponse(
            status=status,
            sessions=[SessionResponse.model_validate(s) for s in sessions],
        )
    )


@router.get(
    "/mine",
    response_model=ApiResponse[SessionListResponse],
    dependencies=[Depends(require_role("customer", "agent"))],
)
async def list_my_sessions(
    registry: RegistryDep,
    participant: ParticipantDep,
    status: SessionStatus | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
) -> dict:
    """The caller's own sessions: a customer's history or an agent's chats."""
    if participant.role == PartyRole.CUSTOMER:
        sessions = await registry.list_for_customer(
            participant.user_id, status=status, limit=limit
        )
    elif participant.agent_id is not None:
        sessions = await registry.list_for_agent(
            participant.agent_id, status=status, limit=limit
        )
    else:
        sessions = []
    return success_response(
        SessionListResponse(
            status=status,
            sessions=[SessionResponse.model_validate(s) for s in sessions],
        )
    )


@router.get("/{public_id}", response_model=ApiResponse[SessionResponse])
async def get_session(
    public_id: str,
    gateway: GatewayDep,
    participant: ParticipantDep,
) -> dict:
    """Current snapshot of a session."""
    chat_session = await gateway.get_session(public_id, participant)
    return success_response(SessionResponse.model_validate(chat_session))


@router.get("/{public_id}/poll", response_model=ApiResponse[PollResponse])
async def poll_session(
    public_id: str,
    gateway: GatewayDep,
    participant: ParticipantDep,
    after: int = Query(default=0, ge=0, description="Last message id already seen"),
) -> dict:
    """Messages after ``after`` plus the session snapshot."""
    result = await gateway.poll(public_id, after, participant)
    return success_response(result)


@router.post(
    "/{public_id}/messages",
    response_model=ApiResponse[MessageResponse],
    status_code=201,
)
async def send_message(
    public_id: str,
    body: SendMessageRequest,
    gateway: GatewayDep,
    participant: ParticipantDep,
) -> dict:
    """Append a message from the caller."""
    message = await gateway.send(
        public_id,
        participant,
        body.body,
        sender_name=body.sender_name,
        client_message_id=body.client_message_id,
    )
    return success_response(message, status=201, message="Message sent")


@router.post("/{public_id}/read", response_model=ApiResponse[ReadStateResponse])
async def mark_read(
    public_id: str,
    body: MarkReadRequest,
    gateway: GatewayDep,
    participant: ParticipantDep,
) -> dict:
    """Acknowledge messages up to ``up_to_id``."""
    result = await gateway.mark_read(public_id, participant, body.up_to_id)
    return success_response(result)


@router.post(
    "/{public_id}/assign",
    response_model=ApiResponse[SessionResponse],
    dependencies=[Depends(require_role("agent", "admin"))],
)
async def assign_agent(
    public_id: str,
    body: AssignAgentRequest,
    registry: RegistryDep,
    participant: ParticipantDep,
) -> dict:
    """Bind an agent to a waiting session.

    Agents can only take a session for themselves; admins pick the agent.
    """
    if participant.is_admin:
        if body.agent_id is None:
            raise InvalidInputError(
                message="agent_id is required", code="AGENT_ID_REQUIRED"
            )
        agent_id = body.agent_id
    else:
        if body.agent_id is not None and body.agent_id != participant.agent_id:
            raise NotBoundAgentError()
        agent_id = participant.agent_id
    chat_session = await registry.assign_agent(public_id, agent_id)
    return success_response(
        SessionResponse.model_validate(chat_session), message="Agent assigned"
    )


@router.post(
    "/{public_id}/resolve",
    response_model=ApiResponse[SessionResponse],
    dependencies=[Depends(require_role("agent"))],
)
async def resolve_session(
    public_id: str,
    registry: RegistryDep,
    participant: ParticipantDep,
) -> dict:
    """Bound agent marks the conversation as resolved."""
    if participant.agent_id is None:
        raise NotBoundAgentError()
    chat_session = await registry.mark_resolved(public_id, participant.agent_id)
    return success_response(
        SessionResponse.model_validate(chat_session), message="Session resolved"
    )


@router.post("/{public_id}/close", response_model=ApiResponse[SessionResponse])
async def close_session(
    public_id: str,
    body: CloseSessionRequest,
    gateway: GatewayDep,
    participant: ParticipantDep,
) -> dict:
    """Close a session; customers may attach a rating and feedback.

    Agents can only close sessions bound to them; admins can close any.
    """
    chat_session = await gateway.close(
        public_id, participant, rating=body.rating, feedback=body.feedback
    )
    return success_response(
        SessionResponse.model_validate(chat_session), message="Session closed"
    )


@router.post(
    "/{public_id}/quick-replies/{reply_id}",
    response_model=ApiResponse[MessageResponse],
    status_code=201,
    dependencies=[Depends(require_role("agent"))],
)
async def send_quick_reply(
    public_id: str,
    reply_id: int,
    gateway: GatewayDep,
    participant: ParticipantDep,
) -> dict:
    """Post a canned reply as the bound agent."""
    message = await gateway.send_quick_reply(public_id, participant, reply_id)
    return success_response(message, status=201, message="Message sent")
