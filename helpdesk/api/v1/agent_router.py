"""Support agent API router: presence, roster and queue pull."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from helpdesk.dependencies import (
    CurrentUser,
    get_agent_pool,
    get_session_registry,
    require_role,
)
from helpdesk.schemas.agent_schema import AgentResponse, PresenceRequest
from helpdesk.schemas.response_schema import ApiResponse, success_response
from helpdesk.schemas.session_schema import SessionResponse
from helpdesk.services.agent_pool import AgentPool
from helpdesk.services.session_registry import SessionRegistry

router = APIRouter(
    prefix="/api/v1/agents",
    tags=["agents"],
    dependencies=[Depends(require_role("agent", "admin"))],
)

AgentPoolDep = Annotated[AgentPool, Depends(get_agent_pool)]
RegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
AgentUser = Annotated[CurrentUser, Depends(require_role("agent"))]


@router.get("", response_model=ApiResponse[list[AgentResponse]])
async def list_agents(
    agent_pool: AgentPoolDep,
    online_only: bool = Query(default=False),
) -> dict:
    """Agent roster ordered by display name."""
    agents = await agent_pool.list_agents(online_only=online_only)
    return success_response([AgentResponse.model_validate(a) for a in agents])


@router.get("/me", response_model=ApiResponse[AgentResponse])
async def get_me(agent_pool: AgentPoolDep, current_user: AgentUser) -> dict:
    """Agent record of the caller."""
    agent = await agent_pool.get_agent_by_user(current_user.id)
    return success_response(AgentResponse.model_validate(agent))


@router.put("/me/presence", response_model=ApiResponse[AgentResponse])
async def set_my_presence(
    body: PresenceRequest,
    agent_pool: AgentPoolDep,
    current_user: AgentUser,
) -> dict:
    """Go online or offline."""
    agent = await agent_pool.get_agent_by_user(current_user.id)
    agent = await agent_pool.set_presence(agent.id, body.is_online)
    return success_response(
        AgentResponse.model_validate(agent), message="Presence updated"
    )


@router.put(
    "/{agent_id}/presence",
    response_model=ApiResponse[AgentResponse],
    dependencies=[Depends(require_role("admin"))],
)
async def set_agent_presence(
    agent_id: int,
    body: PresenceRequest,
    agent_pool: AgentPoolDep,
) -> dict:
    """Operator override of an agent's presence."""
    agent = await agent_pool.set_presence(agent_id, body.is_online)
    return success_response(
        AgentResponse.model_validate(agent), message="Presence updated"
    )


@router.post("/me/join", response_model=ApiResponse[SessionResponse | None])
async def join_waiting_session(
    agent_pool: AgentPoolDep,
    registry: RegistryDep,
    current_user: AgentUser,
) -> dict:
    """Take the next waiting session the caller can serve.

    ``data`` is null when the queue holds nothing eligible.
    """
    agent = await agent_pool.get_agent_by_user(current_user.id)
    chat_session = await registry.join_waiting_session(agent.id)
    if chat_session is None:
        return success_response(None, message="No waiting session")
    return success_response(
        SessionResponse.model_validate(chat_session), message="Agent assigned"
    )
