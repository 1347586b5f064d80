"""Global dependencies for the application."""

from collections.abc import Callable

import redis.asyncio as redis
from fastapi import Depends, Request
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.config import settings
from helpdesk.core.database import get_async_session
from helpdesk.core.exceptions import (
    AgentNotFoundError,
    AuthenticationError,
    AuthorizationError,
)
from helpdesk.core.redis import get_redis
from helpdesk.models.enums import PartyRole
from helpdesk.repositories.agent_repo import AgentRepository
from helpdesk.repositories.message_repo import MessageRepository
from helpdesk.repositories.quick_reply_repo import QuickReplyRepository
from helpdesk.repositories.session_repo import SessionRepository
from helpdesk.schemas.sync_schema import Participant
from helpdesk.services.agent_pool import AgentPool
from helpdesk.services.lock_service import LockService
from helpdesk.services.message_store import MessageStore
from helpdesk.services.quick_reply_service import QuickReplyService
from helpdesk.services.session_registry import SessionRegistry
from helpdesk.services.stats_service import StatsService
from helpdesk.services.sync_gateway import SyncGateway

# --- Service construction (shared with background tasks and scripts) ---


def build_message_store(
    session: AsyncSession,
    redis_client: redis.Redis,  # type: ignore[type-arg]
) -> MessageStore:
    """MessageStore bound to one DB session."""
    return MessageStore(
        session=session,
        message_repo=MessageRepository(session),
        session_repo=SessionRepository(session),
        locks=LockService(redis_client, settings.support),
        config=settings.support,
    )


def build_session_registry(
    session: AsyncSession,
    redis_client: redis.Redis,  # type: ignore[type-arg]
) -> SessionRegistry:
    """SessionRegistry with its collaborators bound to one DB session."""
    return SessionRegistry(
        session=session,
        session_repo=SessionRepository(session),
        agent_pool=AgentPool(AgentRepository(session), session),
        message_store=build_message_store(session, redis_client),
        locks=LockService(redis_client, settings.support),
        config=settings.support,
    )


def build_sync_gateway(
    session: AsyncSession,
    redis_client: redis.Redis,  # type: ignore[type-arg]
) -> SyncGateway:
    """SyncGateway with its collaborators bound to one DB session."""
    return SyncGateway(
        registry=build_session_registry(session, redis_client),
        message_store=build_message_store(session, redis_client),
        quick_replies=QuickReplyService(QuickReplyRepository(session), session),
        redis_client=redis_client,
        config=settings.support,
    )


# --- Auth dependencies ---


class CurrentUser(BaseModel):
    """Authenticated user extracted from request state."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: str


def get_current_user(request: Request) -> CurrentUser:
    """Extract the authenticated user from middleware-populated state."""
    state = getattr(request, "state", None)
    user_id = getattr(state, "user_id", None) if state else None
    if user_id is None:
        raise AuthenticationError(message="Not authenticated")
    return CurrentUser(
        id=state.user_id,
        email=state.email,
        role=state.role,
    )


def require_role(*allowed_roles: str) -> Callable[..., CurrentUser]:
    """Dependency factory that enforces role-based access control."""

    def _check(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                message=f"Role '{current_user.role}' is not permitted"
            )
        return current_user

    return _check


# --- Service dependencies ---


def get_agent_pool(
    session: AsyncSession = Depends(get_async_session),
) -> AgentPool:
    """Get AgentPool bound to the current session."""
    return AgentPool(AgentRepository(session), session)


def get_session_registry(
    session: AsyncSession = Depends(get_async_session),
) -> SessionRegistry:
    """Get SessionRegistry bound to the current session."""
    return build_session_registry(session, get_redis())


def get_sync_gateway(
    session: AsyncSession = Depends(get_async_session),
) -> SyncGateway:
    """Get SyncGateway bound to the current session."""
    return build_sync_gateway(session, get_redis())


def get_quick_reply_service(
    session: AsyncSession = Depends(get_async_session),
) -> QuickReplyService:
    """Get QuickReplyService bound to the current session."""
    return QuickReplyService(QuickReplyRepository(session), session)


def get_stats_service(
    session: AsyncSession = Depends(get_async_session),
) -> StatsService:
    """Get StatsService bound to the current session."""
    return StatsService(SessionRepository(session))


async def get_participant(
    current_user: CurrentUser = Depends(get_current_user),
    agent_pool: AgentPool = Depends(get_agent_pool),
) -> Participant:
    """Resolve the caller's side of the conversation.

    Agents must have an agent record; admins act on the agent side and are
    linked to their agent record when they have one.
    """
    display_name = current_user.email.split("@")[0]
    if current_user.role == "customer":
        return Participant(
            user_id=current_user.id,
            role=PartyRole.CUSTOMER,
            display_name=display_name,
        )

    agent_id: int | None = None
    try:
        agent = await agent_pool.get_agent_by_user(current_user.id)
    except AgentNotFoundError:
        if current_user.role == "agent":
            raise
    else:
        agent_id, display_name = agent.id, agent.display_name
    return Participant(
        user_id=current_user.id,
        role=PartyRole.AGENT,
        display_name=display_name,
        agent_id=agent_id,
        is_admin=current_user.role == "admin",
    )
