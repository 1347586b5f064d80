"""Support session repository."""

from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.models.chat_message import ChatMessage
from helpdesk.models.chat_session import ChatSession
from helpdesk.models.enums import PRIORITY_RANK, PartyRole, SessionStatus

priority_rank = case(PRIORITY_RANK, value=ChatSession.priority, else_=0)

WAITING_QUEUE_ORDER = (
    priority_rank.desc(),
    ChatSession.created_at.asc(),
    ChatSession.id.asc(),
)


@dataclass(frozen=True)
class ClosedSessionTiming:
    """Start and close timestamps of a closed session that had an agent."""

    created_at: datetime
    closed_at: datetime


class SessionRepository:
    """Encapsulates support session queries and conditional updates."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_public_id(self, public_id: str) -> ChatSession | None:
        """Find a session by its client-facing id."""
        result = await self._session.execute(
            select(ChatSession)
            .where(ChatSession.public_id == public_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        public_id: str,
        customer_id: int,
        category: str,
        priority: str,
        tenant_id: int | None = None,
        initial_message: str | None = None,
        current_page: str | None = None,
        user_agent: str | None = None,
    ) -> ChatSession:
        """Insert a new waiting session."""
        chat_session = ChatSession(
            public_id=public_id,
            customer_id=customer_id,
            tenant_id=tenant_id,
            status=SessionStatus.WAITING.value,
            category=category,
            priority=priority,
            initial_message=initial_message,
            current_page=current_page,
            user_agent=user_agent,
        )
        self._session.add(chat_session)
        await self._session.flush()
        await self._session.refresh(chat_session)
        return chat_session

    async def refresh(self, chat_session: ChatSession) -> ChatSession:
        """Reload a session row after conditional updates."""
        await self._session.refresh(chat_session)
        return chat_session

    async def compare_and_set_status(
        self,
        session_id: int,
        expected: SessionStatus,
        target: SessionStatus,
        **values: Any,
    ) -> bool:
        """Move a session to ``target`` only if it is still ``expected``."""
        result = await self._session.execute(
            update(ChatSession)
            .where(
                ChatSession.id == session_id,
                ChatSession.status == expected.value,
            )
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def advance_message_counter(
        self, session_id: int, expected_last: int, sent_at: datetime
    ) -> bool:
        """Claim the next message sequence number unless the session closed."""
        result = await self._session.execute(
            update(ChatSession)
            .where(
                ChatSession.id == session_id,
                ChatSession.last_message_id == expected_last,
                ChatSession.status != SessionStatus.CLOSED.value,
            )
            .values(last_message_id=expected_last + 1, last_message_at=sent_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def advance_read_cursor(
        self, session_id: int, role: PartyRole, up_to: int
    ) -> None:
        """Move a role's read cursor forward; never moves it back."""
        column = (
            ChatSession.customer_read_id
            if role == PartyRole.CUSTOMER
            else ChatSession.agent_read_id
        )
        await self._session.execute(
            update(ChatSession)
            .where(ChatSession.id == session_id, column < up_to)
            .values({column: up_to})
            .execution_options(synchronize_session=False)
        )

    async def find_by_status(
        self,
        status: SessionStatus,
        tenant_id: int | None = None,
        limit: int = 50,
    ) -> list[ChatSession]:
        """List sessions in one status.

        Waiting sessions come out in queue order (priority desc, oldest first);
        everything else by most recent activity.
        """
        stmt = select(ChatSession).where(ChatSession.status == status.value)
        if tenant_id is not None:
            stmt = stmt.where(ChatSession.tenant_id == tenant_id)

        if status == SessionStatus.WAITING:
            stmt = stmt.order_by(*WAITING_QUEUE_ORDER)
        else:
            stmt = stmt.order_by(
                func.coalesce(
                    ChatSession.last_message_at, ChatSession.created_at
                ).desc(),
                ChatSession.id.desc(),
            )

        result = await self._session.execute(
            stmt.limit(limit).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_waiting_public_ids(
        self,
        categories: Collection[str] | None = None,
        exclude: Collection[str] = (),
        limit: int = 50,
    ) -> list[str]:
        """Public ids of waiting sessions in queue order.

        ``categories`` limits the result to sessions an agent can serve; None
        means any category.
        """
        stmt = select(ChatSession.public_id).where(
            ChatSession.status == SessionStatus.WAITING.value
        )
        if categories is not None:
            stmt = stmt.where(ChatSession.category.in_(categories))
        if exclude:
            stmt = stmt.where(ChatSession.public_id.not_in(exclude))
        result = await self._session.execute(
            stmt.order_by(*WAITING_QUEUE_ORDER).limit(limit)
        )
        return list(result.scalars().all())

    async def find_by_party(
        self,
        customer_id: int | None = None,
        agent_id: int | None = None,
        status: SessionStatus | None = None,
        limit: int = 50,
    ) -> list[ChatSession]:
        """A customer's session history or an agent's own sessions, newest first."""
        stmt = select(ChatSession)
        if customer_id is not None:
            stmt = stmt.where(ChatSession.customer_id == customer_id)
        if agent_id is not None:
            stmt = stmt.where(ChatSession.agent_id == agent_id)
        if status is not None:
            stmt = stmt.where(ChatSession.status == status.value)
        stmt = stmt.order_by(
            func.coalesce(ChatSession.last_message_at, ChatSession.created_at).desc(),
            ChatSession.id.desc(),
        )
        result = await self._session.execute(
            stmt.limit(limit).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_waiting_public_ids_before(self, cutoff: datetime) -> list[str]:
        """Public ids of waiting sessions created before ``cutoff``."""
        result = await self._session.execute(
            select(ChatSession.public_id)
            .where(
                ChatSession.status == SessionStatus.WAITING.value,
                ChatSession.created_at < cutoff,
            )
            .order_by(ChatSession.created_at.asc(), ChatSession.id.asc())
        )
        return list(result.scalars().all())

    # --- Statistics ---

    async def count_by_status(self, tenant_id: int | None = None) -> dict[str, int]:
        """Number of sessions per status."""
        stmt = select(ChatSession.status, func.count(ChatSession.id)).group_by(
            ChatSession.status
        )
        if tenant_id is not None:
            stmt = stmt.where(ChatSession.tenant_id == tenant_id)
        result = await self._session.execute(stmt)
        return {status: int(count) for status, count in result.all()}

    async def average_rating(self, tenant_id: int | None = None) -> float | None:
        """Mean customer rating over rated sessions."""
        stmt = select(func.avg(ChatSession.rating)).where(
            ChatSession.rating.is_not(None)
        )
        if tenant_id is not None:
            stmt = stmt.where(ChatSession.tenant_id == tenant_id)
        value = (await self._session.execute(stmt)).scalar_one_or_none()
        return float(value) if value is not None else None

    async def find_closed_timings(
        self, tenant_id: int | None = None
    ) -> list[ClosedSessionTiming]:
        """Creation/close timestamps of closed sessions that had an agent."""
        stmt = select(ChatSession.created_at, ChatSession.closed_at).where(
            ChatSession.status == SessionStatus.CLOSED.value,
            ChatSession.agent_id.is_not(None),
            ChatSession.closed_at.is_not(None),
        )
        if tenant_id is not None:
            stmt = stmt.where(ChatSession.tenant_id == tenant_id)
        result = await self._session.execute(stmt)
        return [
            ClosedSessionTiming(created_at=row.created_at, closed_at=row.closed_at)
            for row in result
        ]

    async def count_messages(self, tenant_id: int | None = None) -> int:
        """Total messages across sessions (optionally for one tenant)."""
        stmt = select(func.count(ChatMessage.id))
        if tenant_id is not None:
            stmt = stmt.join(
                ChatSession, ChatSession.id == ChatMessage.session_id
            ).where(ChatSession.tenant_id == tenant_id)
        return int((await self._session.execute(stmt)).scalar_one())
