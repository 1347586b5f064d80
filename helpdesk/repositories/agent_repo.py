"""Support agent repository."""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.models.support_agent import SupportAgent


class AgentRepository:
    """Encapsulates agent presence and load counter queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_id(self, agent_id: int) -> SupportAgent | None:
        """Find an agent by primary key."""
        result = await self._session.execute(
            select(SupportAgent)
            .where(SupportAgent.id == agent_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_user_id(self, user_id: int) -> SupportAgent | None:
        """Find the agent record of an identity-service user."""
        result = await self._session.execute(
            select(SupportAgent)
            .where(SupportAgent.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_all(self, online_only: bool = False) -> list[SupportAgent]:
        """List agents by display name."""
        stmt = select(SupportAgent)
        if online_only:
            stmt = stmt.where(SupportAgent.is_online.is_(True))
        result = await self._session.execute(
            stmt.order_by(
                SupportAgent.display_name.asc(), SupportAgent.id.asc()
            ).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_available(self) -> list[SupportAgent]:
        """Online agents with spare capacity, least loaded and longest idle first."""
        result = await self._session.execute(
            select(SupportAgent)
            .where(
                SupportAgent.is_online.is_(True),
                SupportAgent.current_load < SupportAgent.max_concurrent_chats,
            )
            .order_by(
                SupportAgent.current_load.asc(),
                SupportAgent.online_since.asc(),
                SupportAgent.id.asc(),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def create(
        self,
        user_id: int,
        display_name: str,
        capabilities: list[str],
        max_concurrent_chats: int,
    ) -> SupportAgent:
        """Insert a new (offline) agent."""
        agent = SupportAgent(
            user_id=user_id,
            display_name=display_name,
            capabilities=capabilities,
            max_concurrent_chats=max_concurrent_chats,
            is_online=False,
            current_load=0,
        )
        self._session.add(agent)
        await self._session.flush()
        await self._session.refresh(agent)
        return agent

    async def refresh(self, agent: SupportAgent) -> SupportAgent:
        """Reload an agent row after conditional updates."""
        await self._session.refresh(agent)
        return agent

    async def try_increment_load(self, agent_id: int) -> bool:
        """Take one chat slot if the agent is online and below capacity."""
        result = await self._session.execute(
            update(SupportAgent)
            .where(
                SupportAgent.id == agent_id,
                SupportAgent.is_online.is_(True),
                SupportAgent.current_load < SupportAgent.max_concurrent_chats,
            )
            .values(current_load=SupportAgent.current_load + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def try_decrement_load(self, agent_id: int) -> bool:
        """Give back one chat slot; refuses to go below zero."""
        result = await self._session.execute(
            update(SupportAgent)
            .where(SupportAgent.id == agent_id, SupportAgent.current_load > 0)
            .values(current_load=SupportAgent.current_load - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def update_presence(
        self, agent_id: int, is_online: bool, seen_at: datetime
    ) -> None:
        """Flip presence; ``online_since`` is only stamped on offline-to-online."""
        await self._session.execute(
            update(SupportAgent)
            .where(
                SupportAgent.id == agent_id,
                SupportAgent.is_online.is_(not is_online),
            )
            .values(
                is_online=is_online,
                online_since=seen_at if is_online else None,
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            update(SupportAgent)
            .where(SupportAgent.id == agent_id)
            .values(last_seen_at=seen_at)
            .execution_options(synchronize_session=False)
        )
