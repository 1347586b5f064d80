"""Agent presence, capacity accounting and assignment selection."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import (
    AgentNotFoundError,
    CapacityInvariantError,
    NoAgentAvailableError,
)
from helpdesk.models.enums import utc_now
from helpdesk.models.support_agent import SupportAgent
from helpdesk.repositories.agent_repo import AgentRepository

logger = structlog.get_logger()


class AgentPool:
    """Sole writer of agent presence and load.

    ``reserve``/``release`` run inside the Session Registry's transaction and
    never commit; ``set_presence`` commits on its own.
    """

    def __init__(self, agent_repo: AgentRepository, session: AsyncSession) -> None:
        self._agent_repo = agent_repo
        self._session = session

    async def get_agent(self, agent_id: int) -> SupportAgent:
        agent = await self._agent_repo.find_by_id(agent_id)
        if agent is None:
            raise AgentNotFoundError()
        return agent

    async def get_agent_by_user(self, user_id: int) -> SupportAgent:
        agent = await self._agent_repo.find_by_user_id(user_id)
        if agent is None:
            raise AgentNotFoundError()
        return agent

    async def list_agents(self, online_only: bool = False) -> list[SupportAgent]:
        return await self._agent_repo.find_all(online_only=online_only)

    async def select_agent(self, category: str) -> SupportAgent:
        """Pick the least-loaded eligible agent for ``category``.

        Ties go to the agent that has been online the longest. The choice is
        advisory: the registry re-checks capacity atomically when it binds.
        """
        for agent in await self._agent_repo.find_available():
            if agent.can_serve(category):
                return agent
        raise NoAgentAvailableError()

    async def set_presence(self, agent_id: int, is_online: bool) -> SupportAgent:
        """Flip an agent's presence; bound sessions are left untouched."""
        agent = await self.get_agent(agent_id)
        try:
            await self._agent_repo.update_presence(agent.id, is_online, utc_now())
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        agent = await self._agent_repo.refresh(agent)
        logger.info(
            "Agent presence changed",
            agent_id=agent.id,
            is_online=agent.is_online,
            current_load=agent.current_load,
        )
        return agent

    async def reserve(self, agent_id: int) -> bool:
        """Take a chat slot for a new assignment; False if offline or full."""
        return await self._agent_repo.try_increment_load(agent_id)

    async def release(self, agent_id: int) -> None:
        """Give back a chat slot freed by resolve or close."""
        if not await self._agent_repo.try_decrement_load(agent_id):
            logger.error("Agent load underflow", agent_id=agent_id)
            raise CapacityInvariantError(f"Agent {agent_id} load would drop below zero")
