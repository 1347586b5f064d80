"""Register a support agent, or update an existing agent record.

Usage:
    python -m scripts.create_agent --user-id 42 --name Dana --capabilities billing
"""

import argparse
import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.config import settings
from helpdesk.core.database import Base, async_session_factory, engine
from helpdesk.repositories.agent_repo import AgentRepository


def parse_capabilities(raw: str) -> list[str]:
    """Comma-separated categories, lowercased; empty means every category."""
    return sorted({c.strip().lower() for c in raw.split(",") if c.strip()})


async def create_agent(
    user_id: int, display_name: str, capabilities: list[str], max_chats: int
) -> None:
    """Create the agent for ``user_id`` or update its profile in place."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        session: AsyncSession
        repo = AgentRepository(session)
        existing = await repo.find_by_user_id(user_id)
        if existing:
            existing.display_name = display_name
            existing.capabilities = capabilities
            existing.max_concurrent_chats = max(max_chats, existing.current_load)
            await session.commit()
            print(f"Agent updated: {display_name} (id={existing.id})")
        else:
            agent = await repo.create(
                user_id=user_id,
                display_name=display_name,
                capabilities=capabilities,
                max_concurrent_chats=max_chats,
            )
            await session.commit()
            print(f"Agent created: {display_name} (id={agent.id})")

    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or update a support agent")
    parser.add_argument("--user-id", type=int, required=True, help="Identity user id")
    parser.add_argument("--name", required=True, help="Display name shown to customers")
    parser.add_argument(
        "--capabilities",
        default="",
        help="Comma-separated categories (empty serves all)",
    )
    parser.add_argument(
        "--max-chats",
        type=int,
        default=settings.support.default_max_concurrent_chats,
        help="Maximum concurrent chats",
    )
    args = parser.parse_args()

    asyncio.run(
        create_agent(
            args.user_id,
            args.name,
            parse_capabilities(args.capabilities),
            args.max_chats,
        )
    )


if __name__ == "__main__":
    main()
