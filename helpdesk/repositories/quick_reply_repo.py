"""Quick reply repository."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.models.quick_reply import QuickReply


class QuickReplyRepository:
    """Encapsulates canned reply queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_active(self, category: str | None = None) -> list[QuickReply]:
        """Active replies, most used first."""
        stmt = select(QuickReply).where(QuickReply.is_active.is_(True))
        if category is not None:
            stmt = stmt.where(QuickReply.category == category)
        result = await self._session.execute(
            stmt.order_by(QuickReply.use_count.desc(), QuickReply.title.asc())
        )
        return list(result.scalars().all())

    async def find_by_id(self, reply_id: int) -> QuickReply | None:
        """Find a reply by primary key."""
        result = await self._session.execute(
            select(QuickReply).where(QuickReply.id == reply_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self, category: str, title: str, body: str, created_by: int
    ) -> QuickReply:
        """Insert a new active reply."""
        reply = QuickReply(
            category=category,
            title=title,
            body=body,
            created_by=created_by,
            is_active=True,
            use_count=0,
        )
        self._session.add(reply)
        await self._session.flush()
        await self._session.refresh(reply)
        return reply

    async def update(self, reply: QuickReply, **values: object) -> QuickReply:
        """Apply changed columns to a loaded reply."""
        for name, value in values.items():
            setattr(reply, name, value)
        await self._session.flush()
        await self._session.refresh(reply)
        return reply

    async def increment_use_count(self, reply_id: int) -> None:
        """Record one more use of a reply."""
        await self._session.execute(
            update(QuickReply)
            .where(QuickReply.id == reply_id)
            .values(use_count=QuickReply.use_count + 1)
            .execution_options(synchronize_session=False)
        )
