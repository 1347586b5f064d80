"""Canned agent replies."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import QuickReplyNotFoundError
from helpdesk.models.quick_reply import QuickReply
from helpdesk.repositories.quick_reply_repo import QuickReplyRepository

logger = structlog.get_logger()


class QuickReplyService:
    """Manages quick replies and tracks how often agents send them."""

    def __init__(
        self, quick_reply_repo: QuickReplyRepository, session: AsyncSession
    ) -> None:
        self._quick_reply_repo = quick_reply_repo
        self._session = session

    async def list_replies(self, category: str | None = None) -> list[QuickReply]:
        return await self._quick_reply_repo.find_active(
            category.strip().lower() if category else None
        )

    async def get_active(self, reply_id: int) -> QuickReply:
        reply = await self._quick_reply_repo.find_by_id(reply_id)
        if reply is None or not reply.is_active:
            raise QuickReplyNotFoundError()
        return reply

    async def create(
        self, category: str, title: str, body: str, created_by: int
    ) -> QuickReply:
        """Add a reply; categories are stored lowercase like session categories."""
        try:
            reply = await self._quick_reply_repo.create(
                category=category.strip().lower(),
                title=title.strip(),
                body=body.strip(),
                created_by=created_by,
            )
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        logger.info("Quick reply created", reply_id=reply.id, category=reply.category)
        return reply

    async def update(
        self,
        reply_id: int,
        category: str | None = None,
        title: str | None = None,
        body: str | None = None,
        is_active: bool | None = None,
    ) -> QuickReply:
        """Edit or (de)activate a reply. Inactive replies can be edited too."""
        reply = await self._quick_reply_repo.find_by_id(reply_id)
        if reply is None:
            raise QuickReplyNotFoundError()

        changes: dict[str, object] = {}
        if category is not None:
            changes["category"] = category.strip().lower()
        if title is not None:
            changes["title"] = title.strip()
        if body is not None:
            changes["body"] = body.strip()
        if is_active is not None:
            changes["is_active"] = is_active
        if not changes:
            return reply

        try:
            reply = await self._quick_reply_repo.update(reply, **changes)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        logger.info("Quick reply updated", reply_id=reply_id, fields=sorted(changes))
        return reply

    async def record_use(self, reply_id: int) -> None:
        try:
            await self._quick_reply_repo.increment_use_count(reply_id)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
