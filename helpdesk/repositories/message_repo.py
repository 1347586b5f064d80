"""Support message repository."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.models.chat_message import ChatMessage


class MessageRepository:
    """Encapsulates append-only message storage queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        session_id: int,
        seq: int,
        sender_type: str,
        sender_name: str,
        body: str,
        sender_id: int | None = None,
        client_message_id: str | None = None,
    ) -> ChatMessage:
        """Insert a message with an already-claimed sequence number."""
        message = ChatMessage(
            session_id=session_id,
            seq=seq,
            sender_id=sender_id,
            sender_type=sender_type,
            sender_name=sender_name,
            body=body,
            client_message_id=client_message_id,
        )
        self._session.add(message)
        await self._session.flush()
        await self._session.refresh(message)
        return message

    async def find_by_client_message_id(
        self, session_id: int, client_message_id: str
    ) -> ChatMessage | None:
        """Find a previously appended message by its client idempotency key."""
        result = await self._session.execute(
            select(ChatMessage).where(
                ChatMessage.session_id == session_id,
                ChatMessage.client_message_id == client_message_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_after(
        self, session_id: int, after_seq: int, limit: int
    ) -> list[ChatMessage]:
        """Messages with ``seq > after_seq`` in ascending order."""
        result = await self._session.execute(
            select(ChatMessage)
            .where(
                ChatMessage.session_id == session_id,
                ChatMessage.seq > after_seq,
            )
            .order_by(ChatMessage.seq.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_unread(
        self, session_id: int, after_seq: int, reader_sender_type: str
    ) -> int:
        """Messages past the reader's cursor written by anyone else."""
        result = await self._session.execute(
            select(func.count(ChatMessage.id)).where(
                ChatMessage.session_id == session_id,
                ChatMessage.seq > after_seq,
                ChatMessage.sender_type != reader_sender_type,
            )
        )
        return int(result.scalar_one())
