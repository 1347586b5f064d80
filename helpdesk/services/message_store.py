"""Append-only, strictly ordered message log per support session."""

from collections.abc import AsyncIterator

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import (
    EmptyMessageBodyError,
    MessageTooLongError,
    SessionClosedError,
    SessionNotFoundError,
    StaleStateError,
)
from helpdesk.core.settings import SupportConfig
from helpdesk.models.chat_message import ChatMessage
from helpdesk.models.chat_session import ChatSession
from helpdesk.models.enums import PartyRole, SenderType, utc_now
from helpdesk.repositories.message_repo import MessageRepository
from helpdesk.repositories.session_repo import SessionRepository
from helpdesk.services.lock_service import LockService

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 100


def normalize_body(body: str | None, max_length: int) -> str:
    """Strip a message body and enforce the non-empty and length rules."""
    text = (body or "").strip()
    if not text:
        raise EmptyMessageBodyError()
    if len(text) > max_length:
        raise MessageTooLongError(max_length)
    return text


def read_by(message: ChatMessage, chat_session: ChatSession) -> list[str]:
    """Party roles that have acknowledged ``message``."""
    roles = []
    if (
        message.sender_type == SenderType.CUSTOMER
        or chat_session.customer_read_id >= message.seq
    ):
        roles.append(PartyRole.CUSTOMER.value)
    if (
        message.sender_type == SenderType.AGENT
        or chat_session.agent_read_id >= message.seq
    ):
        roles.append(PartyRole.AGENT.value)
    return roles


class MessageStore:
    """Appends and reads session messages.

    The store never pushes anything: clients see new messages only through
    ``list_since`` cursors.
    """

    def __init__(
        self,
        session: AsyncSession,
        message_repo: MessageRepository,
        session_repo: SessionRepository,
        locks: LockService,
        config: SupportConfig,
    ) -> None:
        self._session = session
        self._message_repo = message_repo
        self._session_repo = session_repo
        self._locks = locks
        self._config = config

    async def append(
        self,
        public_id: str,
        sender_type: SenderType,
        sender_name: str,
        body: str,
        sender_id: int | None = None,
        client_message_id: str | None = None,
    ) -> ChatMessage:
        """Append a message under the session lock and commit it.

        Re-sending a ``client_message_id`` that is already stored returns the
        stored message without writing anything.
        """
        text = normalize_body(body, self._config.max_message_length)

        async with self._locks.session(public_id):
            chat_session = await self._session_repo.find_by_public_id(public_id)
            if chat_session is None:
                raise SessionNotFoundError()
            try:
                message = await self.append_locked(
                    chat_session,
                    sender_type=sender_type,
                    sender_name=sender_name,
                    body=text,
                    sender_id=sender_id,
                    client_message_id=client_message_id,
                )
                await self._session.commit()
            except Exception:
                await self._session.rollback()
                raise
        return message

    async def append_locked(
        self,
        chat_session: ChatSession,
        sender_type: SenderType,
        sender_name: str,
        body: str,
        sender_id: int | None = None,
        client_message_id: str | None = None,
    ) -> ChatMessage:
        """Append inside a transaction whose caller already holds the session lock.

        Does not commit.
        """
        if client_message_id is not None:
            existing = await self._message_repo.find_by_client_message_id(
                chat_session.id, client_message_id
            )
            if existing is not None:
                logger.info(
                    "Duplicate message suppressed",
                    public_id=chat_session.public_id,
                    client_message_id=client_message_id,
                    message_id=existing.seq,
                )
                return existing

        await self._session_repo.refresh(chat_session)
        if chat_session.is_closed:
            raise SessionClosedError()

        previous = chat_session.last_message_id
        sent_at = utc_now()
        if not await self._session_repo.advance_message_counter(
            chat_session.id, previous, sent_at
        ):
            logger.warning(
                "Message sequence race lost", public_id=chat_session.public_id
            )
            raise StaleStateError()

        message = await self._message_repo.create(
            session_id=chat_session.id,
            seq=previous + 1,
            sender_type=sender_type.value,
            sender_name=sender_name,
            body=body,
            sender_id=sender_id,
            client_message_id=client_message_id,
        )
        await self._session_repo.refresh(chat_session)
        return message

    async def list_since(
        self,
        session_id: int,
        after_id: int,
        batch_size: int = DEFAULT_PAGE_SIZE,
    ) -> AsyncIterator[ChatMessage]:
        """Yield messages with id greater than ``after_id`` in ascending order.

        Pages lazily by cursor, so the sequence is finite and can be restarted
        from any id without missing or repeating a message.
        """
        cursor = after_id
        while True:
            page = await self._message_repo.find_after(session_id, cursor, batch_size)
            for message in page:
                yield message
            if len(page) < batch_size:
                return
            cursor = page[-1].seq

    async def mark_read(
        self, public_id: str, role: PartyRole, up_to_id: int
    ) -> ChatSession:
        """Advance ``role``'s read cursor to ``up_to_id`` (clamped to the log)."""
        chat_session = await self._session_repo.find_by_public_id(public_id)
        if chat_session is None:
            raise SessionNotFoundError()
        if chat_session.is_closed:
            return chat_session
        target = min(max(up_to_id, 0), chat_session.last_message_id)
        try:
            await self._session_repo.advance_read_cursor(chat_session.id, role, target)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        return await self._session_repo.refresh(chat_session)

    async def unread_count(self, chat_session: ChatSession, role: PartyRole) -> int:
        """Messages from other parties past ``role``'s read cursor."""
        cursor = (
            chat_session.customer_read_id
            if role == PartyRole.CUSTOMER
            else chat_session.agent_read_id
        )
        return await self._message_repo.count_unread(
            chat_session.id, cursor, reader_sender_type=role.value
        )
