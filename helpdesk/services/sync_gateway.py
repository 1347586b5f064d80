"""Pull-based synchronization for the customer widget and agent console."""

import asyncio
from contextlib import aclosing
from datetime import datetime

import redis.asyncio as redis
import structlog

from helpdesk.core.exceptions import (
    AuthorizationError,
    NotBoundAgentError,
    PollTimeoutError,
)
from helpdesk.core.settings import SupportConfig
from helpdesk.models.chat_message import ChatMessage
from helpdesk.models.chat_session import ChatSession
from helpdesk.models.enums import PartyRole, SenderType, SessionStatus, utc_now
from helpdesk.schemas.message_schema import MessageResponse, ReadStateResponse
from helpdesk.schemas.session_schema import SessionResponse
from helpdesk.schemas.sync_schema import Participant, PollResponse
from helpdesk.services.message_store import MessageStore, read_by
from helpdesk.services.quick_reply_service import QuickReplyService
from helpdesk.services.session_registry import SessionRegistry

HEARTBEAT_PREFIX = "heartbeat:"

logger = structlog.get_logger()


def ensure_can_view(chat_session: ChatSession, participant: Participant) -> None:
    """Customers see their own sessions; agents see theirs and the waiting queue."""
    if participant.is_admin:
        return
    if participant.role == PartyRole.CUSTOMER:
        if chat_session.customer_id != participant.user_id:
            raise AuthorizationError(message="Not authorized to view this session")
        return
    if (
        participant.agent_id is not None
        and chat_session.agent_id == participant.agent_id
    ):
        return
    if chat_session.status == SessionStatus.WAITING:
        return
    raise AuthorizationError(message="Not authorized to view this session")


def ensure_can_close(chat_session: ChatSession, participant: Participant) -> None:
    """Only the session's own parties may close it, or an admin."""
    if participant.is_admin:
        return
    if participant.role == PartyRole.CUSTOMER:
        if chat_session.customer_id != participant.user_id:
            raise AuthorizationError(message="Not authorized to close this session")
        return
    if (
        participant.agent_id is None
        or chat_session.agent_id != participant.agent_id
    ):
        raise NotBoundAgentError()


def to_message_response(
    message: ChatMessage, chat_session: ChatSession
) -> MessageResponse:
    return MessageResponse(
        id=message.seq,
        session_id=chat_session.public_id,
        sender_id=message.sender_id,
        sender_type=SenderType(message.sender_type),
        sender_name=message.sender_name,
        body=message.body,
        client_message_id=message.client_message_id,
        created_at=message.created_at,
        read_by=read_by(message, chat_session),
    )


class SyncGateway:
    """Stateless read/write path used by polling clients.

    Clients pass the last message id they rendered; the gateway answers with
    everything after it plus the current session snapshot. Re-delivering an
    already-seen id is harmless because clients merge by id.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        message_store: MessageStore,
        quick_replies: QuickReplyService,
        redis_client: redis.Redis,  # type: ignore[type-arg]
        config: SupportConfig,
    ) -> None:
        self._registry = registry
        self._message_store = message_store
        self._quick_replies = quick_replies
        self._redis = redis_client
        self._config = config

    async def get_session(
        self, public_id: str, participant: Participant
    ) -> ChatSession:
        chat_session = await self._registry.get_session(public_id)
        ensure_can_view(chat_session, participant)
        return chat_session

    async def poll(
        self, public_id: str, after_id: int, participant: Participant
    ) -> PollResponse:
        """Messages after ``after_id`` plus the session snapshot, time-bounded."""
        try:
            async with asyncio.timeout(self._config.poll_timeout_seconds):
                return await self._poll(public_id, after_id, participant)
        except TimeoutError as exc:
            logger.warning("Poll timed out", public_id=public_id, role=participant.role)
            raise PollTimeoutError() from exc

    async def _poll(
        self, public_id: str, after_id: int, participant: Participant
    ) -> PollResponse:
        chat_session = await self.get_session(public_id, participant)
        limit = self._config.poll_batch_limit

        collected: list[ChatMessage] = []
        async with aclosing(
            self._message_store.list_since(
                chat_session.id, after_id, batch_size=limit + 1
            )
        ) as stream:
            async for message in stream:
                collected.append(message)
                if len(collected) > limit:
                    break

        has_more = len(collected) > limit
        messages = collected[:limit]
        unread = await self._message_store.unread_count(chat_session, participant.role)

        await self._touch_heartbeat(public_id, participant.role)
        counterpart = (
            PartyRole.AGENT
            if participant.role == PartyRole.CUSTOMER
            else PartyRole.CUSTOMER
        )

        return PollResponse(
            session=SessionResponse.model_validate(chat_session),
            messages=[to_message_response(m, chat_session) for m in messages],
            cursor=messages[-1].seq if messages else after_id,
            has_more=has_more,
            unread_count=unread,
            counterpart_last_seen_at=await self._last_seen(public_id, counterpart),
            poll_interval_seconds=self._config.poll_interval_seconds,
        )

    async def send(
        self,
        public_id: str,
        participant: Participant,
        body: str,
        sender_name: str | None = None,
        client_message_id: str | None = None,
    ) -> MessageResponse:
        """Append a message on behalf of the caller.

        Customers post to their own session; agents only to sessions bound to
        them. Agent messages always carry the agent's display name.
        """
        chat_session = await self.get_session(public_id, participant)
        if participant.role == PartyRole.CUSTOMER:
            sender_type = SenderType.CUSTOMER
            name = (sender_name or "").strip() or participant.display_name
        else:
            if (
                participant.agent_id is None
                or chat_session.agent_id != participant.agent_id
            ):
                raise NotBoundAgentError()
            sender_type = SenderType.AGENT
            name = participant.display_name

        message = await self._message_store.append(
            public_id,
            sender_type=sender_type,
            sender_name=name,
            body=body,
            sender_id=participant.user_id,
            client_message_id=client_message_id,
        )
        chat_session = await self._registry.get_session(public_id)
        return to_message_response(message, chat_session)

    async def send_quick_reply(
        self, public_id: str, participant: Participant, reply_id: int
    ) -> MessageResponse:
        """Post a canned reply as the bound agent and count its use."""
        reply = await self._quick_replies.get_active(reply_id)
        response = await self.send(public_id, participant, reply.body)
        await self._quick_replies.record_use(reply.id)
        return response

    async def mark_read(
        self, public_id: str, participant: Participant, up_to_id: int
    ) -> ReadStateResponse:
        await self.get_session(public_id, participant)
        chat_session = await self._message_store.mark_read(
            public_id, participant.role, up_to_id
        )
        last_read = (
            chat_session.customer_read_id
            if participant.role == PartyRole.CUSTOMER
            else chat_session.agent_read_id
        )
        return ReadStateResponse(
            last_read_id=last_read,
            unread_count=await self._message_store.unread_count(
                chat_session, participant.role
            ),
        )

    async def close(
        self,
        public_id: str,
        participant: Participant,
        rating: int | None = None,
        feedback: str | None = None,
    ) -> ChatSession:
        """Close on behalf of the caller once they are allowed to."""
        chat_session = await self._registry.get_session(public_id)
        ensure_can_close(chat_session, participant)
        return await self._registry.close(
            public_id,
            closed_by=participant.role,
            rating=rating,
            feedback=feedback,
        )

    # --- Heartbeats ---

    async def _touch_heartbeat(self, public_id: str, role: PartyRole) -> None:
        await self._redis.set(
            f"{HEARTBEAT_PREFIX}{public_id}:{role.value}",
            utc_now().isoformat(),
            ex=self._config.heartbeat_ttl_seconds,
        )

    async def _last_seen(self, public_id: str, role: PartyRole) -> datetime | None:
        value = await self._redis.get(f"{HEARTBEAT_PREFIX}{public_id}:{role.value}")
        return datetime.fromisoformat(value) if value else None
