"""Support session state machine: start, assign, resolve, close, expire."""

import uuid
from datetime import timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import (
    AgentAtCapacityError,
    AgentOfflineError,
    AlreadyAssignedError,
    AppException,
    InvalidPriorityError,
    InvalidTransitionError,
    NoAgentAvailableError,
    NotBoundAgentError,
    RatingNotAllowedError,
    RatingOutOfRangeError,
    SessionClosedError,
    SessionNotFoundError,
    StaleStateError,
)
from helpdesk.core.settings import SupportConfig
from helpdesk.models.chat_session import ChatSession
from helpdesk.models.enums import (
    CloseReason,
    PartyRole,
    Priority,
    SenderType,
    SessionStatus,
    utc_now,
)
from helpdesk.repositories.session_repo import SessionRepository
from helpdesk.services.agent_pool import AgentPool
from helpdesk.services.lock_service import LockService
from helpdesk.services.message_store import MessageStore, normalize_body

logger = structlog.get_logger()

ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.WAITING: frozenset({SessionStatus.ACTIVE, SessionStatus.CLOSED}),
    SessionStatus.ACTIVE: frozenset({SessionStatus.RESOLVED, SessionStatus.CLOSED}),
    SessionStatus.RESOLVED: frozenset({SessionStatus.CLOSED}),
    SessionStatus.CLOSED: frozenset(),
}

SYSTEM_SENDER_NAME = "System"
JOIN_BATCH_SIZE = 50
DEFAULT_CATEGORY = "general"


def parse_priority(value: str | Priority) -> Priority:
    """Parse a priority name, case-insensitively."""
    try:
        return Priority(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidPriorityError(value) from exc


def normalize_category(value: str | None) -> str:
    return (value or "").strip().lower() or DEFAULT_CATEGORY


class SessionRegistry:
    """Only writer of ``ChatSession.status``.

    Every transition runs under the session lock (and the agent lock when it
    touches agent load), re-reads the row, applies a compare-and-swap update
    and commits before the lock is released. Failures roll back the whole
    transition.
    """

    def __init__(
        self,
        session: AsyncSession,
        session_repo: SessionRepository,
        agent_pool: AgentPool,
        message_store: MessageStore,
        locks: LockService,
        config: SupportConfig,
    ) -> None:
        self._session = session
        self._session_repo = session_repo
        self._agent_pool = agent_pool
        self._message_store = message_store
        self._locks = locks
        self._config = config

    async def get_session(self, public_id: str) -> ChatSession:
        chat_session = await self._session_repo.find_by_public_id(public_id)
        if chat_session is None:
            raise SessionNotFoundError()
        return chat_session

    async def list_by_status(
        self,
        status: SessionStatus,
        tenant_id: int | None = None,
        limit: int = 50,
    ) -> list[ChatSession]:
        """Queue view for the agent console."""
        return await self._session_repo.find_by_status(
            status, tenant_id=tenant_id, limit=limit
        )

    async def list_for_customer(
        self,
        customer_id: int,
        status: SessionStatus | None = None,
        limit: int = 50,
    ) -> list[ChatSession]:
        """A customer's session history, most recent activity first."""
        return await self._session_repo.find_by_party(
            customer_id=customer_id, status=status, limit=limit
        )

    async def list_for_agent(
        self,
        agent_id: int,
        status: SessionStatus | None = None,
        limit: int = 50,
    ) -> list[ChatSession]:
        """Sessions an agent has been bound to, most recent activity first."""
        return await self._session_repo.find_by_party(
            agent_id=agent_id, status=status, limit=limit
        )

    # --- Waiting ---

    async def start_session(
        self,
        customer_id: int,
        category: str | None = None,
        priority: str | Priority = Priority.MEDIUM,
        initial_message: str | None = None,
        tenant_id: int | None = None,
        customer_name: str | None = None,
        current_page: str | None = None,
        user_agent: str | None = None,
    ) -> ChatSession:
        """Open a waiting session and try to hand it to an agent right away."""
        level = parse_priority(priority)
        topic = normalize_category(category)
        opening = (
            normalize_body(initial_message, self._config.max_message_length)
            if initial_message is not None
            else None
        )

        try:
            chat_session = await self._session_repo.create(
                public_id=str(uuid.uuid4()),
                customer_id=customer_id,
                category=topic,
                priority=level.value,
                tenant_id=tenant_id,
                initial_message=opening,
                current_page=current_page,
                user_agent=user_agent,
            )
            if opening is not None:
                # Nobody else knows the new public id yet, so no lock is needed.
                await self._message_store.append_locked(
                    chat_session,
                    sender_type=SenderType.CUSTOMER,
                    sender_name=customer_name or "Customer",
                    body=opening,
                    sender_id=customer_id,
                )
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

        logger.info(
            "Session started",
            public_id=chat_session.public_id,
            customer_id=customer_id,
            category=topic,
            priority=level.value,
        )

        if self._config.auto_assign_on_start:
            return await self._try_auto_assign(chat_session)
        return chat_session

    async def _try_auto_assign(self, chat_session: ChatSession) -> ChatSession:
        # A failed assignment rolls back and expires loaded rows; keep plain values.
        public_id = chat_session.public_id
        category = chat_session.category
        try:
            agent = await self._agent_pool.select_agent(category)
        except NoAgentAvailableError:
            logger.info(
                "No agent available, session waiting",
                public_id=public_id,
                category=category,
            )
            return chat_session

        agent_id = agent.id
        try:
            return await self.assign_agent(public_id, agent_id)
        except AppException as exc:
            # Lost the agent to a concurrent assignment; stay in the queue.
            logger.info(
                "Auto-assignment skipped",
                public_id=public_id,
                agent_id=agent_id,
                code=exc.code,
            )
            return await self.get_session(public_id)

    # --- Waiting -> Active ---

    async def assign_agent(self, public_id: str, agent_id: int) -> ChatSession:
        """Bind an online agent with spare capacity to a waiting session."""
        async with self._locks.session(public_id), self._locks.agent(agent_id):
            try:
                chat_session = await self.get_session(public_id)
                if chat_session.status != SessionStatus.WAITING:
                    raise AlreadyAssignedError()

                agent = await self._agent_pool.get_agent(agent_id)
                if not agent.is_online:
                    raise AgentOfflineError()
                if not agent.has_capacity:
                    raise AgentAtCapacityError()
                if not await self._agent_pool.reserve(agent.id):
                    raise StaleStateError("Agent availability changed, retry")

                if not await self._session_repo.compare_and_set_status(
                    chat_session.id,
                    SessionStatus.WAITING,
                    SessionStatus.ACTIVE,
                    agent_id=agent.id,
                    agent_joined_at=utc_now(),
                ):
                    raise StaleStateError()

                await self._post_system_message(
                    chat_session, f"{agent.display_name} joined the chat"
                )
                await self._session.commit()
            except Exception:
                await self._session.rollback()
                raise

        logger.info("Agent assigned", public_id=public_id, agent_id=agent_id)
        return await self._session_repo.refresh(chat_session)

    async def join_waiting_session(self, agent_id: int) -> ChatSession | None:
        """Agent pull: take the next waiting session this agent can serve.

        Queue order is priority desc, then oldest first. Sessions taken by
        someone else in the meantime are skipped and the scan moves on, so
        the whole queue is considered. Returns None when nothing eligible is
        waiting.
        """
        agent = await self._agent_pool.get_agent(agent_id)
        if not agent.is_online:
            raise AgentOfflineError()
        if not agent.has_capacity:
            raise AgentAtCapacityError()
        categories = list(agent.capabilities) if agent.capabilities else None

        skipped: set[str] = set()
        while True:
            candidates = await self._session_repo.find_waiting_public_ids(
                categories=categories, exclude=skipped, limit=JOIN_BATCH_SIZE
            )
            if not candidates:
                return None
            for public_id in candidates:
                try:
                    return await self.assign_agent(public_id, agent_id)
                except (AlreadyAssignedError, StaleStateError) as exc:
                    skipped.add(public_id)
                    logger.info(
                        "Waiting session taken by another agent",
                        public_id=public_id,
                        agent_id=agent_id,
                        code=exc.code,
                    )


    # --- Active -> Resolved ---

    async def mark_resolved(self, public_id: str, agent_id: int) -> ChatSession:
        """Agent marks the work done; frees capacity while awaiting the customer."""
        async with self._locks.session(public_id):
            try:
                chat_session = await self.get_session(public_id)
                status = SessionStatus(chat_session.status)
                if status == SessionStatus.CLOSED:
                    raise SessionClosedError()
                if SessionStatus.RESOLVED not in ALLOWED_TRANSITIONS[status]:
                    raise InvalidTransitionError(status, SessionStatus.RESOLVED)
                if chat_session.agent_id != agent_id:
                    raise NotBoundAgentError()

                if not await self._session_repo.compare_and_set_status(
                    chat_session.id,
                    SessionStatus.ACTIVE,
                    SessionStatus.RESOLVED,
                    resolved_at=utc_now(),
                ):
                    raise StaleStateError()
                await self._agent_pool.release(agent_id)

                await self._post_system_message(
                    chat_session, "The agent marked this conversation as resolved"
                )
                await self._session.commit()
            except Exception:
                await self._session.rollback()
                raise

        logger.info("Session resolved", public_id=public_id, agent_id=agent_id)
        return await self._session_repo.refresh(chat_session)

    # --- * -> Closed ---

    async def close(
        self,
        public_id: str,
        closed_by: PartyRole | None,
        rating: int | None = None,
        feedback: str | None = None,
        reason: CloseReason | None = None,
    ) -> ChatSession:
        """Close a session from any non-terminal status.

        Rating and feedback come only from the customer and only here.
        ``closed_by`` of None means the system closed it.
        """
        if rating is not None and not 1 <= rating <= 5:
            raise RatingOutOfRangeError()
        feedback = feedback.strip() or None if feedback is not None else None
        if closed_by != PartyRole.CUSTOMER and (rating is not None or feedback):
            raise RatingNotAllowedError()
        if reason is None:
            reason = (
                CloseReason.CUSTOMER_CLOSED
                if closed_by == PartyRole.CUSTOMER
                else CloseReason.AGENT_CLOSED
            )

        async with self._locks.session(public_id):
            try:
                chat_session = await self.get_session(public_id)
                await self._close_locked(chat_session, reason, rating, feedback)
                await self._session.commit()
            except Exception:
                await self._session.rollback()
                raise

        logger.info(
            "Session closed",
            public_id=public_id,
            reason=reason.value,
            rating=rating,
        )
        return await self._session_repo.refresh(chat_session)

    async def _close_locked(
        self,
        chat_session: ChatSession,
        reason: CloseReason,
        rating: int | None,
        feedback: str | None,
    ) -> None:
        previous = SessionStatus(chat_session.status)
        if previous == SessionStatus.CLOSED:
            raise SessionClosedError()
        bound_agent_id = chat_session.agent_id

        # The closing notice must be the last message, so it goes in first.
        await self._post_system_message(
            chat_session,
            "Session closed: no agent became available"
            if reason == CloseReason.TIMED_OUT
            else "Chat session has been closed",
        )

        if not await self._session_repo.compare_and_set_status(
            chat_session.id,
            previous,
            SessionStatus.CLOSED,
            closed_at=utc_now(),
            close_reason=reason.value,
            rating=rating,
            feedback=feedback,
        ):
            raise StaleStateError()

        # Resolved sessions already gave their slot back.
        if previous == SessionStatus.ACTIVE and bound_agent_id is not None:
            await self._agent_pool.release(bound_agent_id)

    async def expire_waiting_sessions(self) -> int:
        """Close waiting sessions older than the configured timeout."""
        if not self._config.waiting_timeout_enabled:
            return 0
        cutoff = utc_now() - timedelta(seconds=self._config.waiting_timeout_seconds)
        public_ids = await self._session_repo.find_waiting_public_ids_before(cutoff)

        expired = 0
        for public_id in public_ids:
            try:
                async with self._locks.session(public_id):
                    try:
                        chat_session = await self.get_session(public_id)
                        if chat_session.status != SessionStatus.WAITING:
                            await self._session.rollback()
                            continue
                        await self._close_locked(
                            chat_session, CloseReason.TIMED_OUT, None, None
                        )
                        await self._session.commit()
                    except Exception:
                        await self._session.rollback()
                        raise
            except StaleStateError:
                logger.warning(
                    "Skipped busy session during expiry", public_id=public_id
                )
                continue
            expired += 1
            logger.info("Waiting session timed out", public_id=public_id)
        return expired

    async def _post_system_message(self, chat_session: ChatSession, text: str) -> None:
        if not self._config.system_messages_enabled:
            return
        await self._message_store.append_locked(
            chat_session,
            sender_type=SenderType.SYSTEM,
            sender_name=SYSTEM_SENDER_NAME,
            body=text,
        )
