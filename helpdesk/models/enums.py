"""Enumerations shared by support session models and schemas."""

from datetime import UTC, datetime
from enum import StrEnum


class SessionStatus(StrEnum):
    """Lifecycle status of a support session."""

    WAITING = "waiting"
    ACTIVE = "active"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Priority(StrEnum):
    """Queue priority of a support session."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Ordinal used for queue ordering (higher is served first)."""
        return PRIORITY_RANK[self.value]


PRIORITY_RANK: dict[str, int] = {
    Priority.LOW.value: 1,
    Priority.MEDIUM.value: 2,
    Priority.HIGH.value: 3,
    Priority.URGENT.value: 4,
}


class SenderType(StrEnum):
    """Author kind of a chat message."""

    CUSTOMER = "customer"
    AGENT = "agent"
    SYSTEM = "system"


class PartyRole(StrEnum):
    """Side of the conversation a client polls for."""

    CUSTOMER = "customer"
    AGENT = "agent"


class CloseReason(StrEnum):
    """Why a session reached the closed state."""

    CUSTOMER_CLOSED = "customer_closed"
    AGENT_CLOSED = "agent_closed"
    TIMED_OUT = "timed_out"


def utc_now() -> datetime:
    """Timezone-aware current time used for application-side timestamps."""
    return datetime.now(UTC)
