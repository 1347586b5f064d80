"""Poll protocol schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from helpdesk.models.enums import PartyRole
from helpdesk.schemas.message_schema import MessageResponse
from helpdesk.schemas.session_schema import SessionResponse


class Participant(BaseModel):
    """Caller of a session operation, resolved from the access token."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    role: PartyRole
    display_name: str
    agent_id: int | None = None
    is_admin: bool = False


class PollResponse(BaseModel):
    """Everything a client needs to converge on the session state.

    ``cursor`` is the ``after`` value for the next poll. When ``has_more`` is
    true the client should poll again without waiting for the interval.
    """

    model_config = ConfigDict(frozen=True)

    session: SessionResponse
    messages: list[MessageResponse]
    cursor: int
    has_more: bool
    unread_count: int
    counterpart_last_seen_at: datetime | None = None
    poll_interval_seconds: float
