"""Support message API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from helpdesk.models.enums import SenderType


class SendMessageRequest(BaseModel):
    """Message posted by a customer or agent."""

    body: str = Field(..., description="Message text")
    sender_name: str | None = Field(
        default=None,
        max_length=100,
        description="Display name snapshot (customers only)",
    )
    client_message_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=64,
        description="Client idempotency key used to reconcile local echoes",
    )


class MarkReadRequest(BaseModel):
    """Acknowledge messages up to and including ``up_to_id``."""

    up_to_id: int = Field(..., ge=0)


class MessageResponse(BaseModel):
    """Single message as seen by polling clients."""

    model_config = ConfigDict(frozen=True)

    id: int
    session_id: str
    sender_id: int | None = None
    sender_type: SenderType
    sender_name: str
    body: str
    client_message_id: str | None = None
    created_at: datetime
    read_by: list[str] = Field(default_factory=list)


class ReadStateResponse(BaseModel):
    """Read cursor of the caller after acknowledging."""

    model_config = ConfigDict(frozen=True)

    last_read_id: int
    unread_count: int
