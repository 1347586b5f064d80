"""Support session API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from helpdesk.models.enums import CloseReason, Priority, SessionStatus


class StartSessionRequest(BaseModel):
    """Customer request to open a support session."""

    category: str = Field(default="general", min_length=1, max_length=50)
    priority: str = Field(
        default=Priority.MEDIUM.value,
        description="low, medium, high or urgent",
    )
    initial_message: str | None = Field(default=None, description="Opening message")
    tenant_id: int | None = Field(default=None, description="Owning tenant, if any")
    customer_name: str | None = Field(
        default=None, max_length=100, description="Display name shown to the agent"
    )
    current_page: str | None = Field(
        default=None, max_length=500, description="Page the widget was opened on"
    )


class AssignAgentRequest(BaseModel):
    """Bind a specific agent to a waiting session."""

    agent_id: int | None = Field(
        default=None, description="Agent to assign (defaults to the caller)"
    )


class CloseSessionRequest(BaseModel):
    """Close a session, optionally with the customer's rating."""

    rating: int | None = Field(default=None, description="1-5 stars")
    feedback: str | None = Field(default=None, max_length=2000)


class SessionResponse(BaseModel):
    """Client-facing session snapshot."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    public_id: str
    customer_id: int
    tenant_id: int | None = None
    agent_id: int | None = None
    status: SessionStatus
    category: str
    priority: Priority
    last_message_id: int
    created_at: datetime
    agent_joined_at: datetime | None = None
    last_message_at: datetime | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None
    close_reason: CloseReason | None = None
    rating: int | None = None
    feedback: str | None = None


class SessionListResponse(BaseModel):
    """Sessions in one status, in queue order, or one party's own sessions."""

    model_config = ConfigDict(frozen=True)

    status: SessionStatus | None = None
    sessions: list[SessionResponse]
