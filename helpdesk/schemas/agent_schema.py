"""Support agent API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PresenceRequest(BaseModel):
    """Operator-controlled presence flag."""

    is_online: bool


class AgentResponse(BaseModel):
    """Agent roster entry."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    user_id: int
    display_name: str
    is_online: bool
    online_since: datetime | None = None
    capabilities: list[str] = Field(default_factory=list)
    current_load: int
    max_concurrent_chats: int
    last_seen_at: datetime | None = None
