"""Quick reply API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CreateQuickReplyRequest(BaseModel):
    """New canned reply."""

    category: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=100)
    body: str = Field(..., min_length=1, max_length=4000)


class UpdateQuickReplyRequest(BaseModel):
    """Edit a canned reply; omitted fields stay as they are."""

    category: str | None = Field(default=None, min_length=1, max_length=50)
    title: str | None = Field(default=None, min_length=1, max_length=100)
    body: str | None = Field(default=None, min_length=1, max_length=4000)
    is_active: bool | None = Field(
        default=None, description="Inactive replies are hidden from agents"
    )


class QuickReplyResponse(BaseModel):
    """Canned reply entry."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    category: str
    title: str
    body: str
    use_count: int
    is_active: bool
    created_at: datetime
