"""Session statistics schemas."""

from pydantic import BaseModel, ConfigDict, Field


class SessionStatsResponse(BaseModel):
    """Aggregate support metrics."""

    model_config = ConfigDict(frozen=True)

    total_sessions: int
    by_status: dict[str, int] = Field(default_factory=dict)
    open_sessions: int
    average_rating: float | None = None
    average_resolution_seconds: float | None = None
    messages_per_session: float
