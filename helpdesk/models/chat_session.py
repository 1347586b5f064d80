"""Support chat session database model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.core.database import Base
from helpdesk.models.enums import Priority, SessionStatus, utc_now


class ChatSession(Base):
    """One customer support conversation and its lifecycle state."""

    __tablename__ = "chat_sessions"
    __table_args__ = (
        Index("ix_chat_sessions_status_created_at", "status", "created_at"),
        Index("ix_chat_sessions_agent_id_status", "agent_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    public_id: Mapped[str] = mapped_column(
        String(36), unique=True, nullable=False, index=True
    )
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    tenant_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    agent_id: Mapped[int | None] = mapped_column(
        ForeignKey("support_agents.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SessionStatus.WAITING.value
    )
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, default="general"
    )
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=Priority.MEDIUM.value
    )
    initial_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_page: Mapped[str | None] = mapped_column(String(500), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Per-session message sequence and read cursors
    last_message_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    customer_read_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    agent_read_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now()
    )
    agent_joined_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    close_reason: Mapped[str | None] = mapped_column(String(30), nullable=True)

    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_closed(self) -> bool:
        return self.status == SessionStatus.CLOSED
