"""Support agent database model."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.core.database import Base
from helpdesk.models.enums import utc_now


class SupportAgent(Base):
    """Staff identity that can be bound to support sessions."""

    __tablename__ = "support_agents"
    __table_args__ = (
        CheckConstraint(
            "current_load >= 0 AND current_load <= max_concurrent_chats",
            name="ck_support_agents_load_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    online_since: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    capabilities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    current_load: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_concurrent_chats: Mapped[int] = mapped_column(
        Integer, nullable=False, default=5
    )
    last_seen_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now()
    )

    @property
    def has_capacity(self) -> bool:
        return self.current_load < self.max_concurrent_chats

    def can_serve(self, category: str) -> bool:
        """Empty capabilities mean the agent serves every category."""
        return not self.capabilities or category in self.capabilities
