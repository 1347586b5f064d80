"""Support session coordination configuration."""

from pydantic import BaseModel


class SupportConfig(BaseModel, frozen=True):
    """Polling, locking, queueing and message limits for live support."""

    poll_interval_seconds: float
    poll_timeout_seconds: float
    poll_batch_limit: int
    heartbeat_ttl_seconds: int
    lock_ttl_seconds: int
    lock_wait_seconds: float
    waiting_timeout_seconds: int
    sweep_interval_seconds: int
    auto_assign_on_start: bool
    max_message_length: int
    system_messages_enabled: bool
    default_max_concurrent_chats: int

    @property
    def waiting_timeout_enabled(self) -> bool:
        """Whether long-waiting sessions are closed automatically."""
        return self.waiting_timeout_seconds > 0

    @property
    def lock_ttl_ms(self) -> int:
        """Lock expiry in milliseconds for Redis PX."""
        return self.lock_ttl_seconds * 1000
