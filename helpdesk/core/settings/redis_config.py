"""Redis connection configuration."""

from typing import Any

from pydantic import BaseModel


class RedisConfig(BaseModel, frozen=True):
    """Redis connection settings.

    Redis holds coordination locks, poll heartbeats and the token blacklist,
    so a slow server stalls session transitions. Socket timeouts stay short.
    """

    url: str
    socket_timeout_seconds: float = 2.0
    health_check_interval_seconds: int = 30

    @property
    def client_options(self) -> dict[str, Any]:
        """Keyword arguments for ``redis.asyncio.from_url``."""
        return {
            "decode_responses": True,
            "socket_timeout": self.socket_timeout_seconds,
            "socket_connect_timeout": self.socket_timeout_seconds,
            "health_check_interval": self.health_check_interval_seconds,
        }
