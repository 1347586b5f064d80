"""Redis-backed mutual exclusion for session and agent transitions."""

import asyncio
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import redis.asyncio as redis
import structlog

from helpdesk.core.exceptions import StaleStateError
from helpdesk.core.settings import SupportConfig

SESSION_LOCK_PREFIX = "lock:session:"
AGENT_LOCK_PREFIX = "lock:agent:"

RETRY_DELAY_SECONDS = 0.02

# Delete only when the stored token is still ours, in one round trip.
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

logger = structlog.get_logger()


class LockService:
    """Short-lived exclusive locks keyed by session or agent.

    Locks are always taken in the order session -> agent. A lock that
    cannot be taken within ``lock_wait_seconds`` surfaces as STALE_STATE so
    the caller re-reads the session before retrying.
    """

    def __init__(
        self,
        redis_client: redis.Redis,  # type: ignore[type-arg]
        config: SupportConfig,
    ) -> None:
        self._redis = redis_client
        self._release_script = redis_client.register_script(RELEASE_SCRIPT)
        self._ttl_ms = config.lock_ttl_ms
        self._wait_seconds = config.lock_wait_seconds

    async def acquire(self, key: str) -> str | None:
        """Take ``key`` within the wait budget and return the owner token."""
        token = uuid.uuid4().hex
        deadline = time.monotonic() + self._wait_seconds
        while True:
            if await self._redis.set(key, token, px=self._ttl_ms, nx=True):
                return token
            if time.monotonic() >= deadline:
                return None
            await asyncio.sleep(RETRY_DELAY_SECONDS)

    async def release(self, key: str, token: str) -> bool:
        """Release ``key`` if this caller still owns it."""
        released = await self._release_script(keys=[key], args=[token])
        if not released:
            logger.warning("Lock expired before release", key=key)
        return bool(released)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold ``key`` for the duration of the block."""
        token = await self.acquire(key)
        if token is None:
            logger.warning("Lock wait exceeded", key=key)
            raise StaleStateError("Session is busy, re-read and retry")
        try:
            yield
        finally:
            await self.release(key, token)

    def session(self, public_id: str) -> AbstractAsyncContextManager[None]:
        """Exclusive scope for one session's transitions and appends."""
        return self.hold(f"{SESSION_LOCK_PREFIX}{public_id}")

    def agent(self, agent_id: int) -> AbstractAsyncContextManager[None]:
        """Exclusive scope for one agent's load counter."""
        return self.hold(f"{AGENT_LOCK_PREFIX}{agent_id}")
