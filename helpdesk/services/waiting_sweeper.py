"""Background task that closes sessions left waiting too long."""

import asyncio

import structlog

from helpdesk.core.config import settings
from helpdesk.core.database import async_session_factory
from helpdesk.core.redis import get_redis
from helpdesk.dependencies import build_session_registry

logger = structlog.get_logger()


async def sweep_waiting_sessions() -> int:
    """Run one expiry pass in an independent DB session."""
    async with async_session_factory() as session:
        registry = build_session_registry(session, get_redis())
        return await registry.expire_waiting_sessions()


async def run_waiting_sweeper(interval_seconds: float | None = None) -> None:
    """Sweep forever; meant to run as a lifespan task and be cancelled on shutdown.

    A failed pass is logged and retried on the next interval.
    """
    interval = interval_seconds or settings.support.sweep_interval_seconds
    logger.info(
        "Waiting-session sweeper started",
        interval_seconds=interval,
        timeout_seconds=settings.support.waiting_timeout_seconds,
    )
    while True:
        try:
            expired = await sweep_waiting_sessions()
            if expired:
                logger.info("Expired waiting sessions", count=expired)
        except Exception:
            logger.exception("Waiting-session sweep failed")
        await asyncio.sleep(interval)
