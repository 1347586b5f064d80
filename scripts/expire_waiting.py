"""Run one waiting-session timeout sweep and exit.

Usage:
    python -m scripts.expire_waiting
"""

import asyncio

from helpdesk.core.database import engine
from helpdesk.core.redis import close_redis, init_redis
from helpdesk.services.waiting_sweeper import sweep_waiting_sessions


async def expire_waiting() -> None:
    await init_redis()
    try:
        expired = await sweep_waiting_sessions()
        print(f"Closed {expired} timed-out waiting session(s)")
    finally:
        await close_redis()
        await engine.dispose()


def main() -> None:
    asyncio.run(expire_waiting())


if __name__ == "__main__":
    main()
