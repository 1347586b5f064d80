"""Revoke an access token until it expires.

Usage:
    python -m scripts.revoke_token <token>
"""

import argparse
import asyncio

from helpdesk.core.redis import close_redis, init_redis
from helpdesk.services.token_service import TokenService


async def revoke(token: str) -> None:
    redis_client = await init_redis()
    try:
        service = TokenService(redis_client)
        payload = await service.revoke(token)
        print(f"Revoked token {payload.jti} for user {payload.user_id}")
    finally:
        await close_redis()


def main() -> None:
    parser = argparse.ArgumentParser(description="Revoke an access token")
    parser.add_argument("token", help="Encoded JWT access token")
    args = parser.parse_args()
    asyncio.run(revoke(args.token))


if __name__ == "__main__":
    main()
