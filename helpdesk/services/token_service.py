"""Access tokens issued by the identity service: verification and revocation."""

import uuid
from datetime import UTC, datetime, timedelta

import jwt
import redis.asyncio as redis
import structlog
from pydantic import ValidationError

from helpdesk.core.config import settings
from helpdesk.core.exceptions import (
    InvalidTokenError,
    TokenExpiredError,
    TokenRevokedError,
    UnknownRoleError,
)
from helpdesk.schemas.auth_schema import TokenPayload

logger = structlog.get_logger()

BLACKLIST_PREFIX = "token_blacklist:"
KNOWN_ROLES: frozenset[str] = frozenset({"customer", "agent", "admin"})


class TokenService:
    """Verify the bearer tokens every request carries.

    Tokens are signed with the secret shared with the identity service.
    Revoked token ids live in Redis until the token would have expired;
    without a Redis client nothing counts as revoked.
    """

    def __init__(
        self, redis_client: redis.Redis | None = None  # type: ignore[type-arg]
    ) -> None:
        self._redis = redis_client
        self._secret = settings.auth.secret_key.get_secret_value()
        self._algorithm = settings.auth.algorithm

    def create_access_token(self, user_id: int, email: str, role: str) -> str:
        """Sign a token the way the identity service does (tests and dev tooling)."""
        now = datetime.now(UTC)
        expire = now + timedelta(minutes=settings.auth.access_token_expire_minutes)
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "type": "access",
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenPayload:
        """Check the signature and expiry and the claims this service relies on."""
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError from e

        try:
            payload = TokenPayload.model_validate(claims)
        except ValidationError as e:
            raise InvalidTokenError from e
        if payload.type != "access" or not payload.sub.isdigit():
            raise InvalidTokenError
        return payload

    async def authenticate(self, token: str) -> TokenPayload:
        """Full check for an incoming request: valid, not revoked, known role."""
        payload = self.decode_token(token)
        if await self.is_blacklisted(payload.jti):
            raise TokenRevokedError
        if payload.role not in KNOWN_ROLES:
            logger.warning("Rejected token with unknown role", role=payload.role)
            raise UnknownRoleError
        return payload

    # --- Revocation ---

    async def revoke(self, token: str) -> TokenPayload:
        """Revoke a token for the rest of its lifetime."""
        payload = self.decode_token(token)
        await self.blacklist_token(payload.jti, payload.exp)
        logger.info("Token revoked", jti=payload.jti, user_id=payload.user_id)
        return payload

    async def blacklist_token(self, jti: str, exp: int) -> None:
        """Add a token id to the revocation list until it expires."""
        if self._redis is None:
            raise RuntimeError("Revoking tokens needs a Redis connection")
        ttl = exp - int(datetime.now(UTC).timestamp())
        if ttl > 0:
            await self._redis.setex(f"{BLACKLIST_PREFIX}{jti}", ttl, "1")

    async def is_blacklisted(self, jti: str) -> bool:
        if self._redis is None:
            return False
        return await self._redis.get(f"{BLACKLIST_PREFIX}{jti}") is not None
