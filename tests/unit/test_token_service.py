"""Tests for TokenService."""

import time

import fakeredis.aioredis
import jwt as pyjwt
import pytest

from helpdesk.core.config import settings
from helpdesk.core.exceptions import (
    InvalidTokenError,
    TokenExpiredError,
    TokenRevokedError,
    UnknownRoleError,
)
from helpdesk.services.token_service import TokenService


@pytest.fixture
def ts(fake_redis: fakeredis.aioredis.FakeRedis) -> TokenService:
    return TokenService(fake_redis)


def _sign(**overrides: object) -> str:
    claims: dict[str, object] = {
        "sub": "1",
        "email": "a@b.com",
        "role": "customer",
        "type": "access",
        "jti": "test-jti",
        "exp": int(time.time()) + 600,
    }
    claims.update(overrides)
    return pyjwt.encode(
        {k: v for k, v in claims.items() if v is not None},
        settings.auth.secret_key.get_secret_value(),
        algorithm=settings.auth.algorithm,
    )


class TestCreateTokens:
    """Tests for token creation."""

    def test_access_token_decodes_correctly(self, ts: TokenService) -> None:
        token = ts.create_access_token(user_id=42, email="dana@example.com", role="agent")
        payload = ts.decode_token(token)
        assert payload.sub == "42"
        assert payload.email == "dana@example.com"
        assert payload.role == "agent"
        assert payload.type == "access"
        assert payload.jti is not None

    def test_each_token_has_unique_jti(self, ts: TokenService) -> None:
        first = ts.decode_token(ts.create_access_token(1, "a@b.com", "customer"))
        second = ts.decode_token(ts.create_access_token(1, "a@b.com", "customer"))
        assert first.jti != second.jti


class TestDecodeToken:
    """Tests for token decoding."""

    def test_invalid_token_raises(self, ts: TokenService) -> None:
        with pytest.raises(InvalidTokenError):
            ts.decode_token("not.a.valid.token")

    def test_wrong_secret_raises(self, ts: TokenService) -> None:
        token = pyjwt.encode({"sub": "1"}, "another-secret", algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            ts.decode_token(token)

    def test_refresh_token_type_rejected(self, ts: TokenService) -> None:
        with pytest.raises(InvalidTokenError):
            ts.decode_token(_sign(type="refresh"))

    def test_missing_claim_rejected(self, ts: TokenService) -> None:
        with pytest.raises(InvalidTokenError):
            ts.decode_token(_sign(email=None))

    def test_non_numeric_subject_rejected(self, ts: TokenService) -> None:
        with pytest.raises(InvalidTokenError):
            ts.decode_token(_sign(sub="dana"))

    def test_expired_token_raises(self, ts: TokenService) -> None:
        payload = {
            "sub": "1",
            "email": "a@b.com",
            "role": "customer",
            "type": "access",
            "jti": "test-jti",
            "exp": int(time.time()) - 10,
        }
        expired_token = pyjwt.encode(
            payload,
            settings.auth.secret_key.get_secret_value(),
            algorithm=settings.auth.algorithm,
        )
        with pytest.raises(TokenExpiredError):
            ts.decode_token(expired_token)


class TestBlacklist:
    """Tests for token blacklisting."""

    async def test_blacklist_and_check(self, ts: TokenService) -> None:
        await ts.blacklist_token("jti-123", int(time.time()) + 3600)
        assert await ts.is_blacklisted("jti-123") is True

    async def test_not_blacklisted(self, ts: TokenService) -> None:
        assert await ts.is_blacklisted("unknown") is False

    async def test_expired_token_not_stored(self, ts: TokenService) -> None:
        await ts.blacklist_token("jti-old", int(time.time()) - 10)
        assert await ts.is_blacklisted("jti-old") is False


class TestAuthenticate:
    """Checks applied to every request's bearer token."""

    async def test_valid_token(self, ts: TokenService) -> None:
        token = ts.create_access_token(user_id=7, email="dana@example.com", role="agent")
        payload = await ts.authenticate(token)
        assert payload.user_id == 7
        assert payload.role == "agent"

    async def test_unknown_role_rejected(self, ts: TokenService) -> None:
        token = ts.create_access_token(user_id=7, email="a@b.com", role="user")
        with pytest.raises(UnknownRoleError) as exc_info:
            await ts.authenticate(token)
        assert exc_info.value.status_code == 403

    async def test_revoked_token_rejected(self, ts: TokenService) -> None:
        token = ts.create_access_token(user_id=7, email="a@b.com", role="customer")
        await ts.revoke(token)
        with pytest.raises(TokenRevokedError):
            await ts.authenticate(token)

    async def test_without_redis_nothing_is_revoked(self) -> None:
        ts = TokenService()
        token = ts.create_access_token(user_id=7, email="a@b.com", role="customer")
        assert (await ts.authenticate(token)).user_id == 7
