"""Integration tests for AuthMiddleware."""

import fakeredis.aioredis
import pytest
from httpx import AsyncClient

from helpdesk.services.token_service import TokenService
from tests.conftest import make_auth_headers


class TestPublicPaths:
    """Tests that public paths are accessible without auth."""

    async def test_health_check(self, async_client: AsyncClient) -> None:
        resp = await async_client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"status": "healthy", "redis": "ok"}

    async def test_health_degraded_without_redis(
        self, async_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("helpdesk.core.redis.redis_client", None)
        resp = await async_client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "degraded"

    async def test_root(self, async_client: AsyncClient) -> None:
        resp = await async_client.get("/")
        assert resp.status_code == 200
        assert resp.json()["data"]["app"] == "helpdesk"

    async def test_docs(self, async_client: AsyncClient) -> None:
        resp = await async_client.get("/docs")
        assert resp.status_code == 200


class TestProtectedPaths:
    """Tests that protected paths require auth."""

    async def test_without_token(self, async_client: AsyncClient) -> None:
        resp = await async_client.post("/api/v1/sessions", json={})
        assert resp.status_code == 401
        data = resp.json()
        assert data["status"] == 401
        assert data["code"] == "MISSING_TOKEN"
        assert data["category"] == "authentication"

    async def test_with_invalid_token(self, async_client: AsyncClient) -> None:
        resp = await async_client.post(
            "/api/v1/sessions",
            json={},
            headers={"Authorization": "Bearer invalid.token.here"},
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == "INVALID_TOKEN"

    async def test_with_valid_token(
        self,
        async_client: AsyncClient,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        resp = await async_client.post(
            "/api/v1/sessions",
            json={},
            headers=make_auth_headers(fake_redis),
        )
        assert resp.status_code == 201

    async def test_with_blacklisted_token(
        self,
        async_client: AsyncClient,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        ts = TokenService(fake_redis)
        token = ts.create_access_token(user_id=1, email="bl@test.com", role="customer")
        payload = ts.decode_token(token)
        await ts.blacklist_token(payload.jti, payload.exp)

        resp = await async_client.post(
            "/api/v1/sessions",
            json={},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == "TOKEN_BLACKLISTED"

    async def test_unknown_role(
        self,
        async_client: AsyncClient,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        resp = await async_client.get(
            "/api/v1/agents", headers=make_auth_headers(fake_redis, role="user")
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == "UNKNOWN_ROLE"

    @pytest.mark.parametrize(
        ("role", "path"),
        [
            ("customer", "/api/v1/agents"),
            ("customer", "/api/v1/stats/sessions"),
            ("agent", "/api/v1/stats/sessions"),
        ],
    )
    async def test_role_not_permitted(
        self,
        async_client: AsyncClient,
        fake_redis: fakeredis.aioredis.FakeRedis,
        role: str,
        path: str,
    ) -> None:
        resp = await async_client.get(
            path, headers=make_auth_headers(fake_redis, user_id=100, role=role)
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == "AUTHORIZATION_ERROR"
