"""Integration tests for /api/v1/agents."""

from httpx import AsyncClient

from tests.conftest import seed_agent


class TestAgentProfile:
    async def test_me(self, agent_client: AsyncClient) -> None:
        agent_id = await seed_agent(user_id=100, display_name="Dana")

        resp = await agent_client.get("/api/v1/agents/me")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["id"] == agent_id
        assert data["display_name"] == "Dana"

    async def test_me_without_agent_record(self, agent_client: AsyncClient) -> None:
        resp = await agent_client.get("/api/v1/agents/me")
        assert resp.status_code == 404
        assert resp.json()["code"] == "UNKNOWN_AGENT"

    async def test_roster(self, admin_client: AsyncClient) -> None:
        await seed_agent(user_id=100, display_name="Dana")
        await seed_agent(user_id=101, display_name="Lee", is_online=False)

        resp = await admin_client.get("/api/v1/agents", params={"online_only": True})

        assert [a["display_name"] for a in resp.json()["data"]] == ["Dana"]


class TestPresence:
    async def test_go_online_and_offline(self, agent_client: AsyncClient) -> None:
        await seed_agent(user_id=100, is_online=False)

        resp = await agent_client.put(
            "/api/v1/agents/me/presence", json={"is_online": True}
        )
        assert resp.json()["data"]["is_online"] is True
        assert resp.json()["data"]["online_since"] is not None

        resp = await agent_client.put(
            "/api/v1/agents/me/presence", json={"is_online": False}
        )
        assert resp.json()["data"]["is_online"] is False

    async def test_agent_cannot_set_other_presence(
        self, agent_client: AsyncClient
    ) -> None:
        await seed_agent(user_id=100)
        other_id = await seed_agent(user_id=101, display_name="Lee")

        resp = await agent_client.put(
            f"/api/v1/agents/{other_id}/presence", json={"is_online": False}
        )

        assert resp.status_code == 403

    async def test_admin_override(self, admin_client: AsyncClient) -> None:
        agent_id = await seed_agent(user_id=100)

        resp = await admin_client.put(
            f"/api/v1/agents/{agent_id}/presence", json={"is_online": False}
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["is_online"] is False


class TestJoin:
    async def test_join_takes_highest_priority(
        self,
        customer_client: AsyncClient,
        other_customer_client: AsyncClient,
        agent_client: AsyncClient,
    ) -> None:
        await seed_agent(user_id=100, is_online=False)
        await customer_client.post("/api/v1/sessions", json={"priority": "low"})
        resp = await other_customer_client.post(
            "/api/v1/sessions", json={"priority": "urgent"}
        )
        urgent_id = resp.json()["data"]["public_id"]
        await agent_client.put("/api/v1/agents/me/presence", json={"is_online": True})

        resp = await agent_client.post("/api/v1/agents/me/join")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["public_id"] == urgent_id
        assert data["status"] == "active"

    async def test_join_empty_queue(self, agent_client: AsyncClient) -> None:
        await seed_agent(user_id=100)

        resp = await agent_client.post("/api/v1/agents/me/join")

        assert resp.status_code == 200
        assert resp.json()["data"] is None

    async def test_join_while_offline(self, agent_client: AsyncClient) -> None:
        await seed_agent(user_id=100, is_online=False)

        resp = await agent_client.post("/api/v1/agents/me/join")

        assert resp.status_code == 409
        assert resp.json()["code"] == "AGENT_OFFLINE"
