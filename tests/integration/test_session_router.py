"""Integration tests for /api/v1/sessions."""

from httpx import AsyncClient

from tests.conftest import load_agent, seed_agent


async def _start(client: AsyncClient, **body: object) -> dict:
    resp = await client.post("/api/v1/sessions", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestStartSession:
    async def test_starts_waiting_without_agents(
        self, customer_client: AsyncClient
    ) -> None:
        data = await _start(
            customer_client,
            category="billing",
            priority="high",
            initial_message="My invoice is wrong",
        )
        assert data["status"] == "waiting"
        assert data["priority"] == "high"
        assert data["customer_id"] == 1
        assert data["last_message_id"] == 1

    async def test_auto_assigns_online_agent(
        self, customer_client: AsyncClient
    ) -> None:
        agent_id = await seed_agent(user_id=100)

        data = await _start(customer_client)

        assert data["status"] == "active"
        assert data["agent_id"] == agent_id
        assert (await load_agent(agent_id)).current_load == 1

    async def test_invalid_priority(self, customer_client: AsyncClient) -> None:
        resp = await customer_client.post("/api/v1/sessions", json={"priority": "asap"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_PRIORITY"

    async def test_agents_cannot_start(self, agent_client: AsyncClient) -> None:
        await seed_agent(user_id=100)
        resp = await agent_client.post("/api/v1/sessions", json={})
        assert resp.status_code == 403


class TestQueue:
    async def test_list_waiting_in_priority_order(
        self,
        customer_client: AsyncClient,
        other_customer_client: AsyncClient,
        admin_client: AsyncClient,
    ) -> None:
        medium = await _start(customer_client, priority="medium")
        high = await _start(other_customer_client, priority="high")

        resp = await admin_client.get("/api/v1/sessions", params={"status": "waiting"})

        assert resp.status_code == 200
        ids = [s["public_id"] for s in resp.json()["data"]["sessions"]]
        assert ids == [high["public_id"], medium["public_id"]]

    async def test_customer_cannot_list(self, customer_client: AsyncClient) -> None:
        resp = await customer_client.get("/api/v1/sessions")
        assert resp.status_code == 403

    async def test_customer_lists_own_history(
        self, customer_client: AsyncClient, other_customer_client: AsyncClient
    ) -> None:
        first = await _start(customer_client)
        await _start(other_customer_client)
        await customer_client.post(
            f"/api/v1/sessions/{first['public_id']}/close", json={}
        )
        second = await _start(customer_client)

        resp = await customer_client.get("/api/v1/sessions/mine")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] is None
        assert {s["public_id"] for s in data["sessions"]} == {
            first["public_id"],
            second["public_id"],
        }

        resp = await customer_client.get(
            "/api/v1/sessions/mine", params={"status": "closed"}
        )
        ids = [s["public_id"] for s in resp.json()["data"]["sessions"]]
        assert ids == [first["public_id"]]

    async def test_agent_lists_own_chats(
        self,
        customer_client: AsyncClient,
        other_customer_client: AsyncClient,
        agent_client: AsyncClient,
    ) -> None:
        agent_id = await seed_agent(user_id=100, max_concurrent_chats=1)
        mine = await _start(customer_client)
        waiting = await _start(other_customer_client)
        assert mine["agent_id"] == agent_id
        assert waiting["status"] == "waiting"

        resp = await agent_client.get("/api/v1/sessions/mine")

        assert resp.status_code == 200
        ids = [s["public_id"] for s in resp.json()["data"]["sessions"]]
        assert ids == [mine["public_id"]]


class TestConversation:
    """Full customer/agent exchange over the poll protocol."""

    async def test_messages_flow_between_parties(
        self, customer_client: AsyncClient, agent_client: AsyncClient
    ) -> None:
        await seed_agent(user_id=100, display_name="Dana")
        session = await _start(customer_client)
        public_id = session["public_id"]

        for text in ("one", "two", "three"):
            resp = await customer_client.post(
                f"/api/v1/sessions/{public_id}/messages", json={"body": text}
            )
            assert resp.status_code == 201

        resp = await agent_client.get(
            f"/api/v1/sessions/{public_id}/poll", params={"after": 0}
        )
        assert resp.status_code == 200
        poll = resp.json()["data"]
        customer_bodies = [
            m["body"] for m in poll["messages"] if m["sender_type"] == "customer"
        ]
        assert customer_bodies == ["one", "two", "three"]
        assert [m["id"] for m in poll["messages"]] == [1, 2, 3, 4]
        assert poll["cursor"] == 4
        assert poll["poll_interval_seconds"] > 0

        resp = await agent_client.post(
            f"/api/v1/sessions/{public_id}/messages", json={"body": "Hi, I'm here"}
        )
        assert resp.json()["data"]["sender_name"] == "Dana"

        resp = await customer_client.get(
            f"/api/v1/sessions/{public_id}/poll", params={"after": 4}
        )
        poll = resp.json()["data"]
        assert [m["body"] for m in poll["messages"]] == ["Hi, I'm here"]
        assert poll["counterpart_last_seen_at"] is not None

    async def test_duplicate_client_message_id(
        self, customer_client: AsyncClient
    ) -> None:
        session = await _start(customer_client)
        url = f"/api/v1/sessions/{session['public_id']}/messages"
        body = {"body": "hello", "client_message_id": "local-1"}

        first = (await customer_client.post(url, json=body)).json()["data"]
        second = (await customer_client.post(url, json=body)).json()["data"]

        assert first["id"] == second["id"] == 1

    async def test_empty_body(self, customer_client: AsyncClient) -> None:
        session = await _start(customer_client)
        resp = await customer_client.post(
            f"/api/v1/sessions/{session['public_id']}/messages", json={"body": "  "}
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "EMPTY_MESSAGE_BODY"

    async def test_admin_with_agent_record_sends_as_that_agent(
        self, customer_client: AsyncClient, admin_client: AsyncClient
    ) -> None:
        agent_id = await seed_agent(user_id=900, display_name="Ops Lead")
        session = await _start(customer_client)
        assert session["agent_id"] == agent_id

        resp = await admin_client.post(
            f"/api/v1/sessions/{session['public_id']}/messages",
            json={"body": "Taking this one"},
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["sender_type"] == "agent"
        assert data["sender_name"] == "Ops Lead"

    async def test_other_customer_is_forbidden(
        self, customer_client: AsyncClient, other_customer_client: AsyncClient
    ) -> None:
        session = await _start(customer_client)
        resp = await other_customer_client.get(
            f"/api/v1/sessions/{session['public_id']}/poll"
        )
        assert resp.status_code == 403

    async def test_unknown_session(self, customer_client: AsyncClient) -> None:
        resp = await customer_client.get("/api/v1/sessions/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["code"] == "UNKNOWN_SESSION"

    async def test_mark_read(
        self, customer_client: AsyncClient, agent_client: AsyncClient
    ) -> None:
        await seed_agent(user_id=100)
        session = await _start(customer_client, initial_message="hi")
        public_id = session["public_id"]

        resp = await agent_client.post(
            f"/api/v1/sessions/{public_id}/read", json={"up_to_id": 1}
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["last_read_id"] == 1


class TestLifecycle:
    async def test_assign_resolve_close_with_rating(
        self,
        customer_client: AsyncClient,
        agent_client: AsyncClient,
    ) -> None:
        agent_id = await seed_agent(user_id=100, is_online=False)
        session = await _start(customer_client)
        public_id = session["public_id"]
        await agent_client.put("/api/v1/agents/me/presence", json={"is_online": True})

        resp = await agent_client.post(f"/api/v1/sessions/{public_id}/assign", json={})
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "active"

        resp = await agent_client.post(f"/api/v1/sessions/{public_id}/resolve")
        assert resp.json()["data"]["status"] == "resolved"
        assert (await load_agent(agent_id)).current_load == 0

        resp = await customer_client.post(
            f"/api/v1/sessions/{public_id}/close",
            json={"rating": 5, "feedback": "Quick and helpful"},
        )
        data = resp.json()["data"]
        assert data["status"] == "closed"
        assert data["rating"] == 5
        assert data["close_reason"] == "customer_closed"

    async def test_close_active_then_close_again(
        self, customer_client: AsyncClient
    ) -> None:
        agent_id = await seed_agent(user_id=100)
        session = await _start(customer_client)
        url = f"/api/v1/sessions/{session['public_id']}/close"

        resp = await customer_client.post(url, json={"rating": 5})
        assert resp.status_code == 200
        assert (await load_agent(agent_id)).current_load == 0

        resp = await customer_client.post(url, json={})
        assert resp.status_code == 409
        assert resp.json()["code"] == "SESSION_CLOSED"
        assert (await load_agent(agent_id)).current_load == 0

    async def test_send_after_close(self, customer_client: AsyncClient) -> None:
        session = await _start(customer_client, initial_message="hi")
        public_id = session["public_id"]
        await customer_client.post(f"/api/v1/sessions/{public_id}/close", json={})

        resp = await customer_client.post(
            f"/api/v1/sessions/{public_id}/messages", json={"body": "still there?"}
        )

        assert resp.status_code == 409
        assert resp.json()["code"] == "SESSION_CLOSED"

    async def test_agent_cannot_rate(
        self, customer_client: AsyncClient, agent_client: AsyncClient
    ) -> None:
        await seed_agent(user_id=100)
        session = await _start(customer_client)

        resp = await agent_client.post(
            f"/api/v1/sessions/{session['public_id']}/close", json={"rating": 5}
        )

        assert resp.status_code == 422
        assert resp.json()["code"] == "RATING_NOT_ALLOWED"

    async def test_agent_cannot_close_session_bound_to_another_agent(
        self, customer_client: AsyncClient, agent_client: AsyncClient
    ) -> None:
        await seed_agent(user_id=100, is_online=False)
        other_id = await seed_agent(user_id=101, display_name="Lee")
        session = await _start(customer_client)
        assert session["agent_id"] == other_id

        resp = await agent_client.post(
            f"/api/v1/sessions/{session['public_id']}/close", json={}
        )

        assert resp.status_code == 403
        assert resp.json()["code"] == "NOT_BOUND_AGENT"
        assert (await load_agent(other_id)).current_load == 1

    async def test_admin_force_closes(
        self, customer_client: AsyncClient, admin_client: AsyncClient
    ) -> None:
        agent_id = await seed_agent(user_id=100)
        session = await _start(customer_client)

        resp = await admin_client.post(
            f"/api/v1/sessions/{session['public_id']}/close", json={}
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["close_reason"] == "agent_closed"
        assert (await load_agent(agent_id)).current_load == 0

    async def test_agent_cannot_assign_someone_else(
        self, customer_client: AsyncClient, agent_client: AsyncClient
    ) -> None:
        await seed_agent(user_id=100, is_online=False)
        other_id = await seed_agent(user_id=101, display_name="Lee")
        session = await _start(customer_client)
        assert session["agent_id"] == other_id

        resp = await agent_client.post(
            f"/api/v1/sessions/{session['public_id']}/assign",
            json={"agent_id": other_id},
        )

        assert resp.status_code == 403
        assert resp.json()["code"] == "NOT_BOUND_AGENT"

    async def test_admin_assigns_named_agent(
        self, customer_client: AsyncClient, admin_client: AsyncClient
    ) -> None:
        agent_id = await seed_agent(user_id=100, is_online=False)
        session = await _start(customer_client)
        await admin_client.put(
            f"/api/v1/agents/{agent_id}/presence", json={"is_online": True}
        )

        resp = await admin_client.post(
            f"/api/v1/sessions/{session['public_id']}/assign",
            json={"agent_id": agent_id},
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["agent_id"] == agent_id

    async def test_assign_at_capacity(
        self,
        customer_client: AsyncClient,
        other_customer_client: AsyncClient,
        admin_client: AsyncClient,
    ) -> None:
        agent_id = await seed_agent(user_id=100, max_concurrent_chats=1)
        await _start(customer_client)
        waiting = await _start(other_customer_client)
        assert waiting["status"] == "waiting"

        resp = await admin_client.post(
            f"/api/v1/sessions/{waiting['public_id']}/assign",
            json={"agent_id": agent_id},
        )

        assert resp.status_code == 409
        assert resp.json()["code"] == "AGENT_AT_CAPACITY"
        assert resp.json()["category"] == "capacity"
        assert (await load_agent(agent_id)).current_load == 1
