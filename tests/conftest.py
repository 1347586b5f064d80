"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-helpdesk-tests")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from collections.abc import AsyncGenerator  # noqa: E402

import fakeredis.aioredis  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from helpdesk.core.config import settings  # noqa: E402
from helpdesk.core.database import Base  # noqa: E402
from helpdesk.core.settings import SupportConfig  # noqa: E402
from helpdesk.models.chat_message import ChatMessage  # noqa: E402, F401
from helpdesk.models.chat_session import ChatSession  # noqa: E402, F401
from helpdesk.models.quick_reply import QuickReply  # noqa: E402, F401
from helpdesk.models.support_agent import SupportAgent  # noqa: E402
from helpdesk.repositories.agent_repo import AgentRepository  # noqa: E402
from helpdesk.repositories.message_repo import MessageRepository  # noqa: E402
from helpdesk.repositories.quick_reply_repo import QuickReplyRepository  # noqa: E402
from helpdesk.repositories.session_repo import SessionRepository  # noqa: E402
from helpdesk.services.agent_pool import AgentPool  # noqa: E402
from helpdesk.services.lock_service import LockService  # noqa: E402
from helpdesk.services.message_store import MessageStore  # noqa: E402
from helpdesk.services.quick_reply_service import QuickReplyService  # noqa: E402
from helpdesk.services.session_registry import SessionRegistry  # noqa: E402
from helpdesk.services.sync_gateway import SyncGateway  # noqa: E402
from helpdesk.services.token_service import TokenService  # noqa: E402

# --- Test DB (SQLite in-memory) ---

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(autouse=True)
async def setup_db() -> AsyncGenerator[None, None]:
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session."""
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# --- Test Redis (fakeredis) ---


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Create a fresh fake Redis client."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def patch_redis(
    fake_redis: fakeredis.aioredis.FakeRedis, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Patch the global redis_client read by middleware and get_redis()."""
    monkeypatch.setattr("helpdesk.core.redis.redis_client", fake_redis)


# --- Token helpers ---


@pytest.fixture
def token_service(fake_redis: fakeredis.aioredis.FakeRedis) -> TokenService:
    """Create a TokenService backed by fake Redis."""
    return TokenService(fake_redis)


def make_auth_headers(
    fake_redis: fakeredis.aioredis.FakeRedis,
    user_id: int = 1,
    email: str = "test@test.com",
    role: str = "customer",
) -> dict[str, str]:
    """Generate Authorization headers with a valid access token."""
    ts = TokenService(fake_redis)
    token = ts.create_access_token(user_id=user_id, email=email, role=role)
    return {"Authorization": f"Bearer {token}"}


# --- Seed helpers ---


async def seed_agent(
    user_id: int,
    display_name: str = "Dana",
    is_online: bool = True,
    capabilities: list[str] | None = None,
    max_concurrent_chats: int = 2,
) -> int:
    """Insert an agent and return its id."""
    async with test_session_factory() as session:
        repo = AgentRepository(session)
        agent = await repo.create(
            user_id=user_id,
            display_name=display_name,
            capabilities=capabilities or [],
            max_concurrent_chats=max_concurrent_chats,
        )
        agent_id = agent.id
        await session.commit()
    if is_online:
        async with test_session_factory() as session:
            await AgentPool(AgentRepository(session), session).set_presence(
                agent_id, True
            )
    return agent_id


# --- Service fixtures ---


@pytest.fixture
def support_config() -> SupportConfig:
    """Support settings with fast lock waits and auto-assignment off."""
    return settings.support.model_copy(
        update={
            "lock_wait_seconds": 0.2,
            "auto_assign_on_start": False,
        }
    )


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a raw async session for repository and service tests."""
    async with test_session_factory() as session:
        yield session


def build_registry(
    session: AsyncSession,
    redis_client: fakeredis.aioredis.FakeRedis,
    config: SupportConfig,
) -> SessionRegistry:
    """Wire a SessionRegistry against the test database."""
    locks = LockService(redis_client, config)
    return SessionRegistry(
        session=session,
        session_repo=SessionRepository(session),
        agent_pool=AgentPool(AgentRepository(session), session),
        message_store=MessageStore(
            session=session,
            message_repo=MessageRepository(session),
            session_repo=SessionRepository(session),
            locks=locks,
            config=config,
        ),
        locks=locks,
        config=config,
    )


@pytest.fixture
def registry(
    db_session: AsyncSession,
    fake_redis: fakeredis.aioredis.FakeRedis,
    support_config: SupportConfig,
) -> SessionRegistry:
    return build_registry(db_session, fake_redis, support_config)


@pytest.fixture
def message_store(
    db_session: AsyncSession,
    fake_redis: fakeredis.aioredis.FakeRedis,
    support_config: SupportConfig,
) -> MessageStore:
    return MessageStore(
        session=db_session,
        message_repo=MessageRepository(db_session),
        session_repo=SessionRepository(db_session),
        locks=LockService(fake_redis, support_config),
        config=support_config,
    )


@pytest.fixture
def agent_pool(db_session: AsyncSession) -> AgentPool:
    return AgentPool(AgentRepository(db_session), db_session)


@pytest.fixture
def gateway(
    db_session: AsyncSession,
    fake_redis: fakeredis.aioredis.FakeRedis,
    support_config: SupportConfig,
    registry: SessionRegistry,
    message_store: MessageStore,
) -> SyncGateway:
    return SyncGateway(
        registry=registry,
        message_store=message_store,
        quick_replies=QuickReplyService(QuickReplyRepository(db_session), db_session),
        redis_client=fake_redis,
        config=support_config,
    )


async def load_agent(agent_id: int) -> SupportAgent:
    """Fresh copy of an agent row."""
    async with test_session_factory() as session:
        agent = await AgentRepository(session).find_by_id(agent_id)
        assert agent is not None
        return agent


# --- App override & client fixtures ---


def _get_app():  # type: ignore[no-untyped-def]
    """Import app lazily and apply overrides."""
    from helpdesk.core.database import get_async_session as original_dep
    from helpdesk.main import app

    app.dependency_overrides[original_dep] = override_get_async_session
    return app


def _client(headers: dict[str, str] | None = None) -> AsyncClient:
    transport = ASGITransport(app=_get_app())
    return AsyncClient(transport=transport, base_url="http://test", headers=headers)


@pytest.fixture
async def async_client(
    fake_redis: fakeredis.aioredis.FakeRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an unauthenticated async test client."""
    async with _client() as ac:
        yield ac


@pytest.fixture
async def customer_client(
    fake_redis: fakeredis.aioredis.FakeRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """Client authenticated as customer 1."""
    headers = make_auth_headers(fake_redis, user_id=1, email="casey@example.com")
    async with _client(headers) as ac:
        yield ac


@pytest.fixture
async def other_customer_client(
    fake_redis: fakeredis.aioredis.FakeRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """Client authenticated as customer 2."""
    headers = make_auth_headers(fake_redis, user_id=2, email="robin@example.com")
    async with _client(headers) as ac:
        yield ac


@pytest.fixture
async def agent_client(
    fake_redis: fakeredis.aioredis.FakeRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """Client authenticated as agent user 100 (seed the agent row separately)."""
    headers = make_auth_headers(
        fake_redis, user_id=100, email="dana@support.example.com", role="agent"
    )
    async with _client(headers) as ac:
        yield ac


@pytest.fixture
async def admin_client(
    fake_redis: fakeredis.aioredis.FakeRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """Client authenticated as an admin."""
    headers = make_auth_headers(
        fake_redis, user_id=900, email="ops@support.example.com", role="admin"
    )
    async with _client(headers) as ac:
        yield ac
