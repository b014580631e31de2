import os
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

# IMPORTANT:
# Set env vars BEFORE importing app.settings/app.main (pydantic settings load at import time)
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_friends.db")
os.environ.setdefault("JWT_SECRET", "dev-test-secret")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")

import fakeredis  # noqa: E402

from app.main import app as fastapi_app  # noqa: E402
from app.db.base_class import Base  # noqa: E402
import app.db.base  # noqa: F401,E402  (register models)
from app.api.deps import get_db  # noqa: E402
from app.db.redis import get_redis  # noqa: E402
from app.db.session import engine, AsyncSessionLocal, get_db_session  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.relationship_cache import RelationshipCache  # noqa: E402
from app.services.relationship_events import RelationshipEvents  # noqa: E402
from app.services.relationships import RelationshipEngine  # noqa: E402
from app.services.sync_queue import SyncConsumer, SyncQueue  # noqa: E402

TEST_QUEUE_PREFIX = "test-friendsync"
TEST_QUEUE_SHARDS = 2


class RecordingEvents(RelationshipEvents):
    def __init__(self) -> None:
        super().__init__()
        self.notifications: list[tuple] = []
        self.hook_calls: list[tuple] = []

    def deliver(self, event_type, actor, target, metadata):
        self.notifications.append((event_type, actor, target, metadata))

    def run_hook(self, name, *args):
        self.hook_calls.append((name, *args))
        super().run_hook(name, *args)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def session_factory(db_schema):
    return AsyncSessionLocal


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def fake_redis():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def cache(fake_redis):
    return RelationshipCache(fake_redis)


@pytest.fixture
def sync_queue(fake_redis):
    return SyncQueue(fake_redis, prefix=TEST_QUEUE_PREFIX, shards=TEST_QUEUE_SHARDS, enqueue_timeout=1.0)


@pytest.fixture
def events():
    return RecordingEvents()


@pytest.fixture
def relationships(cache, sync_queue, events):
    return RelationshipEngine(cache=cache, sync_queue=sync_queue, events=events)


@pytest.fixture
def consumers(sync_queue, session_factory):
    return [
        SyncConsumer(sync_queue, session_factory, shard, max_attempts=3, backoff_seconds=0)
        for shard in range(TEST_QUEUE_SHARDS)
    ]


@pytest.fixture
def drain(consumers):
    async def _drain() -> int:
        handled = 0
        for consumer in consumers:
            handled += await consumer.drain()
        return handled

    return _drain


@pytest.fixture
async def client(db_session, fake_redis):
    """
    Routes share the test session and the fake Redis instance used by the other fixtures.
    """

    async def _override_get_db_session():
        yield db_session

    async def _override_get_redis():
        yield fake_redis

    fastapi_app.dependency_overrides[get_db_session] = _override_get_db_session
    fastapi_app.dependency_overrides[get_db] = _override_get_db_session
    fastapi_app.dependency_overrides[get_redis] = _override_get_redis

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    fastapi_app.dependency_overrides.pop(get_db_session, None)
    fastapi_app.dependency_overrides.pop(get_db, None)
    fastapi_app.dependency_overrides.pop(get_redis, None)


# --- Small helpers ---

def _unique(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}"


@pytest.fixture
def user_factory(db_session):
    async def _create(account_id: int, *, username: str | None = None) -> dict:
        username = username or _unique("user")
        user = User(
            account_id=account_id,
            email=f"{username}@example.com",
            username=username,
            display_name=username.upper(),
        )
        db_session.add(user)
        await db_session.commit()
        return {
            "id": str(user.id),
            "account_id": account_id,
            "username": username,
            "token": create_access_token(str(user.id)),
        }

    return _create


@pytest.fixture
def set_auth_cookie():
    def _set(client: AsyncClient, token: str | None):
        client.cookies.clear()
        if token:
            client.cookies.set("access_token", token)

    return _set
