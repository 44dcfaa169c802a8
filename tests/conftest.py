"""Test fixtures — in-memory SQLite per test, fake stream connections.

Each test gets a fresh aiosqlite database (StaticPool keeps the single
in-memory connection alive for the engine's lifetime), so there is no
cross-test state and no external Postgres/Redis is needed.

The HTTP client overrides get_db and get_broadcaster. The broadcaster is
a real one (fresh registry + fast-retry sender) that also records every
broadcast call, so tests can assert on both delivery and call counts.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from logstream.db.engine import get_db
from logstream.db.models import Base
from logstream.main import app
from logstream.realtime.broadcast import Broadcaster
from logstream.realtime.connection import Connection
from logstream.realtime.delivery import BackpressureSender
from logstream.realtime.hub import get_broadcaster
from logstream.realtime.registry import SubscriptionRegistry

TEST_DB_URL = "sqlite+aiosqlite://"


class FakeConnection(Connection):
    """Open connection whose buffer occupancy the test controls."""

    def __init__(self, buffered: int = 0):
        super().__init__()
        self.mark_open()
        self.buffered = buffered
        self.sent: list[str] = []

    @property
    def buffered_amount(self) -> int:
        return self.buffered

    def transmit(self, payload: str) -> None:
        self.sent.append(payload)


class FailingConnection(FakeConnection):
    def transmit(self, payload: str) -> None:
        raise RuntimeError("socket exploded")


class RecordingBroadcaster(Broadcaster):
    def __init__(self, registry, sender):
        super().__init__(registry, sender)
        self.broadcasts = []

    def broadcast(self, record):
        self.broadcasts.append(record)
        return super().broadcast(record)


@pytest.fixture
def make_connection():
    """Factory for FakeConnection instances."""
    def _make(buffered: int = 0) -> FakeConnection:
        return FakeConnection(buffered=buffered)
    return _make


@pytest.fixture
def failing_connection():
    return FailingConnection()


@pytest.fixture
def registry():
    return SubscriptionRegistry()


@pytest_asyncio.fixture()
async def sender():
    s = BackpressureSender(retry_interval=0.01, warn_after=5)
    yield s
    await s.close()


@pytest.fixture
def broadcaster(registry, sender):
    return RecordingBroadcaster(registry, sender)


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(db_engine):
    async with AsyncSession(db_engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture()
async def client(db_session, broadcaster):
    """HTTP client with get_db and get_broadcaster overridden."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def broken_db(db_engine):
    """Drop the schema so every store operation fails at the database."""
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
