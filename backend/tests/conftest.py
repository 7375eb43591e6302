"""
Pytest fixtures for test database, client, and notification capture.

Each test gets its own database: a throwaway SQLite file by default, or the
database named by TEST_DATABASE_URL (e.g. a PostgreSQL test database), with
tables created before and dropped after the test.

Fixtures write through short-lived sessions and return plain ids. A session
left open would hold the SQLite write lock and block the code under test.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./event_registration_test.db")
os.environ["REDIS_ENABLED"] = "false"
os.environ["REMINDER_SWEEP_ENABLED"] = "false"

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.main import app
from app.db.base import Base
from app.db.session import (
    build_engine,
    build_session_factory,
    build_registration_session_factory,
    get_db,
    get_registration_session_factory,
)
from app.core.exceptions import NotificationFailure
from app.models.event import Event
from app.models.registration import Registration
from app.services.event_service import SqlEventCatalog
from app.services.interfaces.notifier import NotificationSender
from app.services.notification_service import NotificationDispatcher, get_dispatcher
from app.services.registration_service import RegistrationCoordinator


class RecordingSender(NotificationSender):
    """Captures notifications; raises NotificationFailure when `fail` is set."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.confirmed: list[tuple[int, int]] = []
        self.reminders: list[tuple[int, int, str]] = []

    async def notify_registration_confirmed(self, attendee_id: int, event_id: int):
        if self.fail:
            raise NotificationFailure("smtp unreachable")
        self.confirmed.append((attendee_id, event_id))

    async def notify_reminder_due(self, attendee_id: int, event_id: int, event_title: str):
        if self.fail:
            raise NotificationFailure("push gateway down")
        self.reminders.append((attendee_id, event_id, event_title))


class FakeRedis:
    """In-memory stand-in for the redis.asyncio calls the cache service makes."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def setex(self, key: str, ttl: int, value: str):
        self.store[key] = value

    async def incr(self, key: str) -> int:
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def delete(self, key: str):
        self.store.pop(key, None)

    async def scan_iter(self, match: str, count: int = 100):
        prefix = match.rstrip("*")
        for key in [k for k in self.store if k.startswith(prefix)]:
            yield key

    async def info(self, section: str) -> dict:
        return {"keyspace_hits": 0, "keyspace_misses": 0}


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    """Routes every cache_service Redis call to an in-memory store."""
    from app.services import cache_service

    redis_client = FakeRedis()

    async def _get_redis():
        return redis_client

    monkeypatch.setattr(cache_service, "get_redis", _get_redis)
    return redis_client


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = build_engine(url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def registration_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_registration_session_factory(engine)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def dispatcher(sender: RecordingSender) -> NotificationDispatcher:
    return NotificationDispatcher(sender)


@pytest.fixture
def coordinator(registration_session_factory, dispatcher) -> RegistrationCoordinator:
    return RegistrationCoordinator(registration_session_factory, SqlEventCatalog(), dispatcher)


@pytest_asyncio.fixture
async def client(
    session_factory, registration_session_factory, dispatcher
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the database and notifier dependencies overridden."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registration_session_factory] = lambda: registration_session_factory
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_event(session_factory):
    """Factory creating a catalog event and returning its id."""

    async def _make(capacity: Optional[int] = None, title: str = "Test Concert") -> int:
        async with session_factory() as session:
            async with session.begin():
                event = Event(
                    title=title,
                    description="A test event",
                    date=datetime.now(timezone.utc) + timedelta(days=30),
                    location="Test Venue",
                    capacity=capacity,
                )
                session.add(event)
                await session.flush()
                return event.id

    return _make


@pytest.fixture
def fetch_registrations(session_factory):
    """Reads all registration rows for an event, in insertion order."""

    async def _fetch(event_id: int) -> list[Registration]:
        async with session_factory() as session:
            result = await session.execute(
                select(Registration)
                .where(Registration.event_id == event_id)
                .order_by(Registration.id)
            )
            return list(result.scalars().all())

    return _fetch


@pytest.fixture
def status_of(fetch_registrations):
    """attendee_id -> status map for an event."""

    async def _status_of(event_id: int) -> dict[int, str]:
        return {r.attendee_id: r.status for r in await fetch_registrations(event_id)}

    return _status_of
