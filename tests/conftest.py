"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models are created as-is;
Redis is an ``AsyncMock`` backed by a dict, and the clock is pinned so
departure-relative rules (late leave, completion) are deterministic.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from carpool.infrastructure.database import Base
from carpool.infrastructure import models  # noqa: F401  (registers tables)

# 2026-03-10 10:00 in Asia/Kolkata
NOW = datetime(2026, 3, 10, 4, 30, tzinfo=timezone.utc)
TODAY = "2026-03-10"
TOMORROW = "2026-03-11"

COORDS = {
    "source_coords": {"lat": 19.1176, "lng": 72.9060},
    "dest_coords": {"lat": 19.0896, "lng": 72.8656},
}


class FakeClock:
    """Callable clock the tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_redis() -> AsyncMock:
    """AsyncMock Redis supporting the SET NX / EXISTS / EVAL calls we make."""
    store: dict[str, str] = {}
    redis = AsyncMock()

    async def _set(key, value, nx=False, ex=None):
        if nx and key in store:
            return None
        store[key] = value
        return True

    async def _exists(*keys):
        return sum(1 for k in keys if k in store)

    async def _eval(script, numkeys, key, token):
        if store.get(key) == token:
            del store[key]
            return 1
        return 0

    redis.set = AsyncMock(side_effect=_set)
    redis.exists = AsyncMock(side_effect=_exists)
    redis.eval = AsyncMock(side_effect=_eval)
    redis.store = store
    return redis


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test, with SAVEPOINT support."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves.
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis() -> AsyncMock:
    return make_redis()


@pytest_asyncio.fixture
async def client(session_factory, clock, fake_redis):
    """AsyncClient over the real app with DB, Redis and clock overridden."""
    from carpool.api.app import create_app
    from carpool.api.dependencies import get_clock, get_db
    from carpool.api.middleware import limiter
    from carpool.infrastructure.redis_client import get_redis

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_redis():
        return fake_redis

    limiter.enabled = False
    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_redis] = _test_redis
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── Helpers ───────────────────────────────────────────────────────────


async def signup(
    client: AsyncClient,
    name: str,
    gender: str = "male",
    community: list[str] | None = None,
) -> dict:
    """Register a user; returns ``{"id", "token", "headers"}``."""
    resp = await client.post(
        "/api/v1/auth/signup",
        json={
            "name": name,
            "email": f"{name.lower().replace(' ', '.')}@example.com",
            "password": "secret123",
            "phone": "9876543210",
            "gender": gender,
            "community": community or [],
        },
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()
    return {
        "id": data["user"]["id"],
        "token": data["token"],
        "headers": {"Authorization": f"Bearer {data['token']}"},
    }


async def create_pool(client: AsyncClient, user: dict, **overrides) -> dict:
    body = {
        "source": "Powai",
        "destination": "Mumbai Airport T2",
        **COORDS,
        "date": TOMORROW,
        "time": "08:30",
        "max_seats": 4,
        "fare": 180,
        "type": "open",
    }
    body.update(overrides)
    resp = await client.post("/api/v1/pools", json=body, headers=user["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()["pool"]
