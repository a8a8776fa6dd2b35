"""Global pytest fixtures for the karaoke service.

Provides:
- an in-memory SQLite database (aiosqlite) with the real schema,
- mock sessions and a mock Redis client for unit tests,
- user / generation / score factories,
- an httpx client bound to the FastAPI app.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-karaoke-tests")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OPENAI_API_KEY", "")

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from karaoke.auth import create_access_token, hash_password
from karaoke.models import Base, Generation, ScoreEvent, User

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
DEFAULT_PASSWORD = "karaoke-pass-123"


@lru_cache
def _password_hash(password: str) -> str:
    return hash_password(password)


# ===========================================
# DATABASE FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def sqlite_engine():
    """A fresh in-memory database per test, with foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(sqlite_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def sqlite_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncMock, None]:
    """A mock async session for unit tests that never touch a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.add = MagicMock()
    session.bind = MagicMock()
    session.bind.dialect.name = "mock"
    yield session


# ===========================================
# REDIS MOCK FIXTURES
# ===========================================


@pytest.fixture
def mock_redis_client() -> MagicMock:
    """A mock Redis client backed by a dict for get/set/delete."""
    store: dict[str, Any] = {}

    async def _set(key, value, ex=None):
        store[key] = value
        return True

    async def _get(key):
        return store.get(key)

    async def _delete(*keys):
        return sum(1 for k in keys if store.pop(k, None) is not None)

    redis = MagicMock()
    redis.store = store
    redis.get = AsyncMock(side_effect=_get)
    redis.set = AsyncMock(side_effect=_set)
    redis.delete = AsyncMock(side_effect=_delete)
    redis.pipeline = MagicMock(return_value=redis)
    redis.execute = AsyncMock(return_value=[0, 1, 1, True])
    return redis


# ===========================================
# DATA FACTORIES
# ===========================================


@pytest.fixture
def make_user(sqlite_session):
    """Insert a user. UUIDs may be fixed to control tie-breaks."""

    async def _make(
        email: str | None = None,
        user_id: UUID | None = None,
        status: str = "active",
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        user = User(
            id=user_id or uuid4(),
            email=email or f"user-{uuid4().hex[:8]}@example.com",
            password_hash=_password_hash(password),
            status=status,
        )
        sqlite_session.add(user)
        await sqlite_session.commit()
        return user

    return _make


@pytest.fixture
def make_generation(sqlite_session):
    async def _make(
        user: User,
        score: int = 10,
        era: str = "Ancient Egypt",
        genre: str = "Opera",
        created_at: datetime | None = None,
    ) -> Generation:
        generation = Generation(
            user_id=user.id,
            prompt_data={
                "cat_name": "Murzik",
                "parrot_name": "Kesha",
                "era": era,
                "genre": genre,
            },
            result_text="Verse\n\nChorus",
            friendship_score=score,
            created_at=created_at or BASE_TIME,
        )
        sqlite_session.add(generation)
        await sqlite_session.commit()
        return generation

    return _make


@pytest.fixture
def make_score(sqlite_session, make_generation):
    """Insert a generation plus its ScoreEvent."""

    async def _make(
        user: User,
        score: int,
        created_at: datetime | None = None,
        event_id: UUID | None = None,
    ) -> ScoreEvent:
        generation = await make_generation(user, score=score, created_at=created_at)
        score_event = ScoreEvent(
            id=event_id or uuid4(),
            user_id=user.id,
            generation_id=generation.id,
            score=score,
            created_at=created_at or BASE_TIME,
        )
        sqlite_session.add(score_event)
        await sqlite_session.commit()
        return score_event

    return _make


# ===========================================
# HTTP CLIENT FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def async_client(session_factory, mock_redis_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the SQLite database and mock Redis.

    ASGITransport does not run the lifespan, so DB and Redis are wired here.
    """
    from karaoke.database import get_db
    from karaoke.main import app

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    with patch("karaoke.routes.auth.get_redis", return_value=mock_redis_client):
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}

    return _headers
