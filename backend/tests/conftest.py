"""
Sanctuary Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before any `sanctuary` import so the
       module-level settings, engine and service singletons pick them up.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for pure unit tests
    ├── test_settings: Settings built from the test environment
    ├── db_engine: aiosqlite engine on a fresh file, tables created
    ├── session_factory: async_sessionmaker bound to db_engine
    ├── db_session: one session for service-level tests
    ├── test_client: HTTPX AsyncClient with get_db_session overridden
    ├── auth_headers: Authorization header carrying a valid token
    └── sample_mp3_bytes: a few bytes that look like an MP3 frame
"""

import os
import tempfile

# Before any sanctuary import: settings are read once at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="sanctuary_db_"), "app.db"
)
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="sanctuary_mp3_")
os.environ["JWT_SECRET"] = "test-secret-0123456789abcdef0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["SMTP_HOST"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from sanctuary.config import Settings
from sanctuary.database import get_db_session, init_models
from sanctuary.services.token_service import Identity, token_service


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.execute.return_value.rowcount = 1
    """
    session = AsyncMock()
    # Result objects are synchronous: scalar_one(), scalars().all(), rowcount
    session.execute = AsyncMock(return_value=MagicMock())
    session.flush = AsyncMock()
    session.get = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def test_settings(tmp_path):
    """Settings with an isolated upload directory."""
    upload_dir = tmp_path / "mp3"
    upload_dir.mkdir()
    return Settings(upload_dir=str(upload_dir))


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """
    Fresh SQLite database per test.

    NullPool: aiosqlite connections are bound to the event loop that opened
    them, and every test runs on its own loop.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client(db_engine, session_factory, monkeypatch):
    """
    HTTPX AsyncClient talking to the app in-process.

    Requests use the per-test database through a get_db_session override
    with the same commit/rollback semantics as the real dependency.
    """
    from sanctuary.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    monkeypatch.setattr("sanctuary.routes.health.engine", db_engine)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = token_service.issue(Identity(email="admin@example.org", user_id=str(uuid4())))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_mp3_bytes():
    """MPEG-1 Layer III frame header followed by padding."""
    return b"\xff\xfb\x90\x64" + b"\x00" * 412


@pytest.fixture
def event_payload():
    return {
        "name": "Harvest Supper",
        "details": "Bring a dish to share",
        "address": "12 Church Lane",
        "date": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
        "time": "6:30 PM",
    }
