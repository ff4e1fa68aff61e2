"""
Riddle Server — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine:        in-memory SQLite engine with all tables created
    ├── session_factory:  async_sessionmaker bound to db_engine
    ├── db_session:       one AsyncSession for service-level tests
    ├── mock_db_session:  AsyncMock session for failure injection
    ├── make_player:      inserts a Player row directly
    └── test_client:      HTTPX AsyncClient wired to the app, with the
                          request session dependency pointed at db_engine
"""

import os

# Settings are read at import time; these must be set before any
# riddle_server import.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["JWT_EXPIRES_IN"] = "1h"
os.environ["ADMIN_SECRET_CODE"] = "let-me-admin"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from riddle_server.database import Base, get_db_session
from riddle_server.models.player import Player, Role
from riddle_server.models.riddle import Riddle  # noqa: F401
from riddle_server.services.credential_hasher import credential_hasher

ADMIN_CODE = os.environ["ADMIN_SECRET_CODE"]


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    A private in-memory database per test.

    StaticPool keeps a single connection alive, otherwise every checkout
    would open a new (empty) :memory: database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception())
        with pytest.raises(DatabaseError):
            await player_service.leaderboard(mock_db_session)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_player(session_factory):
    """
    Insert a player in its own committed transaction and return it.

    password=None creates a legacy (password-less) record.
    """

    async def _make(
        username: str,
        password: Optional[str] = "password123",
        role: Role = Role.USER,
        best_time: int = 0,
    ) -> Player:
        password_hash = await credential_hasher.hash(password) if password else None
        async with session_factory() as session:
            player = Player(
                username=username,
                password_hash=password_hash,
                role=role.value,
                best_time=best_time,
            )
            session.add(player)
            await session.commit()
            await session.refresh(player)
            return player

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from riddle_server.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def register_user(test_client):
    """
    Register through the API and return `(user, token)`.

    Usage:
        user, token = await register_user("alice_01")
        user, token = await register_user("boss_01", admin_code=ADMIN_CODE)
    """

    async def _register(username: str, password: str = "password123", **extra):
        response = await test_client.post(
            "/auth/register",
            json={"username": username, "password": password, **extra},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], body["token"]

    return _register


@pytest.fixture
def admin_headers(register_user):
    """Authorization headers for a freshly registered admin."""

    async def _headers(username: str = "admin_01") -> dict:
        _, token = await register_user(username, admin_code=ADMIN_CODE)
        return {"Authorization": f"Bearer {token}"}

    return _headers
