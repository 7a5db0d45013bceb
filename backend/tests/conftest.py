"""
BookSwap Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Every API test needs the same plumbing: a throwaway database, an
       app wired to it, an HTTP client, and a way to create users.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    engine            in-memory SQLite (aiosqlite), tables created per test
    └── session_factory
        ├── app       create_app() with get_db_session overridden and the
        │             background-task session factory pointed at the test DB
        │   └── client    httpx AsyncClient over ASGITransport
        ├── make_user         inserts a user, returns it
        └── make_publication  inserts a publication for a given owner
    smtp_send         autouse AsyncMock replacing aiosmtplib.send
    auth_headers      bearer(user) → {"Authorization": "Bearer <session jwt>"}

Background tasks:
    ASGITransport awaits the whole ASGI call, and Starlette runs background
    tasks inside that call after the body is sent. By the time a request
    returns in a test, its background tasks have finished.
"""

import os

# Override settings BEFORE any bookswap import: settings, the engine and
# the tenacity retry policy are all built at import time.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["MAIL_USER"] = "bookswap@example.com"
os.environ["MAIL_PASS"] = "not-a-real-password"
os.environ["MAIL_RETRY_ATTEMPTS"] = "1"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Any, AsyncGenerator, Dict  # noqa: E402
from unittest.mock import AsyncMock, patch  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from bookswap import database  # noqa: E402
from bookswap.database import Base, get_db_session  # noqa: E402
from bookswap.main import create_app  # noqa: E402
from bookswap.models import Publication, User  # noqa: E402
from bookswap.models.publication import BookState, PublicationType  # noqa: E402
from bookswap.services import security  # noqa: E402

DEFAULT_PASSWORD = "Secret123"


def bearer(user: User) -> Dict[str, str]:
    """Authorization header carrying a fresh session token for `user`."""
    return {"Authorization": f"Bearer {security.create_session_token(user.id)}"}


@pytest.fixture
def auth_headers():
    """Exposes `bearer` to test modules without importing conftest."""
    return bearer


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """
    One in-memory database per test.

    StaticPool keeps a single connection, otherwise every new connection
    would see a fresh, empty :memory: database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # SQLite ignores ON DELETE CASCADE / SET NULL unless asked
    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ══════════════════════════════════════════════════════════════════════════
# Application & client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def smtp_send():
    """Replaces SMTP delivery for every test; assert on it to check emails."""
    with patch("bookswap.services.mail_service.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
        yield mock_send


@pytest.fixture
def app(session_factory, monkeypatch):
    application = create_app()

    async def _test_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = _test_db_session
    # Background tasks open their own sessions from this factory
    monkeypatch.setattr(database, "async_session_factory", session_factory)
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client


# ══════════════════════════════════════════════════════════════════════════
# Data factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(session_factory):
    """
    Factory inserting a committed user.

    Usage:
        owner = await make_user(email="owner@example.com", is_admin=True)
    """
    counter = {"n": 0}

    async def _make(
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        name: str | None = None,
        is_admin: bool = False,
        is_validated: bool = True,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=(email or f"user{counter['n']}@example.com").lower(),
            password=security.hash_password(password),
            name=name or f"Lector {counter['n']}",
            is_admin=is_admin,
            is_validated=is_validated,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _make


@pytest.fixture
def make_publication(session_factory):
    """Factory inserting a committed publication owned by `owner`."""

    async def _make(owner: User, **overrides: Any) -> Publication:
        values: Dict[str, Any] = {
            "title": "Cien años de soledad",
            "author": "Gabriel García Márquez",
            "language": "Español",
            "genres": ["Novela", "Realismo mágico"],
            "book_state": BookState.USED,
            "description": "Edición de bolsillo, algo gastada.",
            "type": PublicationType.TRADE,
            "price": 0,
            "owner_id": owner.id,
        }
        values.update(overrides)
        publication = Publication(**values)
        async with session_factory() as session:
            session.add(publication)
            await session.commit()
        return publication

    return _make
