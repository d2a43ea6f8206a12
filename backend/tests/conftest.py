"""
SmartQuery Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite) with the
       full schema, so services and routes run against real SQL.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine:       in-memory aiosqlite engine with all tables
    ├── session_factory: async_sessionmaker bound to db_engine
    ├── db_session:      one AsyncSession for service-level tests
    ├── alice / bob:     registered users (User rows)
    ├── mock_db_session: AsyncMock session for failure-path tests
    ├── test_client:     HTTPX AsyncClient wired to the app, with
                         get_db_session pointed at db_engine
    └── login_as:        registers + logs in through the API, returns headers
"""

import os

# Settings are read at import time, so the environment is set first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["GEMINI_MODELS"] = "gemini-test-flash,gemini-test-pro"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["AI_RATE_LIMIT_REQUESTS"] = "10000"
os.environ["PUBLIC_BASE_URL"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from smartquery.database import Base, get_db_session
import smartquery.models  # noqa: F401
from smartquery.services.auth_service import auth_service


def _enable_sqlite_savepoints(engine) -> None:
    """
    Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the request
    transaction the way they do on PostgreSQL.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def alice(db_session):
    user = await auth_service.register(db_session, "alice", "wonderland")
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def bob(db_session):
    user = await auth_service.register(db_session, "bob", "builder")
    await db_session.commit()
    return user


@pytest.fixture
def mock_db_session():
    """
    A mock async session for paths a real SQLite database cannot produce
    (driver errors, dropped connections).

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    The lifespan is not run; get_db_session is overridden to hand out
    sessions on the per-test engine, committing like the real dependency.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from smartquery.main import app

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
def login_as(test_client):
    """
    Register a user through the API and return an Authorization header.

    Usage:
        headers = await login_as("alice", "wonderland")
    """

    async def register_and_login(username: str, password: str) -> dict:
        credentials = {"username": username, "password": password}
        response = await test_client.post("/api/register", json=credentials)
        assert response.status_code == 201, response.text
        response = await test_client.post("/api/login", json=credentials)
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['accessToken']}"}

    return register_and_login
