"""Test fixtures — a throwaway database per test.

Each test gets its own SQLite file (aiosqlite) with the schema created
from the ORM models, or TASKFLOW_TEST_DATABASE_URL if you want to run
against PostgreSQL. NullPool means every session opens its own
connection, so the same engine works from pytest's event loop and from
Starlette's TestClient thread.

The `client` fixture overrides get_current_user so protected routes run
as `current_user` without a real token. `unauthenticated_client` leaves
auth alone — use it with auth_headers() to act as several users.
"""

import os

os.environ.setdefault("TASKFLOW_ENVIRONMENT", "test")
os.environ.setdefault("TASKFLOW_BCRYPT_ROUNDS", "4")

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from taskflow.auth.dependencies import get_current_user
from taskflow.auth.password import hash_password
from taskflow.db.engine import get_db
from taskflow.db.models import Base, Task, User
from taskflow.main import app
from taskflow.realtime.broadcaster import Broadcaster
from taskflow.schemas.auth import UserRead


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get(
        "TASKFLOW_TEST_DATABASE_URL",
        f"sqlite+aiosqlite:///{tmp_path / 'taskflow.db'}",
    )


@pytest_asyncio.fixture()
async def engine(database_url):
    engine = create_async_engine(database_url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly (no HTTP, no cookie)."""

    async def _make(
        name: str = "Test User",
        email: str | None = None,
        password: str = "password_123",
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email or f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:8]}@example.com",
                name=name,
                password_hash=hash_password(password),
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def make_task(session_factory):
    """Insert a task directly, bypassing the service (and its events)."""

    async def _make(creator: User, title: str = "Task", **fields) -> Task:
        async with session_factory() as session:
            task = Task(creator_id=creator.id, title=title, **fields)
            session.add(task)
            await session.commit()
            return task

    return _make


@pytest_asyncio.fixture()
async def current_user(make_user) -> User:
    return await make_user(name="Ann")


@pytest_asyncio.fixture()
async def other_user(make_user) -> User:
    return await make_user(name="Bob")


@pytest.fixture
def broadcaster():
    """A fresh broadcaster on the app for the duration of one test."""
    previous = app.state.broadcaster
    app.state.broadcaster = Broadcaster()
    yield app.state.broadcaster
    app.state.broadcaster = previous


@pytest.fixture
def override_db(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(override_db, broadcaster, current_user):
    """HTTP client acting as current_user (auth dependency overridden)."""
    identity = UserRead.model_validate(current_user)
    app.dependency_overrides[get_current_user] = lambda: identity

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def unauthenticated_client(override_db, broadcaster):
    """HTTP client WITHOUT auth override — real token/cookie pipeline."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def past() -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=2)


@pytest.fixture
def future() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=2)
