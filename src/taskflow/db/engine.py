"""Database engine and per-request sessions.

The engine is built once at import from settings.database_url. PostgreSQL
gets a sized pool with pre-ping; SQLite (handy for local runs) keeps
SQLAlchemy's default pool, which doesn't take sizing arguments.
"""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskflow.config import settings


def build_engine(url: str) -> AsyncEngine:
    options: dict = {"echo": settings.debug}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return create_async_engine(url, **options)


engine = build_engine(settings.database_url)

# expire_on_commit=False: services read attributes after commit.
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request, rolled back on error."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
