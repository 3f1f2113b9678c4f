"""Async SQLAlchemy engine, per-request sessions and schema creation."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from synquest.config import Settings

_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None

_NOT_INITIALIZED = "Database is not initialized; call init_db() first"


def _engine_options(url: str, settings: Settings | None) -> dict[str, Any]:
    # SQLite (tests) keeps SQLAlchemy's default pool
    if url.startswith("sqlite"):
        return {}
    options: dict[str, Any] = {"pool_pre_ping": True}
    if settings is not None:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=0,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
        )
    return options


async def init_db(url: str, settings: Settings | None = None) -> None:
    global _engine, _sessions  # noqa: PLW0603
    _engine = create_async_engine(url, **_engine_options(url, settings))
    # Routers serialize rows after commit
    _sessions = async_sessionmaker(_engine, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


async def create_tables() -> None:
    """Create missing tables for every mapped model. Existing tables are left untouched."""
    from synquest.db import models  # noqa: F401
    from synquest.db.base import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _sessions  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessions = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, rolled back if the handler raises."""
    if _sessions is None:
        raise RuntimeError(_NOT_INITIALIZED)
    async with _sessions() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
