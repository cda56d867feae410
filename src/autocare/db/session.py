"""Async SQLAlchemy engine, session factory, and schema bootstrap.

Provides:
    create_async_engine_from_url: Creates a configured async engine
    create_session_factory: Creates an async session maker
    init_models: Creates all tables that do not exist yet
"""

from __future__ import annotations

from sqlalchemy import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from autocare.db.models import Base


def create_async_engine_from_url(
    database_url: str,
    *,
    pool_timeout: int = 5,
    connect_timeout: int = 5,
    echo: bool = False,
) -> AsyncEngine:
    """Create an async SQLAlchemy engine with configured timeouts.

    In-memory SQLite gets a StaticPool so every session sees the same
    database. Bound parameters are kept out of error messages.

    Args:
        database_url: The database connection URL.
        pool_timeout: Seconds to wait for a connection from the pool.
        connect_timeout: Seconds to wait for the initial connection.
        echo: Whether to log SQL statements.
    """
    kwargs: dict[str, object] = {"echo": echo, "hide_parameters": True}

    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"timeout": connect_timeout, "check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_timeout"] = pool_timeout
        kwargs["pool_size"] = 10
        kwargs["max_overflow"] = 20

    return create_async_engine(database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory with expire_on_commit=False."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create any missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
