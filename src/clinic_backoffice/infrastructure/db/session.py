"""Async SQLAlchemy engine and session factory helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

_SQLITE_BUSY_TIMEOUT_SECONDS = 30.0


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """Create an async engine, giving SQLite writers a busy timeout to queue on."""

    connect_args: dict[str, Any] = {}
    if make_url(database_url).get_backend_name() == "sqlite":
        connect_args["timeout"] = _SQLITE_BUSY_TIMEOUT_SECONDS
    return create_async_engine(database_url, connect_args=connect_args)


def create_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    """Create a reusable async session factory for the provided database URL."""

    engine = create_engine_for_url(database_url)
    return async_sessionmaker(engine, expire_on_commit=False)
