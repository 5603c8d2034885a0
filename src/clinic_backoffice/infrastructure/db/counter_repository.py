"""SQLAlchemy adapter for row-locked sequence counters."""

from __future__ import annotations

import logging
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_backoffice.application.ports.counter_repository_port import (
    CounterRepositoryPort,
    CounterUnavailableError,
    CounterValueError,
)
from clinic_backoffice.infrastructure.db.metadata import counters

logger = logging.getLogger(__name__)

# lock_not_available, deadlock_detected, serialization_failure
_RETRIABLE_SQLSTATES = frozenset({"55P03", "40P01", "40001"})
_SQLITE_BUSY_MARKERS = ("database is locked", "database table is locked")


def _parse_counter_value(value: str, *, name: str) -> int:
    normalized = value.strip()
    if not normalized.isdigit():
        raise CounterValueError(name=name, value=value)
    return int(normalized)


def _is_retriable_lock_error(error: DBAPIError) -> bool:
    if error.connection_invalidated:
        return False
    original = error.orig
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate in _RETRIABLE_SQLSTATES:
        return True
    message = str(original).lower()
    return any(marker in message for marker in _SQLITE_BUSY_MARKERS)


def _insert_if_absent(dialect_name: str, *, name: str, initial_value: str) -> Any:
    """Build an insert that yields the seeded row only when this call created it."""

    if dialect_name == "postgresql":
        statement: Any = postgresql.insert(counters)
    else:
        statement = sqlite.insert(counters)
    return (
        statement.values(name=name, value=initial_value)
        .on_conflict_do_nothing(index_elements=[counters.c.name])
        .returning(counters.c.value)
    )


async def _swap_sqlite_busy_timeout(session: AsyncSession, timeout_ms: int) -> int:
    """Set the connection busy timeout and return the value it replaces."""

    previous = (await session.execute(sa.text("PRAGMA busy_timeout"))).scalar_one()
    await session.execute(sa.text(f"PRAGMA busy_timeout = {int(timeout_ms)}"))
    return int(previous)


class SqlAlchemyCounterRepository(CounterRepositoryPort):
    """Counter store whose increments are serialized by a per-name row lock.

    PostgreSQL and SQLite create missing counters with ``ON CONFLICT DO
    NOTHING`` and then lock the row with ``SELECT ... FOR UPDATE``. On SQLite
    the leading insert takes the database write lock, which serializes the
    whole read-increment-write sequence. Other backends lock first and insert
    when the row is absent.

    Waiting for the lock is bounded by ``lock_timeout_ms``, applied as
    ``lock_timeout`` on PostgreSQL and ``busy_timeout`` on SQLite.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        lock_timeout_ms: int = 5_000,
    ) -> None:
        self._session_factory = session_factory
        self._lock_timeout_ms = lock_timeout_ms

    async def next_value(self, *, name: str, initial_value: str) -> str:
        """Advance the counter inside one transaction and return the issued value."""

        if not name.strip():
            raise ValueError("counter name cannot be blank")
        _parse_counter_value(initial_value, name=name)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    issued, created = await self._advance_with_lock_timeout(
                        session,
                        name=name,
                        initial_value=initial_value,
                    )
        except DBAPIError as error:
            if isinstance(error, IntegrityError) or _is_retriable_lock_error(error):
                logger.warning("counter_unavailable name=%s error=%s", name, error.orig)
                raise CounterUnavailableError(name=name) from error
            raise

        if created:
            logger.info("counter_created name=%s value=%s", name, issued)
        else:
            logger.debug("counter_advanced name=%s value=%s", name, issued)
        return issued

    async def get_value(self, *, name: str) -> str | None:
        """Return the committed value for a counter, or None when it does not exist."""

        statement = sa.select(counters.c.value).where(counters.c.name == name)

        async with self._session_factory() as session:
            result = await session.execute(statement)

        value = result.scalar_one_or_none()
        return None if value is None else str(value)

    async def _advance_with_lock_timeout(
        self,
        session: AsyncSession,
        *,
        name: str,
        initial_value: str,
    ) -> tuple[str, bool]:
        dialect_name = session.get_bind().dialect.name

        if dialect_name == "postgresql":
            await session.execute(
                sa.text(f"SET LOCAL lock_timeout = '{int(self._lock_timeout_ms)}ms'")
            )
        elif dialect_name == "sqlite":
            # busy_timeout is per connection, so the pooled value is put back.
            previous = await _swap_sqlite_busy_timeout(session, self._lock_timeout_ms)
            try:
                return await self._advance(session, name=name, initial_value=initial_value)
            finally:
                await _swap_sqlite_busy_timeout(session, previous)

        return await self._advance(session, name=name, initial_value=initial_value)

    async def _advance(
        self,
        session: AsyncSession,
        *,
        name: str,
        initial_value: str,
    ) -> tuple[str, bool]:
        dialect_name = session.get_bind().dialect.name

        if dialect_name in {"postgresql", "sqlite"}:
            inserted = await session.execute(
                _insert_if_absent(dialect_name, name=name, initial_value=initial_value)
            )
            if inserted.scalar_one_or_none() is not None:
                return initial_value, True
            current = await self._select_for_update(session, name=name)
            if current is None:  # pragma: no cover - row exists after conflict.
                raise CounterUnavailableError(name=name)
        else:
            current = await self._select_for_update(session, name=name)
            if current is None:
                # A concurrent creator surfaces as IntegrityError on the unique name.
                await session.execute(
                    sa.insert(counters).values(name=name, value=initial_value)
                )
                return initial_value, True

        issued = str(_parse_counter_value(current, name=name) + 1)
        await session.execute(
            sa.update(counters).where(counters.c.name == name).values(value=issued)
        )
        return issued, False

    async def _select_for_update(self, session: AsyncSession, *, name: str) -> str | None:
        statement = (
            sa.select(counters.c.value)
            .where(counters.c.name == name)
            .with_for_update()
        )
        result = await session.execute(statement)
        value = result.scalar_one_or_none()
        return None if value is None else str(value)
