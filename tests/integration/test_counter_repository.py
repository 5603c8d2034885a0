from __future__ import annotations

import asyncio
import sqlite3
import time
from datetime import date
from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic.config import Config
from sqlalchemy.exc import DBAPIError

from alembic import command
from clinic_backoffice.application.ports.counter_repository_port import (
    CounterUnavailableError,
    CounterValueError,
)
from clinic_backoffice.application.services.invoice_numbering_service import (
    InvoiceNumberingService,
)
from clinic_backoffice.infrastructure.db.counter_repository import (
    SqlAlchemyCounterRepository,
    _is_retriable_lock_error,
)
from clinic_backoffice.infrastructure.db.session import create_session_factory


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _counter_rows(sync_url: str) -> list[tuple[str, str]]:
    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        rows = connection.execute(sa.text("SELECT name, value FROM counters ORDER BY name"))
        return [(str(row[0]), str(row[1])) for row in rows]


@pytest.mark.asyncio
async def test_first_call_creates_counter_with_seed(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "counter_seed.db")
    repo = SqlAlchemyCounterRepository(create_session_factory(async_url))

    issued = await repo.next_value(name="invoices_2026", initial_value="2026000001")

    assert issued == "2026000001"
    assert _counter_rows(sync_url) == [("invoices_2026", "2026000001")]


@pytest.mark.asyncio
async def test_subsequent_calls_increment_by_one(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "counter_increment.db")
    repo = SqlAlchemyCounterRepository(create_session_factory(async_url))

    issued = [
        await repo.next_value(name="invoices_2026", initial_value="2026000001")
        for _ in range(3)
    ]

    assert issued == ["2026000001", "2026000002", "2026000003"]
    assert await repo.get_value(name="invoices_2026") == "2026000003"


@pytest.mark.asyncio
async def test_concurrent_callers_receive_distinct_contiguous_values(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "counter_concurrent.db")
    repo = SqlAlchemyCounterRepository(create_session_factory(async_url))
    await repo.next_value(name="invoices-2026", initial_value="1")

    issued = await asyncio.gather(
        *(repo.next_value(name="invoices-2026", initial_value="1") for _ in range(10))
    )

    assert sorted(int(value) for value in issued) == list(range(2, 12))
    assert await repo.get_value(name="invoices-2026") == "11"


@pytest.mark.asyncio
async def test_concurrent_first_calls_create_the_counter_once(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "counter_concurrent_create.db")
    repo = SqlAlchemyCounterRepository(create_session_factory(async_url))

    issued = await asyncio.gather(
        *(repo.next_value(name="visits", initial_value="100") for _ in range(5))
    )

    assert sorted(issued) == ["100", "101", "102", "103", "104"]
    assert _counter_rows(sync_url) == [("visits", "104")]


@pytest.mark.asyncio
async def test_counters_with_different_names_are_independent(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "counter_independent.db")
    repo = SqlAlchemyCounterRepository(create_session_factory(async_url))

    await repo.next_value(name="invoices_2025", initial_value="2025000001")
    await repo.next_value(name="invoices_2025", initial_value="2025000001")
    first_2026 = await repo.next_value(name="invoices_2026", initial_value="2026000001")

    assert first_2026 == "2026000001"
    assert await repo.get_value(name="invoices_2025") == "2025000002"


@pytest.mark.asyncio
async def test_blank_name_is_rejected(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "counter_blank.db")
    repo = SqlAlchemyCounterRepository(create_session_factory(async_url))

    with pytest.raises(ValueError):
        await repo.next_value(name="  ", initial_value="1")

    assert _counter_rows(sync_url) == []


@pytest.mark.asyncio
async def test_non_integer_stored_value_fails_without_changing_counter(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "counter_bad_value.db")
    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        connection.execute(
            sa.text("INSERT INTO counters (name, value) VALUES ('broken', 'abc')")
        )
    repo = SqlAlchemyCounterRepository(create_session_factory(async_url))

    with pytest.raises(CounterValueError):
        await repo.next_value(name="broken", initial_value="1")

    assert _counter_rows(sync_url) == [("broken", "abc")]


@pytest.mark.asyncio
async def test_non_integer_seed_is_rejected(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "counter_bad_seed.db")
    repo = SqlAlchemyCounterRepository(create_session_factory(async_url))

    with pytest.raises(CounterValueError):
        await repo.next_value(name="invoices_2026", initial_value="2026-1")


@pytest.mark.asyncio
async def test_get_value_returns_none_for_unknown_counter(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "counter_unknown.db")
    repo = SqlAlchemyCounterRepository(create_session_factory(async_url))

    assert await repo.get_value(name="missing") is None


@pytest.mark.asyncio
async def test_numbering_service_uses_one_counter_per_year(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "counter_numbering.db")
    numbering = InvoiceNumberingService(
        counters=SqlAlchemyCounterRepository(create_session_factory(async_url))
    )

    first = await numbering.issue_number(issued_on=date(2026, 1, 5))
    second = await numbering.issue_number(issued_on=date(2026, 12, 31))
    next_year = await numbering.issue_number(issued_on=date(2027, 1, 1))

    assert (first, second, next_year) == ("2026000001", "2026000002", "2027000001")
    assert await numbering.current_number(year=2026) == "2026000002"
    assert _counter_rows(sync_url) == [
        ("invoices_2026", "2026000002"),
        ("invoices_2027", "2027000001"),
    ]


@pytest.mark.asyncio
async def test_held_write_lock_times_out_as_unavailable(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "counter_lock_timeout.db")
    session_factory = create_session_factory(async_url)
    repo = SqlAlchemyCounterRepository(session_factory, lock_timeout_ms=200)
    await repo.next_value(name="invoices_2026", initial_value="2026000001")

    blocker = sqlite3.connect(tmp_path / "counter_lock_timeout.db", isolation_level=None)
    try:
        blocker.execute("BEGIN IMMEDIATE")
        started = time.monotonic()
        with pytest.raises(CounterUnavailableError):
            await repo.next_value(name="invoices_2026", initial_value="2026000001")
        waited = time.monotonic() - started
    finally:
        blocker.execute("ROLLBACK")
        blocker.close()

    assert waited < 5
    assert _counter_rows(sync_url) == [("invoices_2026", "2026000001")]
    assert await repo.next_value(name="invoices_2026", initial_value="2026000001") == (
        "2026000002"
    )
    async with session_factory() as session:
        busy_timeout = (await session.execute(sa.text("PRAGMA busy_timeout"))).scalar_one()
    assert busy_timeout == 30_000


def test_busy_database_errors_are_retriable() -> None:
    locked = DBAPIError("UPDATE counters", None, sqlite3.OperationalError("database is locked"))
    other = DBAPIError("UPDATE counters", None, sqlite3.OperationalError("disk I/O error"))

    assert _is_retriable_lock_error(locked) is True
    assert _is_retriable_lock_error(other) is False
