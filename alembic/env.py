"""Alembic migration runner for the clinic back-office schema."""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from clinic_backoffice.infrastructure.db.metadata import metadata

ALEMBIC_INI_DEFAULT_URL = "sqlite:///./clinic.db"

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _resolve_database_url() -> str:
    """Prefer DATABASE_URL (shell or .env) unless a caller set an explicit URL."""

    load_dotenv(Path(__file__).resolve().parents[1] / ".env")
    configured_url = config.get_main_option("sqlalchemy.url") or ALEMBIC_INI_DEFAULT_URL
    env_url = os.getenv("DATABASE_URL")
    if env_url and configured_url == ALEMBIC_INI_DEFAULT_URL:
        return env_url
    return configured_url


def _configure_context(**options: object) -> None:
    url = make_url(config.get_main_option("sqlalchemy.url") or ALEMBIC_INI_DEFAULT_URL)
    context.configure(
        target_metadata=metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place.
        render_as_batch=url.get_backend_name() == "sqlite",
        **options,
    )


def _migrate(connection: Connection) -> None:
    _configure_context(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_async() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_migrate)
    await engine.dispose()


def run_migrations_offline() -> None:
    """Emit migration SQL without a database connection."""

    _configure_context(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a live connection, async drivers included."""

    url = make_url(config.get_main_option("sqlalchemy.url") or ALEMBIC_INI_DEFAULT_URL)
    if url.get_dialect().is_async:
        asyncio.run(_migrate_async())
        return

    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        _migrate(connection)


config.set_main_option("sqlalchemy.url", _resolve_database_url())
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
