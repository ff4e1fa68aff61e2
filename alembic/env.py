"""
Alembic Migration Environment
===============================

What:  Runs the riddle_server migrations against the configured database.
How:   The URL comes from riddle_server.config.settings unless overridden on
       the command line; online runs use an async engine bridged into
       Alembic's sync API.

Usage:
    alembic upgrade head
    alembic -x url=sqlite+aiosqlite:///./riddles.db upgrade head
    alembic upgrade head --sql            (offline: print SQL only)
"""

import asyncio
from logging.config import fileConfig
from typing import Any, Dict

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from riddle_server.config import settings
from riddle_server.database import Base

# Registers players, player_scores and riddles on Base.metadata
from riddle_server.models.player import Player, PlayerScore  # noqa: F401
from riddle_server.models.riddle import Riddle  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    """`-x url=...` wins over DATABASE_URL."""
    return context.get_x_argument(as_dictionary=True).get("url") or settings.database_url


def _configure_options(dialect_name: str) -> Dict[str, Any]:
    # SQLite cannot ALTER most constraints in place; batch mode rebuilds the table
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": dialect_name == "sqlite",
    }


def run_migrations_offline() -> None:
    url = _database_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url.split(":", 1)[0].split("+", 1)[0]),
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(connection=connection, **_configure_options(connection.dialect.name))

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    connectable = async_engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
