"""
Alembic environment for the alerts schema.

The connection URL comes from the `postgres` section of the application
config, the same settings the worker uses. `alembic upgrade head` runs
against an async engine; `--sql` renders the DDL without connecting.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from newsalert.core.config.loader import get_section
from newsalert.core.models.alerts import Subscription
from newsalert.core.storage.base import DatabaseConfig

alembic_config = context.config

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

# Importing the models module registers both alert tables on this metadata
target_metadata = Subscription.metadata

database_url = DatabaseConfig.from_section(get_section("postgres")).url


def _configure_and_run(**options) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **options)
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure_and_run(connection=connection)


async def _run_online() -> None:
    engine = create_async_engine(database_url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure_and_run(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
else:
    asyncio.run(_run_online())
