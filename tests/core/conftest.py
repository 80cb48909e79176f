"""
Test fixtures for database-backed tests.

Requires a reachable PostgreSQL server; tests that use the database
fixture are skipped otherwise.
Run: docker-compose up -d postgres
"""

import os

import pytest
import pytest_asyncio

from newsalert.core.models import alerts  # noqa: F401  registers the alert tables
from newsalert.core.storage.base import DatabaseConfig
from newsalert.core.storage.exceptions import ConnectionError
from newsalert.core.storage.postgres import Base, Database

# Use test database to avoid polluting real subscriptions
TEST_DB = "newsalert_test"


@pytest.fixture
def database_config() -> DatabaseConfig:
    """Database configuration for tests."""
    return DatabaseConfig(
        host=os.getenv("POSTGRES_HOST", "localhost"),
        port=int(os.getenv("POSTGRES_PORT", "5432")),
        database=os.getenv("POSTGRES_TEST_DB", TEST_DB),
        user=os.getenv("POSTGRES_USER", "newsalert"),
        password=os.getenv("POSTGRES_PASSWORD", "newsalert"),
        pool_size=2,
        pool_max_overflow=2,
        echo=False,
    )


@pytest_asyncio.fixture
async def database(database_config: DatabaseConfig) -> Database:
    """Provide a connected database instance with fresh alert tables."""
    db = Database(database_config)
    try:
        await db.connect()
    except ConnectionError:
        pytest.skip("PostgreSQL is not reachable")

    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield db

    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await db.disconnect()
