"""
PostgreSQL access for the alert pipeline.

One async engine per process, shared by the subscription store. Store
calls are short: each opens one session, and the session scope owns the
transaction (commit on success, rollback on error).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from newsalert.core.config.loader import get_section
from newsalert.core.storage.base import DatabaseConfig
from newsalert.core.storage.exceptions import ConnectionError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the alerts schema."""

    pass


class Database:
    """
    Async engine plus a session factory for the alerts schema.

    Usage:
        db = Database(DatabaseConfig.from_section(get_section("postgres")))
        await db.connect()

        async with db.session() as session:
            session.add(entry)

        await db.disconnect()
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self.config = config
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """The connected engine."""
        if self._engine is None:
            raise ConnectionError("Database not connected. Call connect() first.")
        return self._engine

    async def connect(self) -> None:
        """Create the engine and check the server answers."""
        if self._engine is not None:
            return

        self._engine = create_async_engine(
            self.config.url,
            pool_size=self.config.pool_size,
            max_overflow=self.config.pool_max_overflow,
            pool_pre_ping=True,
            echo=self.config.echo,
        )
        # Rows outlive their session; evaluators read them after the store returns
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

        if not await self.ping():
            await self.disconnect()
            raise ConnectionError(
                f"PostgreSQL at {self.config.host}:{self.config.port} is not reachable"
            )

        logger.info(f"Connected to PostgreSQL at {self.config.host}:{self.config.port}")

    async def disconnect(self) -> None:
        """Dispose of the engine and its pool."""
        if self._engine is None:
            return

        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("Disconnected from PostgreSQL")

    async def ping(self) -> bool:
        """True if the server answers a trivial query."""
        if self._engine is None:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"PostgreSQL ping failed: {e}")
            return False
        return True

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: committed when the block exits, rolled back if it raises."""
        if self._sessions is None:
            raise ConnectionError("Database not connected. Call connect() first.")

        async with self._sessions.begin() as session:
            yield session


# Process-wide instance used by the worker and the store
_db_instance: Database | None = None


async def get_db() -> Database:
    """
    Get the connected database for this process.

    Created from the `postgres` config section on first call.

    Raises:
        ConfigurationError: No usable `postgres` section.
        ConnectionError: Server not reachable.
    """
    global _db_instance

    if _db_instance is None:
        db = Database(DatabaseConfig.from_section(get_section("postgres")))
        await db.connect()
        _db_instance = db

    return _db_instance


async def close_db() -> None:
    """Disconnect the process database, if any."""
    global _db_instance

    if _db_instance is not None:
        await _db_instance.disconnect()
        _db_instance = None
