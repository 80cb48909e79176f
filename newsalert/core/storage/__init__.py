"""Storage module — PostgreSQL access for subscriptions and alert history."""

from newsalert.core.storage.base import DatabaseConfig
from newsalert.core.storage.exceptions import (
    ConfigurationError,
    ConnectionError,
    StorageError,
)
from newsalert.core.storage.postgres import Base, Database, close_db, get_db

__all__ = [
    "Base",
    "Database",
    "DatabaseConfig",
    "StorageError",
    "ConnectionError",
    "ConfigurationError",
    "get_db",
    "close_db",
]
