"""
Storage exceptions.

All storage components raise these exceptions for consistent error handling.
"""


class StorageError(Exception):
    """Base exception for all storage errors."""

    pass


class ConnectionError(StorageError):
    """Cannot connect to storage service."""

    pass


class ConfigurationError(StorageError):
    """Invalid storage configuration."""

    pass
