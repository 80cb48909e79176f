"""Connection settings for the subscription database."""

from dataclasses import dataclass
from typing import Any

from newsalert.core.storage.exceptions import ConfigurationError


@dataclass
class DatabaseConfig:
    """Configuration for the PostgreSQL database holding alerts."""

    host: str = "localhost"
    port: int = 5432
    database: str = "newsalert"
    user: str = "newsalert"
    password: str = "newsalert"
    pool_size: int = 5
    pool_max_overflow: int = 10
    echo: bool = False

    @classmethod
    def from_section(cls, section: dict[str, Any]) -> "DatabaseConfig":
        """
        Build settings from the `postgres` config section.

        Raises:
            ConfigurationError: Section is missing or has a non-numeric port.
        """
        if not section:
            raise ConfigurationError("PostgreSQL configuration not found")

        defaults = cls()
        try:
            return cls(
                host=section.get("host", defaults.host),
                port=int(section.get("port", defaults.port)),
                database=section.get("database", defaults.database),
                user=section.get("user", defaults.user),
                password=section.get("password", defaults.password),
                pool_size=int(section.get("pool_size", defaults.pool_size)),
                pool_max_overflow=int(section.get("pool_max_overflow", defaults.pool_max_overflow)),
                echo=bool(section.get("echo", defaults.echo)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid PostgreSQL configuration: {e}") from e

    @property
    def url(self) -> str:
        """SQLAlchemy URL for the asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )
