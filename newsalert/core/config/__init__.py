"""Config module — loading and managing configuration."""

from newsalert.core.config.loader import (
    get_config,
    get_section,
    reload_config,
)

__all__ = [
    "get_config",
    "get_section",
    "reload_config",
]
