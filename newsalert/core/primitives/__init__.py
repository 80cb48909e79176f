"""
Primitives — atomic building blocks for the alert pipeline.

Each primitive does ONE thing well.
The evaluator composes them into a pipeline.
"""

from newsalert.core.primitives.fetcher import (
    Fetcher,
    FetcherConfig,
    FetchResult,
)

__all__ = [
    "Fetcher",
    "FetcherConfig",
    "FetchResult",
]
