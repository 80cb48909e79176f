"""
Fetcher primitive — downloads content from URLs.

This is an atomic primitive that does ONE thing:
issue a GET request with a bounded timeout and return the response
in a structured way. Network failures and timeouts surface as
TransportError; status handling is left to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from newsalert.core.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Result of fetching a URL."""

    url: str
    status_code: int
    content: bytes
    text: str | None
    headers: dict[str, str]
    fetched_at: datetime
    elapsed_ms: int

    @property
    def ok(self) -> bool:
        """True if request was successful (2xx status)."""
        return 200 <= self.status_code < 300


@dataclass
class FetcherConfig:
    """Configuration for Fetcher."""

    timeout: float = 30.0
    max_retries: int = 1
    retry_delay: float = 1.0
    user_agent: str = "newsalert/0.1 (+news alert fetcher)"
    extra_headers: dict[str, str] = field(default_factory=dict)
    follow_redirects: bool = True


class Fetcher:
    """
    Fetches content from URLs.

    Usage:
        fetcher = Fetcher()
        result = await fetcher.fetch("https://example.com/feed", params={"q": "ai"})

        if result.ok:
            print(result.text)
    """

    def __init__(self, config: FetcherConfig | None = None):
        self.config = config or FetcherConfig()

    async def fetch(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> FetchResult:
        """
        Fetch content from URL.

        Query parameters are passed separately so that credentials in them
        never end up in log lines.

        Raises:
            TransportError: Request failed or timed out on every attempt.
        """
        timeout = kwargs.get("timeout", self.config.timeout)
        headers = {
            "User-Agent": self.config.user_agent,
            **self.config.extra_headers,
            **kwargs.get("headers", {}),
        }

        start_time = datetime.now()

        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=self.config.follow_redirects,
        ) as client:

            last_error: Exception | None = None

            for attempt in range(self.config.max_retries):
                try:
                    response = await client.get(url, params=params, headers=headers)

                    elapsed_ms = int((datetime.now() - start_time).total_seconds() * 1000)

                    return FetchResult(
                        url=url,
                        status_code=response.status_code,
                        content=response.content,
                        text=response.text,
                        headers=dict(response.headers),
                        fetched_at=datetime.now(),
                        elapsed_ms=elapsed_ms,
                    )

                except httpx.TimeoutException as e:
                    last_error = e
                    logger.warning(f"Timeout fetching {url}, attempt {attempt + 1}")

                except httpx.RequestError as e:
                    last_error = e
                    logger.warning(f"Error fetching {url}: {e}, attempt {attempt + 1}")

                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(self.config.retry_delay * (attempt + 1))

            raise TransportError(
                f"Failed to fetch {url} after {self.config.max_retries} attempts: {last_error}",
                source=url,
            ) from last_error
