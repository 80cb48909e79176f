"""
Search-style article source backed by The News API (thenewsapi.com).

Supports free-text keyword search (/news/all) and category listings
(/news/top). Results are one page of at most page_size articles; the
provider's ordering is not relied upon.
"""

import json
import logging
from datetime import datetime
from typing import Any

from newsalert.core.config.loader import get_section
from newsalert.core.exceptions import ProviderError
from newsalert.core.primitives.fetcher import Fetcher, FetcherConfig
from newsalert.core.primitives.sources.base import Article, BaseArticleSource
from newsalert.core.utils.time import ensure_utc

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.thenewsapi.com/v1"


def parse_rfc3339(value: str | None) -> datetime | None:
    """Parse a provider timestamp, returning None when it is missing or malformed."""
    if not value:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


class NewsApiSource(BaseArticleSource):
    """
    Fetches articles from The News API.

    Uses the Fetcher primitive for HTTP requests. The source is
    considered configured only when an API token is present.
    """

    name = "thenewsapi"

    def __init__(
        self,
        api_token: str | None = None,
        base_url: str | None = None,
        page_size: int | None = None,
        timeout: float | None = None,
        fetcher: Fetcher | None = None,
    ) -> None:
        """
        Initialize the search source.

        Args:
            api_token: Provider API token. Read from config if not provided.
            base_url: Provider base URL. Read from config if not provided.
            page_size: Maximum articles per request (provider caps at 50).
            timeout: HTTP request timeout in seconds.
            fetcher: Fetcher to use instead of building one.
        """
        if api_token is None or base_url is None or page_size is None or timeout is None:
            api_config = get_section("news_api")
        else:
            api_config = {}

        self._api_token = api_token if api_token is not None else api_config.get("api_token", "")
        self._base_url = (base_url or api_config.get("base_url") or DEFAULT_BASE_URL).rstrip("/")
        self._page_size = min(int(page_size or api_config.get("page_size", 50)), 50)
        self.fetcher = fetcher or Fetcher(
            FetcherConfig(timeout=float(timeout or api_config.get("timeout", 30.0)))
        )

    @property
    def configured(self) -> bool:
        """True if an API token is available."""
        return bool(self._api_token)

    async def fetch(self, query: str) -> list[Article]:
        """Search all news for a free-text query."""
        return await self._request("news/all", {"search": query})

    async def fetch_category(self, categories: str, label: str | None = None) -> list[Article]:
        """
        List top news for a provider category code.

        Args:
            categories: Provider category code (e.g. "tech").
            label: Category name to stamp on returned articles.
        """
        articles = await self._request("news/top", {"categories": categories})
        for article in articles:
            article.category = label or categories
        return articles

    async def _request(self, path: str, params: dict[str, Any]) -> list[Article]:
        """Issue one provider request and normalize the response."""
        url = f"{self._base_url}/{path}"
        query = {
            "api_token": self._api_token,
            **params,
            "limit": self._page_size,
            "sort": "published_at",
        }

        result = await self.fetcher.fetch(url, params=query)
        if not result.ok:
            raise ProviderError(
                f"News API returned HTTP {result.status_code}",
                source=self.name,
                status_code=result.status_code,
            )

        try:
            payload = json.loads(result.content)
        except ValueError as e:
            raise ProviderError(
                f"News API returned malformed JSON: {e}", source=self.name
            ) from e

        items = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ProviderError("News API response has no data list", source=self.name)

        articles = [self._to_article(item) for item in items if isinstance(item, dict)]
        logger.info(f"News API {path}: {len(articles)} articles")
        return articles

    def _to_article(self, item: dict[str, Any]) -> Article:
        """Map one provider item onto the common article shape."""
        return Article(
            title=item.get("title") or "",
            url=item.get("url") or "",
            source=item.get("source") or "",
            description=item.get("description") or "",
            published_at=parse_rfc3339(item.get("published_at")),
            image_url=item.get("image_url") or None,
        )
