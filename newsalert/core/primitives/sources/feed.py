"""
Feed-style article source for RSS/Atom syndication feeds.

This source:
1. Downloads the feed document
2. Parses it with feedparser
3. Reduces HTML in entry descriptions to plain text
4. Returns every entry as an Article (no keyword filtering here)
"""

import logging
from datetime import UTC, datetime

import feedparser
from bs4 import BeautifulSoup

from newsalert.core.exceptions import ParseError, ProviderError
from newsalert.core.primitives.fetcher import Fetcher, FetcherConfig
from newsalert.core.primitives.sources.base import Article, BaseArticleSource

logger = logging.getLogger(__name__)


def _html_to_text(value: str) -> str:
    """Strip markup from a feed description."""
    if not value or "<" not in value:
        return value.strip() if value else ""
    return BeautifulSoup(value, "html.parser").get_text(" ", strip=True)


def _entry_published_at(entry: feedparser.FeedParserDict) -> datetime | None:
    """
    Extract the publication time of a feed entry.

    feedparser normalizes pubDate/updated into a UTC struct_time.
    """
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    try:
        return datetime(*parsed[:6], tzinfo=UTC)
    except (TypeError, ValueError):
        return None


class FeedSource(BaseArticleSource):
    """
    Fetches all entries of one syndication feed.

    Uses the Fetcher primitive for HTTP and feedparser for parsing.
    """

    name = "feed"

    def __init__(self, timeout: float = 30.0, fetcher: Fetcher | None = None) -> None:
        """
        Initialize the feed source.

        Args:
            timeout: HTTP request timeout in seconds.
            fetcher: Fetcher to use instead of building one.
        """
        self.fetcher = fetcher or Fetcher(FetcherConfig(timeout=timeout))

    async def fetch(self, query: str) -> list[Article]:
        """
        Fetch and parse a feed.

        Args:
            query: The feed URL.

        Raises:
            TransportError: Network failure or timeout.
            ProviderError: Non-2xx response.
            ParseError: Body is not a readable feed.
        """
        feed_url = query
        result = await self.fetcher.fetch(feed_url)
        if not result.ok:
            raise ProviderError(
                f"Feed {feed_url} returned HTTP {result.status_code}",
                source=feed_url,
                status_code=result.status_code,
            )

        return self.parse(result.content, feed_url)

    def parse(self, content: bytes, feed_url: str) -> list[Article]:
        """Turn a feed document into articles."""
        parsed = feedparser.parse(content)

        # feedparser is lenient; only give up when nothing usable came out
        if parsed.bozo and not parsed.entries:
            raise ParseError(
                f"Malformed feed {feed_url}: {parsed.get('bozo_exception')}",
                source=feed_url,
            )

        feed_title = parsed.feed.get("title", "") if parsed.feed else ""

        articles: list[Article] = []
        for entry in parsed.entries:
            link = entry.get("link", "")
            title = (entry.get("title") or "").strip()
            if not link and not title:
                logger.debug(f"Skipping empty entry in {feed_url}")
                continue

            articles.append(
                Article(
                    title=title,
                    url=link,
                    source=feed_title,
                    description=_html_to_text(entry.get("summary") or entry.get("description") or ""),
                    published_at=_entry_published_at(entry),
                )
            )

        logger.debug(f"Parsed {len(articles)} entries from {feed_url}")
        return articles
