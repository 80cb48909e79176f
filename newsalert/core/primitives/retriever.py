"""
Article retriever with a provider-first, feeds-as-fallback strategy.

This module answers "give me candidate articles for this query":
- The search provider is tried first when it is configured
- Any provider failure (or a missing token) falls back to the feed list
- Every feed is queried; one failing feed never aborts the batch
- Feed entries are keyword-filtered locally, provider results are not
"""

import logging
from collections.abc import Sequence

from newsalert.core.config.loader import get_section
from newsalert.core.exceptions import SourceError
from newsalert.core.primitives.matcher import filter_articles
from newsalert.core.primitives.sources.base import Article
from newsalert.core.primitives.sources.feed import FeedSource
from newsalert.core.primitives.sources.search import NewsApiSource

DEFAULT_CATEGORY_CODE = "general"


class ArticleRetriever:
    """
    Retrieves candidate articles for keyword and category queries.

    Responsibilities:
    - Call the search provider when an API token is configured
    - Fall back to aggregating all configured feeds on any provider error
    - Apply keyword filtering to feed entries
    - Never raise for source failures; degrade to an empty result
    """

    def __init__(
        self,
        search_source: NewsApiSource | None = None,
        feed_source: FeedSource | None = None,
        feed_urls: Sequence[str] | None = None,
        category_map: dict[str, str] | None = None,
        default_category: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the retriever.

        Args:
            search_source: Search provider source. Built from config if not provided.
            feed_source: Feed source. Built from config if not provided.
            feed_urls: Ordered fallback feed list. Read from config if not provided.
            category_map: Category name to provider code. Read from config if not provided.
            default_category: Provider code for unmapped categories.
            logger: Logger to use instead of the module logger.
        """
        self.logger = logger or logging.getLogger(__name__)

        feeds_config = get_section("feeds") if feed_urls is None or feed_source is None else {}
        categories_config = (
            get_section("categories")
            if category_map is None or default_category is None
            else {}
        )

        self.search_source = search_source or NewsApiSource()
        self.feed_source = feed_source or FeedSource(
            timeout=float(feeds_config.get("timeout", 30.0))
        )
        self.feed_urls = list(feed_urls if feed_urls is not None else feeds_config.get("urls", []))
        self.category_map = {
            name.lower(): code
            for name, code in (
                category_map if category_map is not None else categories_config.get("map", {})
            ).items()
        }
        self.default_category = (
            default_category
            or categories_config.get("default")
            or DEFAULT_CATEGORY_CODE
        )

    async def fetch_by_keywords(self, keywords: Sequence[str]) -> list[Article]:
        """
        Fetch candidate articles for a keyword set.

        Args:
            keywords: Non-empty keyword list of a subscription.

        Returns:
            Provider results as returned, or the keyword-filtered union of
            all feeds when the provider is unavailable.
        """
        if self.search_source.configured:
            query = " ".join(keywords)
            try:
                return await self.search_source.fetch(query)
            except SourceError as e:
                self.logger.error(f"News API search failed, falling back to feeds: {e}")
            except Exception as e:
                self.logger.error(
                    f"Unexpected News API error, falling back to feeds: {e}", exc_info=True
                )
        else:
            self.logger.debug("No News API token configured, using feeds")

        return await self.fetch_from_feeds(keywords)

    async def fetch_by_category(self, category: str) -> list[Article]:
        """
        Fetch candidate articles for a free-text category name.

        The category is mapped onto the provider's taxonomy; unmapped
        names use the default code. The feed fallback filters by the
        category name itself.
        """
        if self.search_source.configured:
            code = self.category_code(category)
            try:
                return await self.search_source.fetch_category(code, label=category)
            except SourceError as e:
                self.logger.error(
                    f"News API category '{code}' failed, falling back to feeds: {e}"
                )
            except Exception as e:
                self.logger.error(
                    f"Unexpected News API error, falling back to feeds: {e}", exc_info=True
                )

        return await self.fetch_from_feeds([category])

    def category_code(self, category: str) -> str:
        """Map a category name to a provider category code."""
        return self.category_map.get(category.lower(), self.default_category)

    async def fetch_from_feeds(self, keywords: Sequence[str]) -> list[Article]:
        """
        Aggregate keyword-matching entries from every configured feed.

        Feeds are queried in order. A failing feed is logged and skipped.
        """
        all_articles: list[Article] = []
        failed = 0

        for feed_url in self.feed_urls:
            try:
                entries = await self.feed_source.fetch(feed_url)
            except SourceError as e:
                failed += 1
                self.logger.error(f"Failed to fetch feed {feed_url}: {e}")
                continue
            except Exception as e:
                failed += 1
                self.logger.error(f"Unexpected error reading feed {feed_url}: {e}", exc_info=True)
                continue

            matched = filter_articles(entries, keywords)
            self.logger.debug(
                f"Feed {feed_url}: {len(entries)} entries, {len(matched)} matched"
            )
            all_articles.extend(matched)

        if failed and failed == len(self.feed_urls):
            self.logger.warning("All fallback feeds failed, no articles retrieved")

        return all_articles
