"""
Base article source interface and the common article shape.

All article sources inherit from BaseArticleSource.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class Article:
    """
    Article fetched from a source.

    This is the common format returned by all sources, regardless of
    whether it came from the search provider or a syndication feed.
    Never persisted; lives for one evaluation cycle.
    """

    title: str
    url: str
    source: str
    description: str
    published_at: datetime | None
    image_url: str | None = None
    category: str | None = None

    def __repr__(self) -> str:
        """Return string representation of article."""
        title_preview = self.title[:50] + "..." if len(self.title) > 50 else self.title
        return f"<Article(title='{title_preview}')>"


class BaseArticleSource(ABC):
    """
    Abstract base class for article sources.

    Each implementation talks to one kind of origin and makes exactly
    one outbound call per fetch. Failures raise SourceError subclasses.
    """

    name: str = "source"

    @abstractmethod
    async def fetch(self, query: str) -> list[Article]:
        """
        Fetch candidate articles.

        Args:
            query: Free-text search query, or a feed URL for feed sources.

        Returns:
            Articles in the order the origin returned them.
        """
        pass
