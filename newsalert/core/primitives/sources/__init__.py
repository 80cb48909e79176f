"""
Article sources for the alert pipeline.

- NewsApiSource: keyword/category search against The News API
- FeedSource: RSS/Atom syndication feeds parsed with feedparser
"""

from newsalert.core.primitives.sources.base import Article, BaseArticleSource
from newsalert.core.primitives.sources.feed import FeedSource
from newsalert.core.primitives.sources.search import NewsApiSource

__all__ = [
    "Article",
    "BaseArticleSource",
    "FeedSource",
    "NewsApiSource",
]
