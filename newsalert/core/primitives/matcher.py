"""
Keyword matching for articles.

An article matches when any keyword occurs, case-insensitively, as a
substring of its title and description. Partial words count: "Mac"
matches "MacBook".
"""

from collections.abc import Iterable, Sequence

from newsalert.core.primitives.sources.base import Article


def matches(article: Article, keywords: Iterable[str]) -> bool:
    """Check if any keyword appears in the article's title or description."""
    content = f"{article.title} {article.description}".lower()
    return any(keyword.lower() in content for keyword in keywords)


def filter_articles(articles: Sequence[Article], keywords: Sequence[str]) -> list[Article]:
    """Keep matching articles in their original order. No deduplication."""
    return [article for article in articles if matches(article, keywords)]
