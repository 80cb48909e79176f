"""Plain-text digest rendering for alert notifications."""

from collections.abc import Sequence

from newsalert.core.models.alerts import Subscription
from newsalert.core.primitives.sources.base import Article

MAX_DIGEST_ARTICLES = 3
MORE_SUFFIX = "... and more"


def render(subscription: Subscription, articles: Sequence[Article]) -> str:
    """
    Render a short digest for a subscription.

    Lists at most the first three articles in the order given, followed
    by a "... and more" marker when more were passed in. Output is plain
    text and is not escaped for any transport.
    """
    if not articles:
        return f"No new articles found for your alert: {subscription.topic}"

    message = f"News Alert: {subscription.topic}\n\n"

    for i, article in enumerate(articles[:MAX_DIGEST_ARTICLES], start=1):
        message += f"{i}. {article.title}\n{article.url}\n\n"

    if len(articles) > MAX_DIGEST_ARTICLES:
        message += MORE_SUFFIX

    return message
