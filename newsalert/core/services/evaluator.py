"""
Alert evaluation service.

Runs one evaluation cycle for a cadence:
- Loads all active subscriptions and keeps those of the cycle's cadence
- Skips subscriptions checked more recently than the cadence interval
- Retrieves candidate articles and keeps those newer than last_checked
- Sends a digest when something new was found, then advances last_checked

Also runs on-demand test alerts for a single subscription.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from newsalert.core.exceptions import AuthorizationError, NotFoundError
from newsalert.core.models.alerts import AlertHistory, Cadence, Subscription
from newsalert.core.primitives.retriever import ArticleRetriever
from newsalert.core.primitives.sources.base import Article
from newsalert.core.services.formatter import render
from newsalert.core.services.notifier import BaseNotifier, get_notifier
from newsalert.core.services.subscriptions import SqlSubscriptionStore, SubscriptionStore
from newsalert.core.utils.time import ensure_utc, utcnow


@dataclass
class CycleStats:
    """Statistics from one evaluation cycle."""

    cadence: Cadence
    subscriptions_loaded: int = 0
    eligible: int = 0
    notified: int = 0
    empty: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class ManualAlertResult:
    """Outcome of a manually triggered alert."""

    subscription_id: int
    message: str
    articles_found: int
    delivered: bool


def is_eligible(subscription: Subscription, now: datetime) -> bool:
    """
    Check if a subscription is due for evaluation.

    Due when it was never checked, or when at least the cadence's
    minimum interval has passed since the last check.
    """
    last_checked = ensure_utc(subscription.last_checked)
    if last_checked is None:
        return True
    return now - last_checked >= subscription.cadence.min_interval


def select_new_articles(
    articles: Sequence[Article],
    last_checked: datetime | None,
) -> list[Article]:
    """
    Keep articles published strictly after last_checked.

    With no previous check every article is kept. Articles without a
    publication time are never considered newer than a previous check.
    """
    last_checked = ensure_utc(last_checked)
    if last_checked is None:
        return list(articles)

    return [
        article
        for article in articles
        if article.published_at is not None
        and ensure_utc(article.published_at) > last_checked
    ]


class AlertEvaluator:
    """
    Evaluates subscriptions and dispatches notifications.

    Subscriptions in one cycle are processed sequentially; a failure in
    one subscription is logged and never aborts the cycle.
    """

    def __init__(
        self,
        store: SubscriptionStore | None = None,
        retriever: ArticleRetriever | None = None,
        notifier: BaseNotifier | None = None,
        clock: Callable[[], datetime] = utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the evaluator.

        Args:
            store: Subscription store. Defaults to the PostgreSQL store.
            retriever: Article retriever. Built from config if not provided.
            notifier: Notification channel. Defaults to the global notifier.
            clock: Returns the current aware UTC time.
            logger: Logger to use instead of the module logger.
        """
        self.store = store or SqlSubscriptionStore()
        self.retriever = retriever or ArticleRetriever()
        self.notifier = notifier or get_notifier()
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    async def run_cycle(self, cadence: Cadence) -> CycleStats:
        """
        Evaluate all due subscriptions of one cadence.

        Args:
            cadence: The cadence whose loop fired.

        Returns:
            Statistics about the cycle. Never raises.
        """
        now = self.clock()
        stats = CycleStats(cadence=cadence)

        try:
            subscriptions = await self.store.list_active()
        except Exception as e:
            self.logger.error(f"Cannot load subscriptions for {cadence.value} cycle: {e}")
            stats.errors.append(f"store: {e}")
            return stats

        stats.subscriptions_loaded = len(subscriptions)

        for subscription in subscriptions:
            if subscription.cadence != cadence:
                continue

            if not is_eligible(subscription, now):
                self.logger.debug(f"Subscription {subscription.id} not due yet")
                continue

            stats.eligible += 1

            try:
                notified = await self._process(subscription, now)
            except Exception as e:
                self.logger.error(f"Error processing subscription {subscription.id}: {e}")
                stats.errors.append(f"{subscription.id}: {e}")
                continue

            if notified:
                stats.notified += 1
            else:
                stats.empty += 1

        return stats

    async def _process(self, subscription: Subscription, now: datetime) -> bool:
        """
        Evaluate one due subscription.

        Returns:
            True if a notification was attempted, False if nothing new was found.
        """
        self.logger.debug(
            f"Processing subscription {subscription.id}, topic: {subscription.topic}"
        )

        articles = await self.retriever.fetch_by_keywords(subscription.keywords)
        new_articles = select_new_articles(articles, subscription.last_checked)

        if not new_articles:
            self.logger.debug(f"No new articles for subscription {subscription.id}")
            return False

        self.logger.info(
            f"Found {len(new_articles)} new articles for subscription {subscription.id}"
        )

        message = render(subscription, new_articles)
        sent = await self._send(subscription, message)
        if sent:
            self.logger.info(f"Notification sent for subscription {subscription.id}")
        else:
            self.logger.error(f"Failed to send notification for subscription {subscription.id}")

        # A failed send still advances last_checked
        try:
            await self.store.update_last_checked(subscription.id, now)
        except Exception as e:
            self.logger.error(
                f"Error updating last_checked for subscription {subscription.id}: {e}"
            )

        return True

    async def _send(self, subscription: Subscription, message: str) -> bool:
        """Send through the notifier, treating any exception as a failed send."""
        try:
            return await self.notifier.send(subscription.destination, message)
        except Exception as e:
            self.logger.error(f"Notifier raised for subscription {subscription.id}: {e}")
            return False

    async def trigger_test_alert(self, subscription_id: int, user_id: int) -> ManualAlertResult:
        """
        Evaluate one subscription on demand.

        Ignores staleness and the since-last-check window, always sends a
        message (the "no new articles" sentence when nothing matched),
        always records a history entry, and leaves last_checked alone.

        Raises:
            NotFoundError: Unknown subscription.
            AuthorizationError: Subscription belongs to another user.
        """
        subscription = await self.store.get(subscription_id)
        if subscription is None:
            raise NotFoundError(f"Subscription {subscription_id} not found")

        if subscription.user_id != user_id:
            raise AuthorizationError(
                f"User {user_id} does not own subscription {subscription_id}"
            )

        articles = await self.retriever.fetch_by_keywords(subscription.keywords)
        message = render(subscription, articles)
        sent = await self._send(subscription, message)

        first = articles[0] if articles else None
        entry = AlertHistory(
            alert_id=subscription.id,
            news_title=first.title if first else f"Test Alert - {subscription.topic}",
            news_url=first.url if first else "",
            news_source=first.source if first else None,
            sent_at=self.clock(),
            success=sent,
            error_msg=None if sent else "notification delivery failed",
        )
        await self.store.record_history(entry)

        self.logger.info(
            f"Test alert for subscription {subscription_id}: "
            f"{len(articles)} articles, delivered={sent}"
        )

        return ManualAlertResult(
            subscription_id=subscription.id,
            message=message,
            articles_found=len(articles),
            delivered=sent,
        )
