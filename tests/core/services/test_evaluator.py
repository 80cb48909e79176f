"""Tests for the alert evaluator."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from newsalert.core.exceptions import AuthorizationError, NotFoundError
from newsalert.core.models.alerts import AlertHistory, Cadence, Subscription
from newsalert.core.primitives.retriever import ArticleRetriever
from newsalert.core.primitives.sources.base import Article
from newsalert.core.services.evaluator import (
    AlertEvaluator,
    is_eligible,
    select_new_articles,
)
from newsalert.core.services.subscriptions import SubscriptionStore

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


class InMemoryStore(SubscriptionStore):
    """Subscription store that keeps everything in a dict."""

    def __init__(self, subscriptions: list[Subscription]) -> None:
        self.subscriptions = {s.id: s for s in subscriptions}
        self.history: list[AlertHistory] = []
        self.updates: list[tuple[int, datetime]] = []

    async def list_active(self) -> list[Subscription]:
        return [s for s in self.subscriptions.values() if s.active]

    async def get(self, subscription_id: int) -> Subscription | None:
        return self.subscriptions.get(subscription_id)

    async def update_last_checked(self, subscription_id: int, checked_at: datetime) -> bool:
        subscription = self.subscriptions[subscription_id]
        if subscription.last_checked is not None and subscription.last_checked > checked_at:
            return False
        subscription.last_checked = checked_at
        self.updates.append((subscription_id, checked_at))
        return True

    async def record_history(self, entry: AlertHistory) -> None:
        self.history.append(entry)


def _subscription(
    id: int = 1,
    cadence: Cadence = Cadence.DAILY,
    last_checked: datetime | None = None,
    keywords: list[str] | None = None,
    user_id: int = 7,
    active: bool = True,
) -> Subscription:
    return Subscription(
        id=id,
        user_id=user_id,
        topic="AI News",
        keywords=keywords or ["AI", "machine learning"],
        cadence=cadence,
        active=active,
        destination="+15550100",
        last_checked=last_checked,
    )


def _article(title: str, published_at: datetime | None = None, description: str = "") -> Article:
    return Article(
        title=title,
        url=f"https://example.com/{title.replace(' ', '-').lower()}",
        source="Example",
        description=description,
        published_at=published_at,
    )


def _evaluator(
    store: SubscriptionStore,
    articles: list[Article] | None = None,
    sent: bool = True,
) -> AlertEvaluator:
    retriever = MagicMock()
    retriever.fetch_by_keywords = AsyncMock(return_value=articles or [])
    notifier = MagicMock()
    notifier.send = AsyncMock(return_value=sent)
    return AlertEvaluator(
        store=store,
        retriever=retriever,
        notifier=notifier,
        clock=lambda: NOW,
    )


class TestIsEligible:
    """Tests for is_eligible()."""

    def test_never_checked(self) -> None:
        """A subscription that was never checked is always due."""
        assert is_eligible(_subscription(cadence=Cadence.DAILY), NOW)

    def test_realtime_boundary(self) -> None:
        """Realtime needs at least 5 minutes since the last check."""
        assert not is_eligible(
            _subscription(cadence=Cadence.REALTIME, last_checked=NOW - timedelta(minutes=4)),
            NOW,
        )
        assert is_eligible(
            _subscription(cadence=Cadence.REALTIME, last_checked=NOW - timedelta(minutes=5)),
            NOW,
        )

    def test_hourly_boundary(self) -> None:
        """Hourly needs at least 60 minutes since the last check."""
        assert not is_eligible(
            _subscription(cadence=Cadence.HOURLY, last_checked=NOW - timedelta(minutes=59)),
            NOW,
        )
        assert is_eligible(
            _subscription(cadence=Cadence.HOURLY, last_checked=NOW - timedelta(minutes=60)),
            NOW,
        )

    def test_daily_boundary(self) -> None:
        """Daily needs at least 24 hours since the last check."""
        assert not is_eligible(
            _subscription(last_checked=NOW - timedelta(hours=23, minutes=59)),
            NOW,
        )
        assert is_eligible(_subscription(last_checked=NOW - timedelta(hours=24)), NOW)

    def test_naive_last_checked_treated_as_utc(self) -> None:
        """Naive timestamps from storage are read as UTC."""
        naive = (NOW - timedelta(hours=25)).replace(tzinfo=None)
        assert is_eligible(_subscription(last_checked=naive), NOW)


class TestSelectNewArticles:
    """Tests for select_new_articles()."""

    def test_first_run_keeps_everything(self) -> None:
        """Without a previous check every article is new, dated or not."""
        articles = [_article("a", NOW), _article("b", None)]
        assert select_new_articles(articles, None) == articles

    def test_strictly_newer_only(self) -> None:
        """Articles at or before last_checked are dropped."""
        last = NOW - timedelta(hours=1)
        older = _article("older", last - timedelta(minutes=1))
        same = _article("same", last)
        newer = _article("newer", last + timedelta(minutes=1))

        assert select_new_articles([older, same, newer], last) == [newer]

    def test_undated_excluded_after_first_run(self) -> None:
        """Articles without a publication time never count as new later on."""
        assert select_new_articles([_article("undated", None)], NOW) == []


class TestRunCycle:
    """Tests for AlertEvaluator.run_cycle()."""

    @pytest.mark.asyncio
    async def test_daily_first_run_sends_digest(self) -> None:
        """A never-checked subscription gets every matching article and last_checked is set."""
        store = InMemoryStore([_subscription()])
        feed_entries = [
            _article("AI chips ship", NOW - timedelta(hours=2)),
            _article("Stock markets rally", NOW - timedelta(hours=2), "Indexes closed higher."),
            _article("Research roundup", NOW - timedelta(hours=3), "New machine learning results"),
            _article("Local football results", NOW - timedelta(hours=4), "Weekend scores."),
        ]

        feed_source = MagicMock()
        feed_source.fetch = AsyncMock(return_value=feed_entries)
        search_source = MagicMock()
        search_source.configured = False
        retriever = ArticleRetriever(
            search_source=search_source,
            feed_source=feed_source,
            feed_urls=["https://feeds.example.com/tech.xml"],
            category_map={},
            default_category="general",
        )
        notifier = MagicMock()
        notifier.send = AsyncMock(return_value=True)
        evaluator = AlertEvaluator(
            store=store, retriever=retriever, notifier=notifier, clock=lambda: NOW
        )

        stats = await evaluator.run_cycle(Cadence.DAILY)

        assert stats.eligible == 1
        assert stats.notified == 1
        assert stats.errors == []

        destination, message = notifier.send.call_args.args
        assert destination == "+15550100"
        assert message.startswith("News Alert: AI News\n\n")
        assert "1. AI chips ship" in message
        assert "2. Research roundup" in message
        assert "3." not in message
        assert "... and more" not in message
        assert store.subscriptions[1].last_checked == NOW

    @pytest.mark.asyncio
    async def test_other_cadences_ignored(self) -> None:
        """Only subscriptions of the cycle's cadence are evaluated."""
        store = InMemoryStore(
            [
                _subscription(id=1, cadence=Cadence.REALTIME),
                _subscription(id=2, cadence=Cadence.HOURLY),
            ]
        )
        evaluator = _evaluator(store, [_article("AI news", NOW)])

        stats = await evaluator.run_cycle(Cadence.HOURLY)

        assert stats.subscriptions_loaded == 2
        assert stats.eligible == 1
        assert store.updates == [(2, NOW)]

    @pytest.mark.asyncio
    async def test_recently_checked_skipped(self) -> None:
        """A subscription checked 4 minutes ago is not touched by a realtime cycle."""
        last = NOW - timedelta(minutes=4)
        store = InMemoryStore([_subscription(cadence=Cadence.REALTIME, last_checked=last)])
        evaluator = _evaluator(store, [_article("AI news", NOW)])

        stats = await evaluator.run_cycle(Cadence.REALTIME)

        assert stats.eligible == 0
        evaluator.retriever.fetch_by_keywords.assert_not_called()
        assert store.subscriptions[1].last_checked == last

    @pytest.mark.asyncio
    async def test_nothing_new_leaves_last_checked(self) -> None:
        """No new articles means no message and no last_checked update."""
        last = NOW - timedelta(hours=2)
        store = InMemoryStore([_subscription(cadence=Cadence.HOURLY, last_checked=last)])
        evaluator = _evaluator(store, [_article("Old AI news", last - timedelta(hours=1))])

        stats = await evaluator.run_cycle(Cadence.HOURLY)

        assert stats.empty == 1
        evaluator.notifier.send.assert_not_called()
        assert store.subscriptions[1].last_checked == last

    @pytest.mark.asyncio
    async def test_failed_send_still_advances_last_checked(self) -> None:
        """A delivery failure does not cause the same articles to be resent."""
        store = InMemoryStore([_subscription()])
        evaluator = _evaluator(store, [_article("AI news", NOW)], sent=False)

        stats = await evaluator.run_cycle(Cadence.DAILY)

        assert stats.notified == 1
        assert store.subscriptions[1].last_checked == NOW

    @pytest.mark.asyncio
    async def test_store_failure_aborts_cycle(self) -> None:
        """A store read failure ends the cycle with an error and no sends."""
        store = InMemoryStore([])
        store.list_active = AsyncMock(side_effect=RuntimeError("db down"))
        evaluator = _evaluator(store)

        stats = await evaluator.run_cycle(Cadence.DAILY)

        assert stats.errors == ["store: db down"]
        evaluator.notifier.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_others(self) -> None:
        """An error on one subscription is recorded and the next one still runs."""
        store = InMemoryStore([_subscription(id=1), _subscription(id=2)])
        evaluator = _evaluator(store)
        evaluator.retriever.fetch_by_keywords = AsyncMock(
            side_effect=[RuntimeError("boom"), [_article("AI news", NOW)]]
        )

        stats = await evaluator.run_cycle(Cadence.DAILY)

        assert stats.errors == ["1: boom"]
        assert stats.notified == 1
        assert store.subscriptions[1].last_checked is None
        assert store.subscriptions[2].last_checked == NOW

    @pytest.mark.asyncio
    async def test_inactive_subscriptions_excluded(self) -> None:
        """Inactive subscriptions are never loaded."""
        store = InMemoryStore([_subscription(active=False)])
        evaluator = _evaluator(store, [_article("AI news", NOW)])

        stats = await evaluator.run_cycle(Cadence.DAILY)

        assert stats.subscriptions_loaded == 0
        evaluator.notifier.send.assert_not_called()


class TestTriggerTestAlert:
    """Tests for AlertEvaluator.trigger_test_alert()."""

    @pytest.mark.asyncio
    async def test_unknown_subscription(self) -> None:
        """Unknown ids raise NotFoundError."""
        evaluator = _evaluator(InMemoryStore([]))

        with pytest.raises(NotFoundError):
            await evaluator.trigger_test_alert(99, user_id=7)

    @pytest.mark.asyncio
    async def test_wrong_owner(self) -> None:
        """Another user's subscription raises AuthorizationError and sends nothing."""
        store = InMemoryStore([_subscription(user_id=7)])
        evaluator = _evaluator(store, [_article("AI news", NOW)])

        with pytest.raises(AuthorizationError):
            await evaluator.trigger_test_alert(1, user_id=8)

        evaluator.notifier.send.assert_not_called()
        assert store.history == []

    @pytest.mark.asyncio
    async def test_sends_and_records_history(self) -> None:
        """Old articles still count, history is recorded, last_checked is untouched."""
        last = NOW - timedelta(hours=1)
        store = InMemoryStore([_subscription(last_checked=last)])
        old = _article("Old AI news", last - timedelta(days=2))
        evaluator = _evaluator(store, [old])

        result = await evaluator.trigger_test_alert(1, user_id=7)

        assert result.articles_found == 1
        assert result.delivered is True
        assert "1. Old AI news" in result.message
        assert store.subscriptions[1].last_checked == last

        (entry,) = store.history
        assert entry.alert_id == 1
        assert entry.news_title == "Old AI news"
        assert entry.news_url == old.url
        assert entry.success is True
        assert entry.error_msg is None
        assert entry.sent_at == NOW

    @pytest.mark.asyncio
    async def test_no_articles_sends_no_news_sentence(self) -> None:
        """With nothing found the no-news message is still sent and recorded."""
        store = InMemoryStore([_subscription()])
        evaluator = _evaluator(store, [], sent=False)

        result = await evaluator.trigger_test_alert(1, user_id=7)

        assert result.message == "No new articles found for your alert: AI News"
        evaluator.notifier.send.assert_awaited_once()

        (entry,) = store.history
        assert entry.news_title == "Test Alert - AI News"
        assert entry.success is False
        assert entry.error_msg == "notification delivery failed"
