"""
Subscription store.

The alert pipeline only needs four things from persistence: the active
subscriptions, a single subscription by id, a way to advance
last_checked, and a place to record delivery history for test alerts.
SubscriptionStore names that contract; SqlSubscriptionStore implements
it over PostgreSQL.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy import or_, select, update

from newsalert.core.models.alerts import AlertHistory, Subscription
from newsalert.core.storage.postgres import Database, get_db
from newsalert.core.utils.time import utcnow

logger = logging.getLogger(__name__)


class SubscriptionStore(ABC):
    """Read model of subscriptions plus the one field the pipeline writes."""

    @abstractmethod
    async def list_active(self) -> list[Subscription]:
        """Return every active subscription, of every cadence."""
        pass

    @abstractmethod
    async def get(self, subscription_id: int) -> Subscription | None:
        """Return one subscription, or None if it does not exist."""
        pass

    @abstractmethod
    async def update_last_checked(self, subscription_id: int, checked_at: datetime) -> bool:
        """
        Advance a subscription's last_checked.

        Must never move the value backwards.

        Returns:
            True if the row was updated.
        """
        pass

    @abstractmethod
    async def record_history(self, entry: AlertHistory) -> None:
        """Persist one delivery history entry."""
        pass


class SqlSubscriptionStore(SubscriptionStore):
    """
    Subscription store backed by the alerts and alert_history tables.

    Each call runs in its own short session.
    """

    def __init__(self, db: Database | None = None) -> None:
        """Initialize with a database instance, or None to use get_db() lazily."""
        self._db = db

    async def _get_db(self) -> Database:
        """Get the database instance, resolving lazily if needed."""
        if self._db is None:
            self._db = await get_db()
        return self._db

    async def list_active(self) -> list[Subscription]:
        db = await self._get_db()
        async with db.session() as session:
            stmt = (
                select(Subscription)
                .where(Subscription.active.is_(True))
                .order_by(Subscription.id)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get(self, subscription_id: int) -> Subscription | None:
        db = await self._get_db()
        async with db.session() as session:
            stmt = select(Subscription).where(Subscription.id == subscription_id)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def update_last_checked(self, subscription_id: int, checked_at: datetime) -> bool:
        db = await self._get_db()
        async with db.session() as session:
            stmt = (
                update(Subscription)
                .where(
                    Subscription.id == subscription_id,
                    or_(
                        Subscription.last_checked.is_(None),
                        Subscription.last_checked <= checked_at,
                    ),
                )
                .values(last_checked=checked_at, updated_at=utcnow())
            )
            result = await session.execute(stmt)

        updated = result.rowcount > 0
        if not updated:
            logger.warning(
                f"last_checked not advanced for subscription {subscription_id} "
                f"(missing, or already newer than {checked_at.isoformat()})"
            )
        return updated

    async def record_history(self, entry: AlertHistory) -> None:
        db = await self._get_db()
        async with db.session() as session:
            session.add(entry)

        logger.info(
            f"Alert history recorded for subscription {entry.alert_id} "
            f"(success={entry.success})"
        )
