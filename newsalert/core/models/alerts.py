"""
SQLAlchemy models for alert subscriptions.

A subscription ("alert") names a topic, a keyword set and a cadence.
The pipeline reads active subscriptions every cycle and writes back
only last_checked. Alert history rows are written by manual test alerts.
"""

import enum
from datetime import datetime, timedelta

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from newsalert.core.storage.postgres import Base
from newsalert.core.utils.time import utcnow


class Cadence(enum.Enum):
    """How often a subscription is evaluated."""

    REALTIME = "realtime"
    HOURLY = "hourly"
    DAILY = "daily"

    @property
    def min_interval(self) -> timedelta:
        """Minimum time between two evaluations of the same subscription."""
        return _MIN_INTERVALS[self]


_MIN_INTERVALS = {
    Cadence.REALTIME: timedelta(minutes=5),
    Cadence.HOURLY: timedelta(hours=1),
    Cadence.DAILY: timedelta(hours=24),
}


class Subscription(Base):
    """
    A user's request to be alerted about a keyword set at a cadence.

    destination is the owner's already-resolved delivery address
    (phone number or chat id); None means the notifier default.
    """

    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    topic: Mapped[str] = mapped_column(String(200), nullable=False)
    keywords: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    cadence: Mapped[Cadence] = mapped_column(
        Enum(Cadence, name="alert_cadence", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=Cadence.DAILY,
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    destination: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_checked: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    history: Mapped[list["AlertHistory"]] = relationship(
        "AlertHistory", back_populates="alert", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_alerts_user_id", "user_id"),
        Index("ix_alerts_active", "active"),
    )

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, topic='{self.topic}', cadence='{self.cadence.value}')>"


class AlertHistory(Base):
    """Delivery record for one alert message."""

    __tablename__ = "alert_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("alerts.id", ondelete="CASCADE"), nullable=False
    )
    news_title: Mapped[str] = mapped_column(Text, nullable=False)
    news_url: Mapped[str] = mapped_column(Text, nullable=False)
    news_source: Mapped[str | None] = mapped_column(String(200), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error_msg: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    alert: Mapped["Subscription"] = relationship("Subscription", back_populates="history")

    __table_args__ = (Index("ix_alert_history_alert_id", "alert_id"),)

    def __repr__(self) -> str:
        return f"<AlertHistory(alert_id={self.alert_id}, success={self.success})>"
