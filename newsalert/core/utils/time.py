"""Time utilities for consistent timezone handling."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """
    Get current UTC time as a timezone-aware datetime.

    All timestamps compared by the alert pipeline (article publication
    times, subscription last_checked values) use this function so that
    naive and aware datetimes are never mixed.

    Returns:
        datetime: Current UTC time with timezone information.

    Example:
        >>> now = utcnow()
        >>> now.tzinfo == UTC
        True
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to a naive datetime, convert an aware one to UTC.

    Database drivers and feed parsers do not agree on whether they
    return aware datetimes, so values crossing those boundaries go
    through here.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
