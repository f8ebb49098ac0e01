"""UTC datetime utilities."""

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    Use this instead of datetime.now() or datetime.utcnow() so every
    stored timestamp is timezone-aware and in UTC.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def hours_ago(hours: int, now: datetime | None = None) -> datetime:
    """Return the UTC instant `hours` before `now` (defaults to the current time)."""
    return (now or utc_now()) - timedelta(hours=hours)


def calendar_days_between(end: date, start: date) -> int:
    """
    Count whole calendar days from start to end, ignoring time of day.

    Example:
        >>> calendar_days_between(date(2025, 3, 3), date(2025, 3, 1))
        2
    """
    if isinstance(end, datetime):
        end = end.date()
    if isinstance(start, datetime):
        start = start.date()
    return (end - start).days
