"""UTC time helpers.

SQLite ``DateTime`` columns drop tzinfo, so timestamps are persisted as
naive UTC and only made aware at the API edge.
"""

from datetime import UTC, datetime, time, timedelta


def utcnow() -> datetime:
    """Current time as naive UTC, the form stored in every DateTime column."""
    return datetime.now(UTC).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def utc_day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` of the UTC calendar day containing *now* (naive)."""
    start = datetime.combine(as_naive_utc(now).date(), time.min)
    return start, start + timedelta(days=1)
