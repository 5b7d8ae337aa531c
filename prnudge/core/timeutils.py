"""UTC clock helpers shared by the selector, filters and escalation tracker."""

from datetime import datetime, timedelta, timezone

DAY = timedelta(days=1)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def truncate_to_minute(value: datetime) -> datetime:
    """Drop seconds and microseconds."""
    return ensure_utc(value).replace(second=0, microsecond=0)


def age_in_days(created_at: datetime, now: datetime) -> int:
    """Whole days elapsed since ``created_at`` (truncated, never negative)."""
    elapsed = ensure_utc(now) - ensure_utc(created_at)
    return max(elapsed // DAY, 0)
