"""Timezone-aware UTC helpers used by the engine, scheduler and repositories.

Every timestamp the engine stores or compares is aware UTC; naive values
coming back from the database are treated as UTC.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to a naive datetime, convert an aware one, pass None through."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def truncate_to_minute(dt: datetime) -> datetime:
    """Drop seconds and microseconds (cron evaluation works on minute boundaries)."""
    return dt.replace(second=0, microsecond=0)


def start_of_utc_day(dt: datetime) -> datetime:
    """Return midnight UTC of the day containing dt."""
    utc = ensure_utc(dt)
    return datetime(utc.year, utc.month, utc.day, tzinfo=UTC)


def duration_ms(started_at: datetime | None, completed_at: datetime | None) -> int | None:
    """Milliseconds between two instants; None unless both are set."""
    if started_at is None or completed_at is None:
        return None
    delta = ensure_utc(completed_at) - ensure_utc(started_at)
    return int(delta.total_seconds() * 1000)
