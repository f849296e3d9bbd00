"""UTC time helpers. The quota day is always the UTC calendar date."""

from datetime import UTC, date, datetime, time, timedelta


def now_utc() -> datetime:
    return datetime.now(UTC)


def utc_today() -> date:
    return now_utc().date()


def as_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops the offset on read)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def next_reset(day: date) -> datetime:
    """Midnight UTC after ``day``, when a key's counter rolls over."""
    return start_of_day(day + timedelta(days=1))
