from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional


UTC = timezone.utc


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 / Postgres timestamp into an aware UTC datetime."""

    if not value:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if " " in text and "T" not in text:
        text = text.replace(" ", "T", 1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return ensure_utc(parsed)


def to_timestamp(dt: Optional[datetime]) -> Optional[str]:
    value = ensure_utc(dt)
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def day_start_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from ``start`` to ``end`` inclusive."""

    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


__all__ = [
    "UTC",
    "day_start_utc",
    "ensure_utc",
    "iter_days",
    "parse_timestamp",
    "to_timestamp",
    "utc_now",
]
