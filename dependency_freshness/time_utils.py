"""
Shared datetime helpers and age calculations.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional


MINUTE_SECONDS = 60
HOUR_SECONDS = 60 * MINUTE_SECONDS
DAY_SECONDS = 24 * HOUR_SECONDS
MONTH_SECONDS = 30 * DAY_SECONDS
YEAR_SECONDS = 365 * DAY_SECONDS


def ensure_utc(dt: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp and normalize it to UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


def age_seconds(published_at: datetime, now: datetime) -> int:
    """Whole seconds elapsed between ``published_at`` and ``now``.

    Negative results (publish date in the future because of clock skew) are
    clamped to zero.
    """
    delta = ensure_utc(now) - ensure_utc(published_at)
    return max(0, int(delta.total_seconds()))


class AgeStatus(str, Enum):
    """Rough freshness bucket for an age in seconds."""

    HAUNTED = "haunted"
    ABANDONED = "abandoned"
    STALE = "stale"
    OKAY = "okay"
    FRESH = "fresh"

    @property
    def severity(self) -> Optional[str]:
        if self in (AgeStatus.HAUNTED, AgeStatus.ABANDONED):
            return "alert"
        if self is AgeStatus.STALE:
            return "warning"
        return None


def classify_age(age: int) -> AgeStatus:
    """Bucket an age: 5+ years haunted, 3+ abandoned, 1.5+ stale, under half a year fresh."""
    if age > YEAR_SECONDS * 5:
        return AgeStatus.HAUNTED
    if age > YEAR_SECONDS * 3:
        return AgeStatus.ABANDONED
    if age > YEAR_SECONDS * 1.5:
        return AgeStatus.STALE
    if age < YEAR_SECONDS / 2:
        return AgeStatus.FRESH
    return AgeStatus.OKAY


_HUMANIZE_UNITS = (
    (YEAR_SECONDS, "year"),
    (MONTH_SECONDS, "month"),
    (DAY_SECONDS, "day"),
    (HOUR_SECONDS, "hour"),
    (MINUTE_SECONDS, "minute"),
)


def humanize_age(age: int) -> str:
    """Describe an age in the largest whole unit, e.g. ``"3 years"``."""
    for unit_seconds, unit in _HUMANIZE_UNITS:
        count = int(round(age / unit_seconds))
        if age >= unit_seconds * 0.75:
            if count <= 1:
                article = "an" if unit == "hour" else "a"
                return f"{article} {unit}"
            return f"{count} {unit}s"
    return "a few seconds"
