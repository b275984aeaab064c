"""
Datetime helpers. All timestamps are stored and compared in UTC.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Return the current time as a timezone-aware UTC datetime.

    Call sites go through this function so tests can patch the clock.
    """
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: Optional[datetime]) -> datetime:
    """
    Return ``dt`` as a UTC-aware datetime.

    SQLite drops tzinfo on read even for ``DateTime(timezone=True)`` columns,
    so naive values coming back from the store are assumed to be UTC.

    Raises:
        ValueError: If dt is None
    """
    if dt is None:
        raise ValueError("datetime cannot be None")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def sort_key_utc(dt: Optional[datetime]) -> datetime:
    """Sort key that orders missing timestamps first."""
    if dt is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    return ensure_timezone_aware(dt)
