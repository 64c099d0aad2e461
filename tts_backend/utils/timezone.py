"""
Timezone utility functions for UTC operations.
Ensures all datetime operations use UTC regardless of system timezone.
"""

import calendar
import time
from datetime import datetime, timezone
from typing import Optional


def get_utc_now() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Returns:
        datetime: Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def to_utc_datetime(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Convert a datetime to UTC timezone-aware datetime.

    Args:
        dt: Datetime object (naive or timezone-aware)

    Returns:
        datetime: UTC timezone-aware datetime, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume it's UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def epoch_millis() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


def one_month_before(dt: datetime) -> datetime:
    """
    Step back one calendar month, clamping to the last day of the shorter month.

    2026-03-31 -> 2026-02-28, 2026-01-15 -> 2025-12-15.
    """
    dt = to_utc_datetime(dt)
    year, month = (dt.year, dt.month - 1) if dt.month > 1 else (dt.year - 1, 12)
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)

