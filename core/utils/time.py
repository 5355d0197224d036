"""
Time Utilities

Binance takes kline time bounds as milliseconds since epoch. The helpers here
turn timezone-aware datetimes and lookback durations into those bounds.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple


def current_utc_datetime() -> datetime:
    """
    Get current UTC datetime.

    Example:
        >>> current_utc_datetime()
        datetime.datetime(2024, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)
    """
    return datetime.now(timezone.utc)


def datetime_to_millis(dt: datetime) -> int:
    """
    Convert a datetime to Unix milliseconds.

    Examples:
        >>> datetime_to_millis(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))
        1704110400000

    Notes:
        - If datetime is naive (no timezone), UTC is assumed
        - Sub-millisecond precision is truncated
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return int(dt.timestamp() * 1000)


def history_window(lookback: timedelta, now: Optional[datetime] = None) -> Tuple[int, int]:
    """
    Compute the [now - lookback, now] window in milliseconds.

    Args:
        lookback: Window length
        now: Window end (defaults to the current UTC time)

    Returns:
        (start_ms, end_ms)

    Example:
        >>> end = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        >>> history_window(timedelta(hours=12), end)
        (1704067200000, 1704110400000)
    """
    end = now or current_utc_datetime()
    start = end - lookback
    return datetime_to_millis(start), datetime_to_millis(end)
