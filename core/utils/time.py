"""
Time Utilities

Providers report time differently:
- CryptoCompare: seconds since epoch (e.g., 1704067200)
- CoinGecko: milliseconds since epoch (e.g., 1704067200000)

Series of different granularity (hourly bars, daily bars, irregular quotes)
are aligned by day bucket: the integer UTC day index of a timestamp.
"""

from datetime import datetime, timezone
from typing import Union


SECONDS_PER_DAY = 86_400
MILLISECONDS_PER_DAY = 86_400_000


def day_bucket(seconds: Union[int, float]) -> int:
    """
    Integer UTC day index of a timestamp in seconds.

    Examples:
        >>> day_bucket(1704067200)          # 2024-01-01 00:00:00 UTC
        19723
        >>> day_bucket(1704067200 + 86399)  # 2024-01-01 23:59:59 UTC
        19723
    """
    return int(seconds // SECONDS_PER_DAY)


def day_bucket_ms(milliseconds: Union[int, float]) -> int:
    """Integer UTC day index of a timestamp in milliseconds."""
    return int(milliseconds // MILLISECONDS_PER_DAY)


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a timestamp (seconds or milliseconds) to UTC datetime.

    Detection Logic:
        - If timestamp > 1e12 (1 trillion): Assumed to be milliseconds
        - Otherwise: Assumed to be seconds

    Raises:
        ValueError: If timestamp is negative or invalid

    Examples:
        >>> to_utc_datetime(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
        >>> to_utc_datetime(1704110400)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    # Seconds are ~1.7 billion today, milliseconds ~1.7 trillion
    if timestamp > 1e12:
        timestamp = timestamp / 1000.0

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def format_date(timestamp: Union[int, float]) -> str:
    """
    Short human-readable UTC date for reports.

    Example:
        >>> format_date(1704067200)
        'Jan 1, 2024'
    """
    dt = to_utc_datetime(timestamp)
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"
