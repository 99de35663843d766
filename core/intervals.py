"""
Bar Interval Table

Every interval a caller can select is derived from one of the two base
granularities the OHLCV provider serves (hourly or daily bars), optionally
re-bucketed into groups by the interval aggregator.

    1H -> hourly bars as-is
    4H -> hourly bars in groups of 4
    1D -> daily bars as-is
    1W -> daily bars in groups of 7
"""

from typing import Dict, NamedTuple, Union


class IntervalSpec(NamedTuple):
    """How a display interval is built from provider bars."""

    granularity: str  # "hour" or "day"
    group_size: int
    hours: int  # length of one output bar


INTERVALS: Dict[str, IntervalSpec] = {
    "1H": IntervalSpec(granularity="hour", group_size=1, hours=1),
    "4H": IntervalSpec(granularity="hour", group_size=4, hours=4),
    "1D": IntervalSpec(granularity="day", group_size=1, hours=24),
    "1W": IntervalSpec(granularity="day", group_size=7, hours=168),
}


def get_interval(interval: str) -> IntervalSpec:
    """
    Look up an interval by name (case-insensitive).

    Raises:
        ValueError: If the interval is not supported
    """
    spec = INTERVALS.get(interval.upper())
    if spec is None:
        raise ValueError(
            f"Unsupported interval: '{interval}'. Must be one of: {', '.join(INTERVALS)}"
        )
    return spec


def base_bar_count(lookback: Union[int, str], interval: str, cap: int) -> int:
    """
    Number of base-granularity bars to request for a lookback window.

    The window is first expressed in output bars for the interval
    (days*24, days*6, days, ceil(days/7)), then multiplied by the group size
    and capped. An unbounded ("max") lookback requests the cap directly.

    Examples:
        >>> base_bar_count(30, "1H", 2000)
        720
        >>> base_bar_count(30, "4H", 2000)
        720
        >>> base_bar_count(10, "1W", 2000)
        14
        >>> base_bar_count("max", "1D", 2000)
        2000
    """
    spec = get_interval(interval)
    if lookback == "max":
        return cap

    output_bars = -(-lookback * 24 // spec.hours)
    return min(output_bars * spec.group_size, cap)


def parse_lookback(value: Union[str, int]) -> Union[int, str]:
    """
    Normalize a lookback selection to a positive day count or "max".

    Raises:
        ValueError: If the value is neither "max" nor a positive integer
    """
    if isinstance(value, str):
        value = value.strip().lower()
        if value == "max":
            return "max"
        if not value.isdigit():
            raise ValueError(f"Invalid lookback: '{value}'. Must be a positive number of days or 'max'")
        value = int(value)

    if isinstance(value, bool) or value <= 0:
        raise ValueError(f"Invalid lookback: {value}. Must be a positive number of days or 'max'")
    return value
