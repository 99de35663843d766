"""
Interval Aggregator

Re-buckets fine-grained bars into coarser synthetic bars (hourly -> 4-hour,
daily -> weekly).

Grouping is positional over the filtered sequence, not aligned to calendar
boundaries: a 4-hour group starts at whatever hour the first remaining bar
has, and the final group may hold fewer than `group_size` bars.
"""

from typing import List

from core.schemas import Bar


def aggregate(bars: List[Bar], group_size: int) -> List[Bar]:
    """
    Merge consecutive bars into groups of `group_size`.

    Args:
        bars: Time-ordered bars
        group_size: Number of source bars per output bar (> 0)

    Returns:
        List[Bar]: ceil(n / group_size) bars where n is the number of input
        bars with close > 0. Each output bar takes time/open from the first
        member, close from the last, the max high, the min low and the summed
        volume.

    Raises:
        ValueError: If group_size is not positive

    Example:
        >>> hourly = [...]  # 8 hourly bars
        >>> four_hour = aggregate(hourly, 4)
        >>> len(four_hour)
        2
    """
    if group_size <= 0:
        raise ValueError(f"group_size must be positive, got {group_size}")

    usable = [bar for bar in bars if bar.close > 0]
    if group_size == 1:
        return usable

    result = []
    for start in range(0, len(usable), group_size):
        chunk = usable[start:start + group_size]
        result.append(
            Bar(
                time=chunk[0].time,
                open=chunk[0].open,
                high=max(bar.high for bar in chunk),
                low=min(bar.low for bar in chunk),
                close=chunk[-1].close,
                volume=sum(bar.volume for bar in chunk)
            )
        )

    return result
