"""
Moving-average overlays over a derived series.

Indicators read one number per entry:
    RatioBar / ValuePoint -> value
    Bar                   -> close
    Quote                 -> price (time = timestamp_ms // 1000)

A series shorter than the period yields an empty overlay rather than an
error, so a fresh or thinly traded pair simply shows no line.
"""

from typing import Any, Dict, List, Tuple

from core.schemas import IndicatorConfig, Quote, ValuePoint


def _project(entry: Any) -> Tuple[int, float]:
    if isinstance(entry, Quote):
        return entry.time, entry.price
    value = getattr(entry, "value", None)
    if value is None:
        value = entry.close
    return entry.time, value


def _check_period(period: int) -> None:
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")


def sma(series: List[Any], period: int) -> List[ValuePoint]:
    """
    Simple moving average.

    Args:
        series: Time-ordered entries (see module docstring for projection)
        period: Window length

    Returns:
        List[ValuePoint]: len(series) - period + 1 points anchored at the last
        entry of each window, or [] when the series is shorter than period

    Example:
        >>> [p.value for p in sma(points_1_to_5, 5)]
        [3.0]
    """
    _check_period(period)
    if len(series) < period:
        return []

    points = [_project(entry) for entry in series]
    values = [value for _, value in points]

    result = []
    for i in range(period - 1, len(points)):
        window = values[i - period + 1:i + 1]
        result.append(ValuePoint(time=points[i][0], value=sum(window) / period))

    return result


def ema(series: List[Any], period: int) -> List[ValuePoint]:
    """
    Exponential moving average seeded with the SMA of the first window.

    ema[i] = (value[i] - ema[i-1]) * 2 / (period + 1) + ema[i-1]

    Returns:
        List[ValuePoint]: len(series) - period + 1 points, or [] when the
        series is shorter than period
    """
    _check_period(period)
    if len(series) < period:
        return []

    points = [_project(entry) for entry in series]
    multiplier = 2 / (period + 1)

    current = sum(value for _, value in points[:period]) / period
    result = [ValuePoint(time=points[period - 1][0], value=current)]

    for time, value in points[period:]:
        current = (value - current) * multiplier + current
        result.append(ValuePoint(time=time, value=current))

    return result


CALCULATORS = {
    "sma": sma,
    "ema": ema,
}


def compute_overlays(series: List[Any], indicators: List[IndicatorConfig]) -> Dict[str, List[ValuePoint]]:
    """
    Compute every visible overlay for a series.

    Returns:
        Dict mapping overlay label (e.g. "SMA 20") to its points
    """
    return {
        indicator.label: CALCULATORS[indicator.kind](series, indicator.period)
        for indicator in indicators
        if indicator.visible
    }
