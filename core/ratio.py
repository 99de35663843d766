"""
Ratio Engine

Derives a day-aligned ratio series from two independent series, e.g. BTC
price over CHZ price = how many CHZ one BTC buys.

Both series may have different granularity (hourly bars vs daily quotes), so
entries are matched by UTC day bucket:

1. The denominator is indexed by day bucket; a later entry in the same day
   overwrites an earlier one.
2. The numerator is scanned in order; the first entry of each day that finds
   a denominator with a strictly positive price is emitted, later entries of
   an already emitted day are skipped.
3. The result is sorted by time.

`compute_ratio` works on OHLCV bars, `compute_quote_ratio` on close-only
quotes; both run the same alignment with a different day-bucket function.
"""

from typing import Callable, Dict, Iterator, List, Tuple, TypeVar

from core.schemas import Bar, Quote, RatioBar, ValuePoint
from core.utils.time import day_bucket, day_bucket_ms


T = TypeVar("T")


def align_by_day(
    numerator: List[T],
    denominator: List[T],
    bucket_of: Callable[[T], int],
    price_of: Callable[[T], float]
) -> Iterator[Tuple[T, T]]:
    """
    Yield (numerator, denominator) entries sharing a day bucket.

    Args:
        numerator: Numerator series in time order
        denominator: Denominator series in time order
        bucket_of: Day bucket of an entry
        price_of: Price used to reject non-positive denominators

    Yields:
        At most one pair per day bucket, in numerator order
    """
    lookup: Dict[int, T] = {}
    for entry in denominator:
        lookup[bucket_of(entry)] = entry

    emitted = set()
    for entry in numerator:
        bucket = bucket_of(entry)
        if bucket in emitted:
            continue

        match = lookup.get(bucket)
        if match is None or not price_of(match) > 0:
            continue

        emitted.add(bucket)
        yield entry, match


def _divide(numerator: float, denominator: float, fallback: float) -> float:
    # Raw bars can carry a zero open/low/high next to a positive close
    if denominator > 0:
        return numerator / denominator
    return fallback


def compute_ratio(numerator: List[Bar], denominator: List[Bar]) -> List[RatioBar]:
    """
    Ratio series of two OHLCV bar series.

    Field mapping for a matched day:
        open   = num.open / den.open
        high   = num.high / den.low   (numerator at its high, denominator at its low)
        low    = num.low / den.high   (the opposite combination)
        close  = value = num.close / den.close
        volume = (num.volume + den.volume) / 2

    A non-positive denominator open, low or high falls back to the close ratio
    for that field.

    Returns:
        List[RatioBar]: ascending by time, at most one bar per day bucket

    Example:
        >>> compute_ratio(btc_daily, chz_daily)[-1].value
        1234567.8
    """
    result = []
    for num, den in align_by_day(numerator, denominator, lambda b: day_bucket(b.time), lambda b: b.close):
        close = num.close / den.close
        result.append(
            RatioBar(
                time=num.time,
                open=_divide(num.open, den.open, close),
                high=_divide(num.high, den.low, close),
                low=_divide(num.low, den.high, close),
                close=close,
                value=close,
                volume=(num.volume + den.volume) / 2
            )
        )

    result.sort(key=lambda bar: bar.time)
    return result


def compute_quote_ratio(numerator: List[Quote], denominator: List[Quote]) -> List[ValuePoint]:
    """
    Ratio series of two close-only quote series.

    Returns:
        List[ValuePoint]: time in seconds (numerator timestamp // 1000),
        value = num.price / den.price, ascending by time

    Example:
        >>> day0 = 1704067200000
        >>> compute_quote_ratio([Quote(timestamp_ms=day0, price=100)], [Quote(timestamp_ms=day0, price=10)])
        [ValuePoint(time=1704067200, value=10.0)]
    """
    result = [
        ValuePoint(time=num.time, value=num.price / den.price)
        for num, den in align_by_day(
            numerator, denominator, lambda q: day_bucket_ms(q.timestamp_ms), lambda q: q.price
        )
    ]

    result.sort(key=lambda point: point.time)
    return result
