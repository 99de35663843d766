"""
Rendering Projections

Turns a Ready snapshot into the shapes a chart widget consumes:

    line     {time, value}
    candles  {time, open, high, low, close}
    volume   {time, value, color_tag}   color_tag "up" when close >= open
    overlay  {time, value}              one list per visible indicator

An empty derived series is reported with limited_data=True, a display state
of its own ("limited data available") rather than an error.
"""

from typing import Dict, List, Optional

from core.schemas import (
    CandlePoint,
    ChartPayload,
    PairSnapshot,
    RatioBar,
    SeriesPayload,
    ValuePoint,
    VolumePoint,
)


def to_line(series: List[RatioBar]) -> List[ValuePoint]:
    return [ValuePoint(time=bar.time, value=bar.value) for bar in series]


def to_candles(series: List[RatioBar]) -> List[CandlePoint]:
    return [
        CandlePoint(time=bar.time, open=bar.open, high=bar.high, low=bar.low, close=bar.close)
        for bar in series
    ]


def to_volume(series: List[RatioBar]) -> List[VolumePoint]:
    return [
        VolumePoint(
            time=bar.time,
            value=bar.volume,
            color_tag="up" if bar.close >= bar.open else "down"
        )
        for bar in series
    ]


def build_series_payload(
    label: str,
    series: List[RatioBar],
    overlays: Dict[str, List[ValuePoint]],
    mode: str = "line",
    status: str = "ok",
    reason: Optional[str] = None
) -> SeriesPayload:
    """
    Project one derived series.

    Args:
        label: Display name (e.g., "CHZ/BTC")
        series: Ratio bars
        overlays: Indicator label -> points
        mode: "line" fills `line`, "candles" fills `candles`; volume is always filled
    """
    if mode not in ("line", "candles"):
        raise ValueError(f"Invalid mode: '{mode}'. Must be line or candles")

    return SeriesPayload(
        label=label,
        mode=mode,
        line=to_line(series) if mode == "line" else [],
        candles=to_candles(series) if mode == "candles" else [],
        volume=to_volume(series),
        overlays=overlays,
        limited_data=not series,
        status=status,
        reason=reason,
    )


def build_chart_payload(snapshot: PairSnapshot, mode: str = "line") -> ChartPayload:
    """
    Project every derived series of a snapshot.

    The required ratio always comes first; the optional ratio follows when
    the pair configures an optional leg, even when it degraded to empty.

    Example:
        >>> payload = build_chart_payload(snapshot, mode="candles")
        >>> [s.label for s in payload.series]
        ['CHZ/BTC', 'PEPPER/CHZ']
    """
    series = [build_series_payload(snapshot.pair, snapshot.ratio, snapshot.overlays, mode)]

    if snapshot.optional_status != "absent":
        series.append(
            build_series_payload(
                snapshot.optional_label or "optional",
                snapshot.optional_ratio,
                snapshot.optional_overlays,
                mode,
                status=snapshot.optional_status,
                reason=snapshot.optional_reason,
            )
        )

    return ChartPayload(
        pair=snapshot.pair,
        interval=snapshot.interval,
        lookback=snapshot.lookback,
        series=series,
    )
