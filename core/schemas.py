"""
Normalized Data Schemas

This module defines Pydantic models for every series the pipeline handles.
These schemas provide a unified, provider-agnostic data format.

Key Principle:
    Regardless of which provider the data comes from (CryptoCompare OHLCV or
    CoinGecko close-only quotes), it gets normalized into these schemas so the
    aggregation, ratio and indicator stages never see provider payloads.

Models:
    Market data:
        - Quote: single price observation (close-only providers)
        - Bar: one OHLCV observation
        - RatioBar: one bar of a derived ratio series
        - ValuePoint: (time, value) point of a line/indicator series

    Configuration (supplied externally, never created by the core):
        - AssetBinding, OptionalLegConfig, PairConfig
        - IndicatorConfig, PipelineConfig

    Pipeline output:
        - PipelineStage, PairSnapshot

    Rendering projections:
        - CandlePoint, VolumePoint, SeriesPayload, ChartPayload

All times are Unix seconds except Quote.timestamp_ms.
"""

from enum import Enum
from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator, ConfigDict

from core.intervals import get_interval, parse_lookback


# ============================================
# Market Data Models
# ============================================

class Quote(BaseModel):
    """
    Single Price Observation

    Produced by close-only providers such as CoinGecko's market chart. Quotes
    with non-positive or missing prices are dropped by the source adapter.

    Example:
        >>> Quote(timestamp_ms=1704067200000, price=0.0000123)
    """

    model_config = ConfigDict(frozen=True)

    timestamp_ms: int = Field(..., description="Observation time in milliseconds since epoch")
    price: float = Field(..., description="Price in the quote currency")

    @property
    def time(self) -> int:
        """Observation time in seconds."""
        return self.timestamp_ms // 1000


class Bar(BaseModel):
    """
    Open-High-Low-Close-Volume Bar

    Attributes:
        time: Bar opening time in Unix seconds
        open: Opening price
        high: Highest price during the bar
        low: Lowest price during the bar
        close: Closing price (> 0 for any bar admitted to aggregation/ratios)
        volume: Traded volume in the quote currency

    Notes:
        - Bars synthesized from a Quote have open=high=low=close and volume=0
        - Prices can be 0.0 on raw provider bars; downstream stages filter them
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "time": 1704067200,
                "open": 42280.1,
                "high": 42860.3,
                "low": 42180.0,
                "close": 42650.5,
                "volume": 1523456789.0
            }
        }
    )

    time: int = Field(..., description="Bar opening time in Unix seconds")
    open: float = Field(..., ge=0, description="Opening price")
    high: float = Field(..., ge=0, description="Highest price")
    low: float = Field(..., ge=0, description="Lowest price")
    close: float = Field(..., ge=0, description="Closing price")
    volume: float = Field(0.0, ge=0, description="Volume in quote currency")

    @classmethod
    def from_quote(cls, quote: Quote) -> "Bar":
        """Degenerate zero-volume bar carrying a single price."""
        return cls(
            time=quote.time,
            open=quote.price,
            high=quote.price,
            low=quote.price,
            close=quote.price,
            volume=0.0
        )


class RatioBar(BaseModel):
    """
    Bar of a Derived Ratio Series

    `value` duplicates `close`: line displays read `value`, candlestick
    displays read the OHLC fields.

    Notes:
        - volume is (numerator.volume + denominator.volume) / 2, an
          approximation kept for output parity
    """

    model_config = ConfigDict(frozen=True)

    time: int
    open: float
    high: float
    low: float
    close: float
    value: float
    volume: float = 0.0


class ValuePoint(BaseModel):
    """Single-valued point: quote ratios, indicator overlays, line projections."""

    model_config = ConfigDict(frozen=True)

    time: int
    value: float


# ============================================
# Configuration Models
# ============================================

class AssetBinding(BaseModel):
    """
    Binds an asset to the source that serves it.

    Example:
        >>> AssetBinding(symbol="BTC", source="cryptocompare")
        >>> AssetBinding(symbol="pepper", source="coingecko")  # CoinGecko coin id
    """

    symbol: str = Field(..., description="Provider symbol or coin id")
    source: str = Field(..., description="Registered source name")

    @field_validator('source')
    @classmethod
    def validate_source(cls, v: str) -> str:
        """Ensure source name is lowercase"""
        return v.lower()


class OptionalLegConfig(BaseModel):
    """
    Tertiary leg of a pair, fetched best-effort.

    Attributes:
        asset: The optional asset
        pair_with: Which required leg the optional ratio is computed against
        as_numerator: True puts the optional asset over the required leg,
                      False puts the required leg over the optional asset
    """

    asset: AssetBinding
    pair_with: Literal["numerator", "denominator"] = "denominator"
    as_numerator: bool = True


class PairConfig(BaseModel):
    """
    Tracked Ratio Pair

    The ratio series is numerator price / denominator price, i.e. how many
    units of the denominator asset one unit of the numerator asset buys.
    """

    name: str = Field(..., description="Display name, e.g. 'CHZ/BTC'")
    numerator: AssetBinding
    denominator: AssetBinding
    optional_leg: Optional[OptionalLegConfig] = None
    optional_label: Optional[str] = Field(None, description="Display name of the optional ratio")

    def bindings(self) -> List[AssetBinding]:
        """All asset bindings of the pair, required legs first."""
        legs = [self.numerator, self.denominator]
        if self.optional_leg is not None:
            legs.append(self.optional_leg.asset)
        return legs

    @property
    def optional_name(self) -> Optional[str]:
        if self.optional_leg is None:
            return None
        if self.optional_label:
            return self.optional_label
        anchor = getattr(self, self.optional_leg.pair_with).symbol
        optional = self.optional_leg.asset.symbol
        if self.optional_leg.as_numerator:
            return f"{optional}/{anchor}".upper()
        return f"{anchor}/{optional}".upper()


class IndicatorConfig(BaseModel):
    """Moving-average overlay selection."""

    kind: Literal["sma", "ema"] = "sma"
    period: int = Field(..., gt=0)
    visible: bool = True

    @property
    def label(self) -> str:
        """Overlay label, e.g. 'SMA 20'."""
        return f"{self.kind.upper()} {self.period}"


def _default_indicators() -> List[IndicatorConfig]:
    return [IndicatorConfig(kind="sma", period=20), IndicatorConfig(kind="sma", period=50)]


class PipelineConfig(BaseModel):
    """
    Per-run pipeline selection: lookback window, interval and overlays.

    Example:
        >>> PipelineConfig(lookback="max", interval="1w")
        PipelineConfig(lookback='max', interval='1W', indicators=[...])
    """

    lookback: Union[int, str] = 365
    interval: str = "1D"
    indicators: List[IndicatorConfig] = Field(default_factory=_default_indicators)

    @field_validator('lookback', mode='before')
    @classmethod
    def validate_lookback(cls, v):
        """Accept a positive day count or 'max'"""
        return parse_lookback(v)

    @field_validator('interval')
    @classmethod
    def validate_interval(cls, v: str) -> str:
        """Ensure interval is supported and uppercase"""
        get_interval(v)
        return v.upper()


# ============================================
# Pipeline Output
# ============================================

class PipelineStage(str, Enum):
    """Stages a pair pipeline moves through."""

    IDLE = "idle"
    FETCHING_REQUIRED_LEGS = "fetching_required_legs"
    FETCHING_OPTIONAL_LEG = "fetching_optional_leg"
    DERIVING = "deriving"
    READY = "ready"
    FAILED = "failed"


class PairSnapshot(BaseModel):
    """
    Ready Snapshot of a Pair

    Everything the rendering layer needs for one pair. A snapshot is never
    mutated; recomputation produces a new one.

    Attributes:
        pair: Pair name
        stage: Always READY for snapshots handed to callers
        ratio: Required-leg ratio series
        overlays: Indicator label -> points over `ratio`
        optional_label: Name of the optional ratio (None when not configured)
        optional_ratio: Optional-leg ratio series (empty when degraded)
        optional_overlays: Indicator label -> points over `optional_ratio`
        optional_status: "ok", "degraded" or "absent"
        optional_reason: Why the optional leg degraded
    """

    model_config = ConfigDict(frozen=True)

    pair: str
    stage: PipelineStage = PipelineStage.READY
    interval: str
    lookback: Union[int, str]
    ratio: List[RatioBar] = Field(default_factory=list)
    overlays: Dict[str, List[ValuePoint]] = Field(default_factory=dict)
    optional_label: Optional[str] = None
    optional_ratio: List[RatioBar] = Field(default_factory=list)
    optional_overlays: Dict[str, List[ValuePoint]] = Field(default_factory=dict)
    optional_status: Literal["ok", "degraded", "absent"] = "absent"
    optional_reason: Optional[str] = None

    @property
    def limited_data(self) -> bool:
        """True when the required ratio has no usable data."""
        return not self.ratio

    @property
    def optional_limited_data(self) -> bool:
        """True when an optional leg is configured but its ratio is empty."""
        return self.optional_status != "absent" and not self.optional_ratio


# ============================================
# Rendering Projections
# ============================================

class CandlePoint(BaseModel):
    """Candlestick projection of a ratio bar."""

    time: int
    open: float
    high: float
    low: float
    close: float


class VolumePoint(BaseModel):
    """Volume histogram projection; color_tag is 'up' when close >= open."""

    time: int
    value: float
    color_tag: Literal["up", "down"]


class SeriesPayload(BaseModel):
    """One derived series ready for display."""

    label: str
    mode: Literal["line", "candles"]
    line: List[ValuePoint] = Field(default_factory=list)
    candles: List[CandlePoint] = Field(default_factory=list)
    volume: List[VolumePoint] = Field(default_factory=list)
    overlays: Dict[str, List[ValuePoint]] = Field(default_factory=dict)
    limited_data: bool = False
    status: Literal["ok", "degraded", "absent"] = "ok"
    reason: Optional[str] = None


class ChartPayload(BaseModel):
    """Everything a chart needs for one pair."""

    pair: str
    interval: str
    lookback: Union[int, str]
    series: List[SeriesPayload]
