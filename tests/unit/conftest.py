"""
Shared fixtures: in-memory sources and a tracked pair wired to them.

    numerator   BTC     "ohlc" source, 60 daily bars, close 100..159
    denominator CHZ     "ohlc" source, 60 daily bars, close 2.0
    optional    pepper  "quotes" source, 60 daily quotes, price 0.5

so CHZ/BTC = (100 + i) / 2 and the optional CHZ/PEPPER = 4.0.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from core.schemas import (
    AssetBinding,
    Bar,
    OptionalLegConfig,
    PairConfig,
    Quote,
)
from core.source_interface import SourceAdapter
from core.source_manager import SourceManager


DAY = 86_400
DAY0 = 1704067200  # 2024-01-01 00:00:00 UTC
DAYS = 60


# ============================================
# Dummy Sources for Testing
# ============================================

class DummySource(SourceAdapter):
    """
    Serves canned bars per asset, or raises a canned error.

    Every fetch is recorded in `calls`. While `gate` is set to an unset
    asyncio.Event, fetches wait on it.
    """

    capabilities = {
        "ohlcv": True,
        "quotes": True
    }

    def __init__(self, name: str, bars: Optional[Dict[str, List[Bar]]] = None):
        self.name = name
        self.bars = bars or {}
        self.errors: Dict[str, Exception] = {}
        self.calls = []
        self.gate: Optional[asyncio.Event] = None
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    async def shutdown(self) -> None:
        self.initialized = False

    async def fetch_raw_bars(self, asset, lookback, interval):
        self.calls.append((asset, lookback, interval))
        if self.gate is not None:
            await self.gate.wait()
        if asset in self.errors:
            raise self.errors[asset]
        return list(self.bars.get(asset, []))

    async def fetch_quotes(self, asset, lookback):
        bars = await self.fetch_raw_bars(asset, lookback, "1D")
        return [Quote(timestamp_ms=bar.time * 1000, price=bar.close) for bar in bars]


class DummyQuoteSource(DummySource):
    """Close-only source: native granularity, never aggregated."""

    capabilities = {
        "ohlcv": False,
        "quotes": True
    }

    def base_granularity(self, interval):
        return "native"

    def group_size(self, interval):
        return 1


def daily_bars(closes, volume=10.0):
    return [
        Bar(time=DAY0 + i * DAY, open=close, high=close * 1.1, low=close * 0.9, close=close, volume=volume)
        for i, close in enumerate(closes)
    ]


def flat_bars(prices):
    return [Bar.from_quote(Quote(timestamp_ms=(DAY0 + i * DAY) * 1000, price=p)) for i, p in enumerate(prices)]


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def ohlc_source():
    return DummySource("ohlc", {
        "BTC": daily_bars([100.0 + i for i in range(DAYS)]),
        "CHZ": daily_bars([2.0] * DAYS),
        "ETH": daily_bars([50.0] * DAYS),
    })


@pytest.fixture
def quote_source():
    return DummyQuoteSource("quotes", {"pepper": flat_bars([0.5] * DAYS)})


@pytest.fixture
def source_manager(ohlc_source, quote_source):
    return SourceManager(sources={"ohlc": ohlc_source, "quotes": quote_source})


@pytest.fixture
def pair():
    """CHZ/BTC with PEPPER paired against the denominator, as CHZ/PEPPER."""
    return PairConfig(
        name="CHZ/BTC",
        numerator=AssetBinding(symbol="BTC", source="ohlc"),
        denominator=AssetBinding(symbol="CHZ", source="ohlc"),
        optional_leg=OptionalLegConfig(
            asset=AssetBinding(symbol="pepper", source="quotes"),
            pair_with="denominator",
            as_numerator=False,
        ),
    )


@pytest.fixture
def plain_pair():
    """Pair without an optional leg."""
    return PairConfig(
        name="ETH/BTC",
        numerator=AssetBinding(symbol="ETH", source="ohlc"),
        denominator=AssetBinding(symbol="BTC", source="ohlc"),
    )
