"""
Unit Tests for Source Adapters

These tests verify that:
- CryptoCompareSource sizes requests from lookback and interval
- fetch_bars aggregates raw bars to the display interval
- CoinGeckoSource clamps lookback to 365 days and synthesizes flat bars
- Quotes carry millisecond timestamps

Run with:
    pytest tests/unit/test_sources.py -v
"""

from unittest.mock import AsyncMock

import pytest

from core.schemas import Bar, Quote
from core.source_interface import SourceAdapter
from sources.coingecko import CoinGeckoSource
from sources.cryptocompare import CryptoCompareSource


HOUR = 3600
T0 = 1704067200


def hourly(n):
    return [Bar(time=T0 + i * HOUR, open=1.0, high=2.0, low=0.5, close=1.5, volume=1.0) for i in range(n)]


# ============================================
# CryptoCompare
# ============================================

class TestCryptoCompareSource:
    """Tests for the OHLCV source"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lookback,interval,granularity,limit", [
        (30, "1H", "hour", 720),
        (30, "4H", "hour", 720),
        (365, "1D", "day", 365),
        (10, "1W", "day", 14),
        ("max", "4H", "hour", 2000),
    ])
    async def test_fetch_raw_bars_request_sizing(self, lookback, interval, granularity, limit):
        """Verify granularity and bar count per interval"""
        client = AsyncMock()
        client.get_history.return_value = []
        source = CryptoCompareSource(client=client)

        await source.fetch_raw_bars("BTC", lookback, interval)

        client.get_history.assert_awaited_once_with("BTC", granularity, limit)

    @pytest.mark.asyncio
    async def test_fetch_bars_aggregates_four_hours(self):
        """Verify 8 hourly bars become 2 four-hour bars"""
        client = AsyncMock()
        client.get_history.return_value = hourly(8)
        source = CryptoCompareSource(client=client)

        bars = await source.fetch_bars("BTC", 1, "4H")

        assert len(bars) == 2
        assert bars[0].volume == 4.0

    @pytest.mark.asyncio
    async def test_fetch_quotes_from_daily_closes(self):
        """Verify quotes are daily closes with millisecond timestamps"""
        client = AsyncMock()
        client.get_history.return_value = [Bar(time=T0, open=1.0, high=1.0, low=1.0, close=3.0)]
        source = CryptoCompareSource(client=client)

        quotes = await source.fetch_quotes("CHZ", 30)

        client.get_history.assert_awaited_once_with("CHZ", "day", 30)
        assert quotes == [Quote(timestamp_ms=T0 * 1000, price=3.0)]

    @pytest.mark.asyncio
    async def test_fetch_without_initialize_raises(self):
        """Verify a source without a client refuses to fetch"""
        with pytest.raises(RuntimeError, match="not initialized"):
            await CryptoCompareSource().fetch_raw_bars("BTC", 30, "1D")

    def test_interval_mapping(self):
        source = CryptoCompareSource(client=AsyncMock())

        assert source.base_granularity("4H") == "hour"
        assert source.group_size("1W") == 7
        assert source.supports("ohlcv") is True


# ============================================
# CoinGecko
# ============================================

class TestCoinGeckoSource:
    """Tests for the close-only source"""

    @pytest.mark.parametrize("lookback,expected", [
        ("max", 365),
        (1000, 365),
        (30, 30),
    ])
    def test_clamp_days(self, lookback, expected):
        """Verify lookback is clamped to the supported window"""
        assert CoinGeckoSource(client=AsyncMock()).clamp_days(lookback) == expected

    @pytest.mark.asyncio
    async def test_fetch_quotes_clamps(self):
        """Verify 'max' requests 365 days"""
        client = AsyncMock()
        client.get_market_chart.return_value = []
        source = CoinGeckoSource(client=client)

        await source.fetch_quotes("pepper", "max")

        client.get_market_chart.assert_awaited_once_with("pepper", 365)

    @pytest.mark.asyncio
    async def test_fetch_raw_bars_are_flat(self):
        """Verify bars synthesized from quotes have one price and zero volume"""
        client = AsyncMock()
        client.get_market_chart.return_value = [
            Quote(timestamp_ms=T0 * 1000, price=0.5),
            Quote(timestamp_ms=(T0 + 86_400) * 1000, price=0.6),
        ]
        source = CoinGeckoSource(client=client)

        bars = await source.fetch_raw_bars("pepper", 30, "1W")

        assert [b.time for b in bars] == [T0, T0 + 86_400]
        assert all(b.open == b.high == b.low == b.close and b.volume == 0.0 for b in bars)

    def test_native_granularity_ignores_interval(self):
        """Verify every interval uses the provider's own granularity"""
        source = CoinGeckoSource(client=AsyncMock())

        assert source.base_granularity("1H") == source.base_granularity("1W") == "native"
        assert source.group_size("4H") == 1
        assert source.supports("ohlcv") is False
        assert source.supports("quotes") is True

    @pytest.mark.asyncio
    async def test_fetch_without_initialize_raises(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            await CoinGeckoSource().fetch_quotes("pepper", 30)


# ============================================
# Interface
# ============================================

class TestSourceAdapter:
    """Tests for the abstract contract"""

    def test_cannot_instantiate_without_fetch_methods(self):
        """Verify abstract methods must be implemented"""
        class Incomplete(SourceAdapter):
            name = "incomplete"

        with pytest.raises(TypeError):
            Incomplete()

    def test_repr(self):
        assert repr(CoinGeckoSource(client=AsyncMock())) == "<CoinGeckoSource(name='coingecko')>"
