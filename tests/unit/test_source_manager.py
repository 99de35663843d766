"""
Unit Tests for the Source Manager

Run with:
    pytest tests/unit/test_source_manager.py -v
"""

import pytest

from core.source_manager import SourceManager
from sources.coingecko import CoinGeckoSource
from sources.cryptocompare import CryptoCompareSource


class FailingSource:
    name = "failing"

    async def initialize(self):
        raise RuntimeError("boom")

    async def shutdown(self):
        raise RuntimeError("boom")


class TestSourceManager:
    """Tests for source registration and lookup"""

    def test_default_registry(self):
        """Verify both built-in sources are registered"""
        manager = SourceManager()

        assert manager.list_sources() == ["cryptocompare", "coingecko"]
        assert isinstance(manager.get_source("cryptocompare"), CryptoCompareSource)
        assert isinstance(manager.get_source("CoinGecko"), CoinGeckoSource)

    def test_unknown_source_raises(self, source_manager):
        with pytest.raises(ValueError, match="not supported"):
            source_manager.get_source("binance")

    def test_has_source(self, source_manager):
        assert source_manager.has_source("OHLC") is True
        assert source_manager.has_source("binance") is False

    def test_sources_with_feature(self, source_manager):
        """Verify capability queries"""
        assert source_manager.get_sources_with_feature("ohlcv") == ["ohlc"]
        assert source_manager.get_sources_with_feature("quotes") == ["ohlc", "quotes"]

    @pytest.mark.asyncio
    async def test_lifecycle_continues_past_failures(self, ohlc_source):
        """Verify one failing source does not stop the others"""
        manager = SourceManager(sources={"failing": FailingSource(), "ohlc": ohlc_source})

        await manager.initialize_all()
        assert ohlc_source.initialized is True

        await manager.shutdown_all()
        assert ohlc_source.initialized is False

    def test_repr(self, source_manager):
        assert repr(source_manager) == "<SourceManager(sources=['ohlc', 'quotes'])>"
