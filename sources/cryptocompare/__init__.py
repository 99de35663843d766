"""
CryptoCompare Source Connector

Primary provider: genuine OHLCV bars with a long history.

Interval derivation:
    1H -> hourly bars as-is
    4H -> hourly bars aggregated in groups of 4
    1D -> daily bars as-is
    1W -> daily bars aggregated in groups of 7

Request sizing:
    - lookback "max" requests the 2000-bar cap directly
    - otherwise the bar count for the lookback window is capped at 2000
"""

from typing import List, Optional

from core.config import settings
from core.intervals import base_bar_count, get_interval
from core.logging import logger
from core.schemas import Bar, Quote
from core.source_interface import Lookback, SourceAdapter
from .api_client import CryptoCompareAPIClient


class CryptoCompareSource(SourceAdapter):
    """
    CryptoCompare OHLCV Source

    Example:
        >>> source = CryptoCompareSource()
        >>> await source.initialize()
        >>> bars = await source.fetch_bars("BTC", 90, "4H")
        >>> quotes = await source.fetch_quotes("CHZ", "max")
        >>> await source.shutdown()
    """

    name = "cryptocompare"

    capabilities = {
        "ohlcv": True,
        "quotes": True
    }

    def __init__(self, client: Optional[CryptoCompareAPIClient] = None):
        """
        Args:
            client: Pre-built API client (tests); created in initialize() otherwise
        """
        self.client = client
        self.max_bars = settings.cryptocompare_max_bars
        logger.debug(f"CryptoCompareSource created (base_url={settings.cryptocompare_base_url})")

    async def initialize(self) -> None:
        """Create the API client and its aiohttp session."""
        if self.client is None:
            self.client = CryptoCompareAPIClient()
        if self.client.session is None:
            await self.client.__aenter__()
        logger.info("✓ CryptoCompare source initialized")

    async def shutdown(self) -> None:
        """Close the API client session."""
        if self.client:
            await self.client.__aexit__(None, None, None)
        logger.info("✓ CryptoCompare source shut down")

    def _require_client(self) -> CryptoCompareAPIClient:
        if self.client is None:
            raise RuntimeError("CryptoCompareSource not initialized. Call initialize() first.")
        return self.client

    async def fetch_raw_bars(self, asset: str, lookback: Lookback, interval: str) -> List[Bar]:
        """
        Fetch hourly or daily bars sized for the lookback window.

        Example:
            >>> raw = await source.fetch_raw_bars("BTC", 30, "4H")  # 720 hourly bars
        """
        spec = get_interval(interval)
        limit = base_bar_count(lookback, interval, self.max_bars)
        return await self._require_client().get_history(asset, spec.granularity, limit)

    async def fetch_quotes(self, asset: str, lookback: Lookback) -> List[Quote]:
        """
        Daily closes as quotes (timestamp in milliseconds).
        """
        limit = base_bar_count(lookback, "1D", self.max_bars)
        bars = await self._require_client().get_history(asset, "day", limit)
        return [Quote(timestamp_ms=bar.time * 1000, price=bar.close) for bar in bars]
