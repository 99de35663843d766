"""
CoinGecko Source Connector

Secondary provider: close-only quotes with a shorter history (365 days on
the free tier). Used for assets the OHLCV provider does not list.

Bars built from its quotes are degenerate (open=high=low=close) with zero
volume, at whatever granularity CoinGecko picks for the window. The
display interval does not change the request: ratio series align by day.
"""

from typing import List, Optional

from core.config import settings
from core.logging import logger
from core.schemas import Bar, Quote
from core.source_interface import Lookback, SourceAdapter
from .api_client import CoinGeckoAPIClient


class CoinGeckoSource(SourceAdapter):
    """
    CoinGecko Close-Only Source

    Example:
        >>> source = CoinGeckoSource()
        >>> await source.initialize()
        >>> quotes = await source.fetch_quotes("pepper", "max")  # clamped to 365 days
    """

    name = "coingecko"

    capabilities = {
        "ohlcv": False,
        "quotes": True
    }

    def __init__(self, client: Optional[CoinGeckoAPIClient] = None):
        self.client = client
        self.max_days = settings.coingecko_max_days
        logger.debug(f"CoinGeckoSource created (base_url={settings.coingecko_base_url})")

    async def initialize(self) -> None:
        """Create the API client and its aiohttp session."""
        if self.client is None:
            self.client = CoinGeckoAPIClient()
        if self.client.session is None:
            await self.client.__aenter__()
        logger.info("✓ CoinGecko source initialized")

    async def shutdown(self) -> None:
        """Close the API client session."""
        if self.client:
            await self.client.__aexit__(None, None, None)
        logger.info("✓ CoinGecko source shut down")

    def clamp_days(self, lookback: Lookback) -> int:
        """
        Clamp a lookback to the supported window.

        Example:
            >>> source.clamp_days("max")
            365
            >>> source.clamp_days(30)
            30
        """
        if lookback == "max":
            return self.max_days
        return min(lookback, self.max_days)

    async def fetch_quotes(self, asset: str, lookback: Lookback) -> List[Quote]:
        """Fetch quotes for at most `max_days` days."""
        if self.client is None:
            raise RuntimeError("CoinGeckoSource not initialized. Call initialize() first.")
        return await self.client.get_market_chart(asset, self.clamp_days(lookback))

    async def fetch_raw_bars(self, asset: str, lookback: Lookback, interval: str) -> List[Bar]:
        """Synthesize zero-volume bars from quotes."""
        quotes = await self.fetch_quotes(asset, lookback)
        return [Bar.from_quote(quote) for quote in quotes]

    def base_granularity(self, interval: str) -> str:
        return "native"

    def group_size(self, interval: str) -> int:
        return 1
