"""
Source Interface - Abstract Contract for All Price Sources

This module defines the abstract base class every price source must
implement. The pipeline works with SourceAdapter, never with a concrete
provider, so pairs can bind any asset to any registered source.

Two kinds of source exist:
    - OHLCV sources (CryptoCompare): genuine bars at hour/day granularity
    - Close-only sources (CoinGecko): one price per timestamp; bars are
      synthesized with open=high=low=close and zero volume

Example:
    class CryptoCompareSource(SourceAdapter):
        name = "cryptocompare"

        async def fetch_raw_bars(self, asset, lookback, interval):
            ...

    source = manager.get_source("cryptocompare")
    bars = await source.fetch_bars("BTC", 365, "1W")
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Union

from core.aggregation import aggregate
from core.intervals import get_interval
from core.schemas import Bar, Quote


Lookback = Union[int, str]


class SourceAdapter(ABC):
    """
    Abstract Base Class for Price Sources

    Class Attributes:
        name: Unique identifier for the source (lowercase)
        capabilities: Which series shapes the source serves natively

    Abstract Methods:
        - fetch_raw_bars: Bars at the source's base granularity for an interval
        - fetch_quotes: Close-only price observations

    Provided Methods:
        - fetch_bars: Raw bars aggregated to the requested interval
        - base_granularity / group_size: How an interval maps onto raw bars

    Errors:
        All fetch methods raise RateLimited, FetchFailed or ProviderError
        (core.exceptions) and never return bars/quotes with non-positive
        close/price.
    """

    name: str

    capabilities: Dict[str, bool] = {
        "ohlcv": False,
        "quotes": False
    }

    # ============================================
    # Fetch Methods
    # ============================================

    @abstractmethod
    async def fetch_raw_bars(self, asset: str, lookback: Lookback, interval: str) -> List[Bar]:
        """
        Fetch bars at the base granularity needed for `interval`.

        Args:
            asset: Provider symbol or coin id (e.g., "BTC", "pepper")
            lookback: Number of days, or "max" for the longest history allowed
            interval: Display interval ("1H", "4H", "1D", "1W")

        Returns:
            List[Bar]: Ascending by time, close > 0
        """
        ...

    @abstractmethod
    async def fetch_quotes(self, asset: str, lookback: Lookback) -> List[Quote]:
        """
        Fetch close-only quotes.

        Returns:
            List[Quote]: Ascending by time, price > 0
        """
        ...

    async def fetch_bars(self, asset: str, lookback: Lookback, interval: str) -> List[Bar]:
        """
        Fetch bars for a display interval.

        Example:
            >>> weekly = await source.fetch_bars("BTC", 365, "1W")
        """
        raw = await self.fetch_raw_bars(asset, lookback, interval)
        return aggregate(raw, self.group_size(interval))

    # ============================================
    # Interval Mapping
    # ============================================

    def base_granularity(self, interval: str) -> str:
        """Granularity of the raw bars fetched for `interval`."""
        return get_interval(interval).granularity

    def group_size(self, interval: str) -> int:
        """Number of raw bars merged into one bar of `interval`."""
        return get_interval(interval).group_size

    # ============================================
    # Optional Lifecycle Methods
    # ============================================

    async def initialize(self) -> None:
        """
        Open network resources (aiohttp session).

        Called by SourceManager.initialize_all(); default does nothing.
        """
        pass

    async def shutdown(self) -> None:
        """
        Release network resources.

        Called by SourceManager.shutdown_all(); default does nothing.
        """
        pass

    # ============================================
    # Helper Methods
    # ============================================

    def supports(self, feature: str) -> bool:
        """Check if this source serves a series shape natively ("ohlcv", "quotes")."""
        return self.capabilities.get(feature, False)

    def __repr__(self) -> str:
        """String representation of the source."""
        return f"<{self.__class__.__name__}(name='{self.name}')>"
