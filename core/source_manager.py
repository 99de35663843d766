"""
Source Manager - Central Registry for Price Sources

The SourceManager maps source names used in pair bindings
("cryptocompare", "coingecko") to SourceAdapter instances and manages their
lifecycle.

Example Usage:
    manager = SourceManager()
    await manager.initialize_all()

    source = manager.get_source("cryptocompare")
    bars = await source.fetch_bars("BTC", 365, "1D")

    await manager.shutdown_all()
"""

from typing import Dict, List, Optional

from core.logging import logger
from core.source_interface import SourceAdapter


class SourceManager:
    """
    Central Manager for Price Sources

    Attributes:
        sources: Dictionary mapping source names to adapter instances

    Example:
        >>> manager = SourceManager()
        >>> manager.list_sources()
        ['cryptocompare', 'coingecko']
    """

    def __init__(self, sources: Optional[Dict[str, SourceAdapter]] = None):
        """
        Initialize the registry.

        Args:
            sources: Explicit registry (tests). Defaults to every built-in source.

        Note:
            Sources are created but not initialized here.
            Call initialize_all() to open their HTTP sessions.
        """
        if sources is None:
            # Source modules import from core, so they are imported here
            from sources.cryptocompare import CryptoCompareSource
            from sources.coingecko import CoinGeckoSource

            sources = {
                "cryptocompare": CryptoCompareSource(),
                "coingecko": CoinGeckoSource(),
            }

        self.sources: Dict[str, SourceAdapter] = {name.lower(): source for name, source in sources.items()}

        logger.info(f"SourceManager initialized with {len(self.sources)} source(s): {', '.join(self.sources.keys())}")

    # ============================================
    # Source Retrieval Methods
    # ============================================

    def get_source(self, name: str) -> SourceAdapter:
        """
        Get a source by name.

        Raises:
            ValueError: If the source is not registered
        """
        name = name.lower()

        if name not in self.sources:
            available = ", ".join(self.sources.keys())
            logger.error(f"Source '{name}' not found. Available: {available}")
            raise ValueError(
                f"Source '{name}' is not supported. "
                f"Available sources: {available}"
            )

        return self.sources[name]

    def has_source(self, name: str) -> bool:
        """Check if a source is registered (case-insensitive)."""
        return name.lower() in self.sources

    def list_sources(self) -> List[str]:
        """Names of all registered sources."""
        return list(self.sources.keys())

    # ============================================
    # Lifecycle Management
    # ============================================

    async def initialize_all(self) -> None:
        """
        Initialize all registered sources.

        A source that fails to initialize is logged and skipped; pairs bound
        to it will fail when they fetch.
        """
        logger.info("Initializing all sources...")

        for name, source in self.sources.items():
            try:
                await source.initialize()
            except Exception as e:
                logger.error(f"✗ Failed to initialize {name}: {e}")

        logger.info("All sources initialized")

    async def shutdown_all(self) -> None:
        """Shutdown all sources, continuing past individual failures."""
        logger.info("Shutting down all sources...")

        for name, source in self.sources.items():
            try:
                await source.shutdown()
            except Exception as e:
                logger.error(f"✗ Error shutting down {name}: {e}")

        logger.info("All sources shut down")

    # ============================================
    # Capability Queries
    # ============================================

    def get_sources_with_feature(self, feature: str) -> List[str]:
        """
        Names of sources serving a series shape natively.

        Example:
            >>> manager.get_sources_with_feature("ohlcv")
            ['cryptocompare']
        """
        return [name for name, source in self.sources.items() if source.supports(feature)]

    def __repr__(self) -> str:
        return f"<SourceManager(sources={list(self.sources.keys())})>"
