"""
Configuration Management Module

This module handles loading, validating, and providing access to application
configuration from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Provider endpoints and request caps
- Default lookback, interval and indicator periods for the pipeline
- Tracked pairs and their asset-to-provider bindings (JSON in TRACKED_PAIRS)

Usage:
    from core.config import settings

    print(settings.cryptocompare_base_url)
    print(settings.periods_list)            # [20, 50]
    config = settings.default_pipeline_config()
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from core.intervals import INTERVALS, parse_lookback
from core.schemas import (
    AssetBinding,
    IndicatorConfig,
    OptionalLegConfig,
    PairConfig,
    PipelineConfig,
)


def default_pairs() -> List[PairConfig]:
    """
    Pairs tracked when TRACKED_PAIRS is not set.

    CHZ/BTC is BTC price over CHZ price (how many CHZ per 1 BTC). The optional
    PEPPER leg is paired with CHZ as denominator, giving PEPPER/CHZ (how many
    PEPPER per 1 CHZ).
    """
    return [
        PairConfig(
            name="CHZ/BTC",
            numerator=AssetBinding(symbol="BTC", source="cryptocompare"),
            denominator=AssetBinding(symbol="CHZ", source="cryptocompare"),
            optional_leg=OptionalLegConfig(
                asset=AssetBinding(symbol="pepper", source="coingecko"),
                pair_with="denominator",
                as_numerator=False,
            ),
            optional_label="PEPPER/CHZ",
        )
    ]


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        cryptocompare_base_url: Base URL for the CryptoCompare (OHLCV) API
        cryptocompare_api_key: Optional API key sent as `api_key`
        coingecko_base_url: Base URL for the CoinGecko (close-only) API
        quote_currency: Quote currency for CryptoCompare (tsym)
        vs_currency: Quote currency for CoinGecko (vs_currency)
        cryptocompare_max_bars: Maximum bars per CryptoCompare request
        coingecko_max_days: Maximum lookback supported by CoinGecko
        request_timeout: Timeout for HTTP requests in seconds
        default_lookback: Lookback used when a caller does not pick one
        default_interval: Interval used when a caller does not pick one
        indicator_periods: Comma-separated moving-average periods
        indicator_kind: Moving-average kind for the default overlays
        tracked_pairs: Pairs tracked by the orchestrator
    """

    # ============================================
    # Provider Configuration
    # ============================================

    cryptocompare_base_url: str = Field(
        default="https://min-api.cryptocompare.com",
        description="CryptoCompare API base URL"
    )

    cryptocompare_api_key: str = Field(
        default="",
        description="CryptoCompare API key (optional)"
    )

    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="CoinGecko API base URL"
    )

    quote_currency: str = Field(
        default="USD",
        description="Quote currency for OHLCV requests"
    )

    vs_currency: str = Field(
        default="usd",
        description="Quote currency for close-only requests"
    )

    cryptocompare_max_bars: int = Field(
        default=2000,
        description="Maximum bars per CryptoCompare request"
    )

    coingecko_max_days: int = Field(
        default=365,
        description="Maximum lookback in days supported by the CoinGecko free tier"
    )

    request_timeout: int = Field(
        default=30,
        description="HTTP request timeout in seconds"
    )

    # ============================================
    # Pipeline Defaults
    # ============================================

    default_lookback: str = Field(
        default="365",
        description="Default lookback in days, or 'max'"
    )

    default_interval: str = Field(
        default="1D",
        description="Default bar interval (1H, 4H, 1D, 1W)"
    )

    indicator_periods: str = Field(
        default="20,50",
        description="Comma-separated moving-average periods"
    )

    indicator_kind: str = Field(
        default="sma",
        description="Moving-average kind for default overlays (sma, ema)"
    )

    tracked_pairs: List[PairConfig] = Field(
        default_factory=default_pairs,
        description="Tracked pairs (JSON list in TRACKED_PAIRS)"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=8000,
        description="FastAPI server port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    # ============================================
    # Properties
    # ============================================

    @property
    def periods_list(self) -> List[int]:
        """
        Convert comma-separated periods string to a list of ints.

        Example:
            >>> settings.periods_list
            [20, 50]
        """
        return [int(p.strip()) for p in self.indicator_periods.split(",") if p.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert comma-separated CORS origins string to a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def default_pipeline_config(self) -> PipelineConfig:
        """
        Build the pipeline configuration used when a caller does not pass one.

        Returns:
            PipelineConfig with the default lookback, interval and one visible
            overlay per configured period
        """
        return PipelineConfig(
            lookback=parse_lookback(self.default_lookback),
            interval=self.default_interval.upper(),
            indicators=[
                IndicatorConfig(kind=self.indicator_kind.lower(), period=period)
                for period in self.periods_list
            ],
        )


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(sources=None, pairs=None) -> None:
    """
    Validate critical configuration settings on application startup.

    Args:
        sources: SourceManager the pairs are served from. Defaults to
                 the built-in registry.
        pairs: Pairs to check. Defaults to TRACKED_PAIRS.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # logging.py and source_manager.py import config.py, so both are imported here
    from core.logging import logger
    from core.source_manager import SourceManager

    if pairs is None:
        pairs = settings.tracked_pairs

    if not pairs:
        raise ValueError("TRACKED_PAIRS must contain at least one pair")

    names = [pair.name for pair in pairs]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate pair names in TRACKED_PAIRS: {', '.join(names)}")

    if sources is None:
        sources = SourceManager()

    for pair in pairs:
        for binding in pair.bindings():
            if not sources.has_source(binding.source):
                raise ValueError(
                    f"Pair '{pair.name}' binds '{binding.symbol}' to unknown source "
                    f"'{binding.source}'. Must be one of: {', '.join(sorted(sources.list_sources()))}"
                )

        for binding in (pair.numerator, pair.denominator):
            if not sources.get_source(binding.source).supports("ohlcv"):
                logger.warning(
                    f"Pair '{pair.name}': {binding.symbol} on '{binding.source}' has no OHLCV, "
                    f"candles will be flat and volume zero"
                )

    if settings.default_interval.upper() not in INTERVALS:
        raise ValueError(
            f"Invalid DEFAULT_INTERVAL: '{settings.default_interval}'. "
            f"Must be one of: {', '.join(INTERVALS)}"
        )

    parse_lookback(settings.default_lookback)

    if not settings.periods_list or any(p <= 0 for p in settings.periods_list):
        raise ValueError(f"Invalid INDICATOR_PERIODS: '{settings.indicator_periods}'")

    if settings.indicator_kind.lower() not in ("sma", "ema"):
        raise ValueError(f"Invalid INDICATOR_KIND: '{settings.indicator_kind}'. Must be sma or ema")

    if not (1 <= settings.app_port <= 65535):
        raise ValueError(f"Invalid port number: {settings.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Tracking pairs: {', '.join(names)}")
    logger.info(f"Defaults: lookback={settings.default_lookback} interval={settings.default_interval.upper()}")
    logger.info(f"Indicators: {settings.indicator_kind.upper()} {', '.join(map(str, settings.periods_list))}")
    logger.info(f"CryptoCompare API: {settings.cryptocompare_base_url}")
    logger.info(f"CoinGecko API: {settings.coingecko_base_url}")
    logger.info(f"Log level: {settings.log_level.upper()}")
