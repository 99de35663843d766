"""
CryptoCompare REST API Client

This module provides an async HTTP client for the CryptoCompare historical
OHLCV endpoints. It handles:
- HTTP requests on a shared aiohttp session
- Classification of failures (rate limit, HTTP failure, error payload)
- Normalization of bars to our schemas

API Documentation:
    https://min-api.cryptocompare.com/documentation

Limits:
    - At most 2000 bars per request
    - Rate limiting is answered with HTTP 429; the client does not retry

Usage:
    async with CryptoCompareAPIClient() as client:
        bars = await client.get_history("BTC", "day", limit=365)
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import aiohttp

from core.config import settings
from core.exceptions import FetchFailed, ProviderError, RateLimited
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import Bar


class CryptoCompareAPIClient:
    """
    Async HTTP client for CryptoCompare histohour/histoday.

    Attributes:
        PROVIDER: Provider name used in errors and logs
        ENDPOINTS: Endpoint path per granularity
        base_url: API base URL
        api_key: Optional API key
        session: aiohttp ClientSession for HTTP requests

    Example:
        >>> async with CryptoCompareAPIClient() as client:
        ...     bars = await client.get_history("CHZ", "hour", limit=720)
        ...     print(f"Fetched {len(bars)} hourly bars")

    Notes:
        - Uses context manager for automatic session cleanup
        - Bars with a non-positive close are dropped
        - volumeto (volume in the quote currency) becomes Bar.volume
    """

    PROVIDER = "cryptocompare"

    ENDPOINTS = {
        "hour": "/data/v2/histohour",
        "day": "/data/v2/histoday",
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        quote_currency: Optional[str] = None,
        timeout: Optional[int] = None
    ):
        """
        Initialize the CryptoCompare API client.

        Args:
            base_url: API base URL (defaults to settings)
            api_key: Optional API key (defaults to settings)
            quote_currency: Quote currency symbol, sent as tsym (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
        """
        self.base_url = base_url or settings.cryptocompare_base_url
        self.api_key = api_key if api_key is not None else settings.cryptocompare_api_key
        self.quote_currency = (quote_currency or settings.quote_currency).upper()
        self.max_bars = settings.cryptocompare_max_bars
        self.timeout = timeout or settings.request_timeout
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        """Enter async context - creates HTTP session."""
        self.session = aiohttp.ClientSession()
        self.logger.debug("CryptoCompareAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context - closes HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("CryptoCompareAPIClient session closed")

    # ============================================
    # HTTP Request Handler
    # ============================================

    async def _get(self, path: str, params: Dict[str, Any], asset: str) -> Any:
        """
        Make a single GET request and classify the outcome.

        Args:
            path: API endpoint path (e.g., "/data/v2/histoday")
            params: Query parameters
            asset: Asset being fetched (for error reporting)

        Returns:
            Parsed JSON payload

        Raises:
            RuntimeError: If the session was not opened
            RateLimited: HTTP 429
            FetchFailed: Any other non-200 status, timeout or connection error
            ProviderError: HTTP 200 with Response == "Error"
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        log_api_request(self.PROVIDER, path, params)
        started = time.perf_counter()

        try:
            async with self.session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                log_api_response(self.PROVIDER, path, resp.status, time.perf_counter() - started)

                if resp.status == 429:
                    self.logger.warning(f"Rate limited (HTTP 429) on {path} for {asset}")
                    raise RateLimited(self.PROVIDER, asset)

                if resp.status != 200:
                    text = await resp.text()
                    self.logger.error(f"HTTP {resp.status} on {path} for {asset}: {text}")
                    raise FetchFailed(self.PROVIDER, asset, resp.status, resp.reason or "")

                payload = await resp.json(content_type=None)

        except asyncio.TimeoutError:
            self.logger.error(f"Timeout on {path} for {asset}")
            raise FetchFailed(self.PROVIDER, asset, reason="timeout")

        except aiohttp.ClientError as e:
            self.logger.error(f"Request failed on {path} for {asset}: {e}")
            raise FetchFailed(self.PROVIDER, asset, reason=str(e))

        except ValueError as e:
            self.logger.error(f"Invalid JSON on {path} for {asset}: {e}")
            raise FetchFailed(self.PROVIDER, asset, 200, "invalid JSON payload")

        if isinstance(payload, dict) and payload.get("Response") == "Error":
            message = payload.get("Message", "Unknown error")
            self.logger.error(f"CryptoCompare error for {asset}: {message}")
            raise ProviderError(self.PROVIDER, asset, message)

        return payload

    # ============================================
    # API Methods
    # ============================================

    async def get_history(self, symbol: str, granularity: str, limit: int) -> List[Bar]:
        """
        Fetch historical OHLCV bars.

        Args:
            symbol: Asset symbol (e.g., "BTC"), sent as fsym
            granularity: "hour" or "day"
            limit: Number of bars to request (capped at 2000)

        Returns:
            List[Bar]: Ascending by time, close > 0

        CryptoCompare Endpoint:
            GET /data/v2/histohour | /data/v2/histoday

        Response Format:
            {
              "Response": "Success",
              "Data": {
                "Data": [
                  {"time": 1704067200, "open": 42280.1, "high": 42860.3,
                   "low": 42180.0, "close": 42650.5, "volumefrom": 35712.2,
                   "volumeto": 1523456789.0}
                ]
              }
            }

        Example:
            >>> bars = await client.get_history("BTC", "day", limit=30)
            >>> print(f"Latest close: ${bars[-1].close:,.2f}")
        """
        if granularity not in self.ENDPOINTS:
            raise ValueError(f"Unsupported granularity: '{granularity}'. Must be hour or day")

        symbol = symbol.upper()
        params = {
            "fsym": symbol,
            "tsym": self.quote_currency,
            "limit": min(limit, self.max_bars)
        }
        if self.api_key:
            params["api_key"] = self.api_key

        self.logger.info(f"Fetching {granularity} bars: {symbol}/{self.quote_currency} (limit={params['limit']})")

        payload = await self._get(self.ENDPOINTS[granularity], params, symbol)
        points = (payload.get("Data") or {}).get("Data") or []

        bars = [
            Bar(
                time=int(item["time"]),
                open=float(item["open"]),
                high=float(item["high"]),
                low=float(item["low"]),
                close=float(item["close"]),
                volume=float(item.get("volumeto") or 0.0)
            )
            for item in points
            if item.get("close") and float(item["close"]) > 0
        ]

        self.logger.info(f"Fetched {len(bars)} {granularity} bars for {symbol}")
        return bars
