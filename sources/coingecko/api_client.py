"""
CoinGecko REST API Client

Async HTTP client for the CoinGecko market chart endpoint, which serves a
single price per timestamp for coins not listed on the OHLCV provider.

API Documentation:
    https://docs.coingecko.com/reference/coins-id-market-chart

Limits:
    - The free tier serves at most 365 days of history
    - HTTP 429 signals throttling and is never retried here

Granularity is chosen by CoinGecko from `days`: 5-minute data for 1 day,
hourly for 2-90 days, daily above 90 days.

Usage:
    async with CoinGeckoAPIClient() as client:
        quotes = await client.get_market_chart("pepper", days=365)
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Union

import aiohttp

from core.config import settings
from core.exceptions import FetchFailed, ProviderError, RateLimited
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import Quote


class CoinGeckoAPIClient:
    """
    Async HTTP client for /coins/{id}/market_chart.

    Example:
        >>> async with CoinGeckoAPIClient() as client:
        ...     quotes = await client.get_market_chart("pepper", days=30)
        ...     print(f"Latest price: {quotes[-1].price}")

    Notes:
        - Quotes with a missing or non-positive price are dropped
        - Timestamps stay in milliseconds (Quote.timestamp_ms)
    """

    PROVIDER = "coingecko"

    def __init__(
        self,
        base_url: Optional[str] = None,
        vs_currency: Optional[str] = None,
        timeout: Optional[int] = None
    ):
        self.base_url = base_url or settings.coingecko_base_url
        self.vs_currency = (vs_currency or settings.vs_currency).lower()
        self.timeout = timeout or settings.request_timeout
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        """Enter async context - creates HTTP session."""
        self.session = aiohttp.ClientSession()
        self.logger.debug("CoinGeckoAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context - closes HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("CoinGeckoAPIClient session closed")

    # ============================================
    # HTTP Request Handler
    # ============================================

    async def _get(self, path: str, params: Dict[str, Any], asset: str) -> Any:
        """
        Make a single GET request and classify the outcome.

        Raises:
            RuntimeError: If the session was not opened
            RateLimited: HTTP 429
            FetchFailed: Any other non-200 status, timeout or connection error
            ProviderError: HTTP 200 with an `error` or `status.error_code` payload
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
                    self.logger.warning(f"Rate limited (HTTP 429) on {path}")
                    raise RateLimited(self.PROVIDER, asset)

                if resp.status != 200:
                    text = await resp.text()
                    self.logger.error(f"HTTP {resp.status} on {path}: {text}")
                    raise FetchFailed(self.PROVIDER, asset, resp.status, resp.reason or "")

                payload = await resp.json(content_type=None)

        except asyncio.TimeoutError:
            self.logger.error(f"Timeout on {path}")
            raise FetchFailed(self.PROVIDER, asset, reason="timeout")

        except aiohttp.ClientError as e:
            self.logger.error(f"Request failed on {path}: {e}")
            raise FetchFailed(self.PROVIDER, asset, reason=str(e))

        except ValueError as e:
            self.logger.error(f"Invalid JSON on {path}: {e}")
            raise FetchFailed(self.PROVIDER, asset, 200, "invalid JSON payload")

        message = self._error_message(payload)
        if message is not None:
            self.logger.error(f"CoinGecko error for {asset}: {message}")
            raise ProviderError(self.PROVIDER, asset, message)

        return payload

    @staticmethod
    def _error_message(payload: Any) -> Optional[str]:
        if not isinstance(payload, dict):
            return None
        if payload.get("error"):
            error = payload["error"]
            return error if isinstance(error, str) else str(error)
        status = payload.get("status")
        if isinstance(status, dict) and status.get("error_code"):
            return status.get("error_message") or f"error code {status['error_code']}"
        return None

    # ============================================
    # API Methods
    # ============================================

    async def get_market_chart(self, coin_id: str, days: Union[int, str]) -> List[Quote]:
        """
        Fetch the price chart of a coin.

        Args:
            coin_id: CoinGecko coin id (e.g., "pepper", "bitcoin")
            days: Number of days (1-365) or "max"

        Returns:
            List[Quote]: Ascending by time, price > 0

        Response Format:
            {
              "prices": [[1704067200000, 0.0000123], ...],
              "market_caps": [...],
              "total_volumes": [...]
            }
        """
        coin_id = coin_id.lower()
        path = f"/coins/{coin_id}/market_chart"
        params = {"vs_currency": self.vs_currency, "days": days}

        self.logger.info(f"Fetching market chart: {coin_id}/{self.vs_currency} (days={days})")

        payload = await self._get(path, params, coin_id)
        prices = payload.get("prices", []) if isinstance(payload, dict) else []

        quotes = [
            Quote(timestamp_ms=int(point[0]), price=float(point[1]))
            for point in prices
            if len(point) >= 2 and point[1] is not None and float(point[1]) > 0
        ]

        self.logger.info(f"Fetched {len(quotes)} quotes for {coin_id}")
        return quotes
