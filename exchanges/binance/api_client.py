"""
Binance REST API Client

This module provides an async HTTP client for the two Binance spot endpoints
the service needs:
- 24h ticker (last price, volume, percent change)
- Klines (close prices for the history chart)

It handles:
- Per-request deadlines (every call accepts a timeout, capped by configuration)
- Mapping transport, timeout and payload failures to our error types
- Data normalization to our schemas

No retry at this layer: a failed symbol is skipped for the current refresh
cycle and fetched again on the next one.

API Documentation:
    https://binance-docs.github.io/apidocs/spot/en/

Usage:
    async with BinanceAPIClient() as client:
        quote = await client.fetch_quote("BTC")
        closes = await client.fetch_history("BTC", "5m", timeout=3.0)
"""

import aiohttp
import asyncio
import math
import time
from datetime import datetime
from typing import List, Dict, Optional, Any

from pydantic import ValidationError

from core.config import settings
from core.errors import DecodeError, NetworkError, UpstreamTimeoutError
from core.intervals import get_interval_spec
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import PriceQuote
from core.utils.time import history_window


QUOTE_ASSET = "USDT"
CLOSE_INDEX = 4


def to_pair(symbol: str) -> str:
    """Map a ticker code to its Binance USDT pair (e.g. "btc" -> "BTCUSDT")."""
    return f"{symbol.strip().upper()}{QUOTE_ASSET}"


def extract_close_prices(klines: List[Any]) -> List[float]:
    """
    Pull the close price out of every kline record.

    A record whose close is missing, unparsable or non-finite (NaN, inf)
    yields 0.0 for that slot, so one bad candle never costs the whole series.

    Example:
        >>> extract_close_prices([[0, "1", "2", "0.5", "100.5"], [0, "1", "2", "0.5", "bad"]])
        [100.5, 0.0]
    """
    closes = []
    for kline in klines:
        try:
            close = float(kline[CLOSE_INDEX])
        except (TypeError, ValueError, IndexError, KeyError):
            close = 0.0
        closes.append(close if math.isfinite(close) else 0.0)
    return closes


class BinanceAPIClient:
    """
    Async HTTP client for the Binance spot REST API

    Attributes:
        base_url: Binance API base URL
        request_timeout: Upper bound for a single request (seconds)
        session: aiohttp ClientSession for HTTP requests
        logger: Logger instance for debugging

    Example:
        >>> async with BinanceAPIClient() as client:
        ...     quote = await client.fetch_quote("ETH")
        ...     print(quote.last_price)

    Notes:
        - Use as async context manager, or call start()/close() explicitly
          when the session lifetime follows the application lifespan
        - No API key needed for these public endpoints
    """

    EXCHANGE = "binance"
    TICKER_PATH = "/api/v3/ticker/24hr"
    KLINES_PATH = "/api/v3/klines"

    def __init__(self, base_url: Optional[str] = None, request_timeout: Optional[float] = None):
        self.base_url = (base_url or settings.binance_base_url).rstrip("/")
        self.request_timeout = request_timeout or settings.request_timeout
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Session Management
    # ============================================

    async def start(self) -> None:
        """Open the HTTP session (no-op if already open)."""
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self.logger.debug("BinanceAPIClient session created")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("BinanceAPIClient session closed")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ============================================
    # HTTP Request Handler
    # ============================================

    def _effective_timeout(self, timeout: Optional[float]) -> float:
        if timeout is None:
            return self.request_timeout
        return min(timeout, self.request_timeout)

    async def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ) -> Any:
        """
        Make a single GET request and decode the JSON body.

        Args:
            path: API endpoint path (e.g., "/api/v3/klines")
            params: Optional query parameters
            timeout: Deadline for this request in seconds (capped by request_timeout)

        Returns:
            Decoded JSON response

        Raises:
            UpstreamTimeoutError: Deadline exceeded (or already spent)
            NetworkError: Connection failure or non-200 status
            DecodeError: Body is not valid JSON
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' or call start().")

        deadline = self._effective_timeout(timeout)
        if deadline <= 0:
            raise UpstreamTimeoutError(f"No time left to request {path}")

        url = f"{self.base_url}{path}"
        log_api_request(self.EXCHANGE, path, params)
        started = time.monotonic()

        try:
            async with self.session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=deadline)
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise NetworkError(f"HTTP {resp.status} on {path}: {text[:200]}", status=resp.status)

                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise DecodeError(f"Invalid JSON from {path}: {e}") from e

        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError(f"Timeout after {deadline:.1f}s on {path}") from e

        except aiohttp.ClientError as e:
            raise NetworkError(f"Request failed on {path}: {e}") from e

        log_api_response(self.EXCHANGE, path, resp.status, time.monotonic() - started)
        return data

    # ============================================
    # API Methods
    # ============================================

    async def fetch_quote(self, symbol: str, timeout: Optional[float] = None) -> PriceQuote:
        """
        Fetch the 24h ticker for a symbol.

        Args:
            symbol: Ticker code (e.g., "BTC"); USDT is appended
            timeout: Request deadline in seconds

        Returns:
            PriceQuote with the exchange's decimal text values

        Binance Endpoint:
            GET /api/v3/ticker/24hr?symbol=BTCUSDT

        Response Format (abridged):
            {
              "symbol": "BTCUSDT",
              "priceChangePercent": "-1.250",
              "lastPrice": "65000.10000000",
              "volume": "1234.50000000",
              ...
            }
        """
        code = symbol.strip().upper()
        data = await self._get(self.TICKER_PATH, {"symbol": to_pair(code)}, timeout)

        if not isinstance(data, dict):
            raise DecodeError(f"Expected ticker object for {code}, got {type(data).__name__}")

        try:
            quote = PriceQuote.model_validate({**data, "symbol": code})
        except ValidationError as e:
            raise DecodeError(f"Malformed ticker for {code}: {e.error_count()} invalid field(s)") from e

        self.logger.debug(
            f"Quote {code}: price={quote.last_price}, volume={quote.volume}, "
            f"change={quote.price_change_percent}"
        )
        return quote

    async def fetch_history(
        self,
        symbol: str,
        interval: str,
        timeout: Optional[float] = None,
        now: Optional[datetime] = None
    ) -> List[float]:
        """
        Fetch close prices for the interval's lookback window.

        Args:
            symbol: Ticker code (e.g., "BTC")
            interval: Interval label from the interval table
            timeout: Request deadline in seconds
            now: Window end (defaults to current UTC time)

        Returns:
            Close prices, oldest first, at most the interval's sample count

        Raises:
            UnknownInterval: If the label is not in the interval table

        Binance Endpoint:
            GET /api/v3/klines?symbol=BTCUSDT&interval=5m&startTime=..&endTime=..&limit=144

        Response Format:
            [
              [
                1499040000000,      // Open time
                "0.01634790",       // Open
                "0.80000000",       // High
                "0.01575800",       // Low
                "0.01577100",       // Close
                "148976.11427815",  // Volume
                ...
              ]
            ]
        """
        spec = get_interval_spec(interval)
        code = symbol.strip().upper()
        start_ms, end_ms = history_window(spec.lookback, now)

        params = {
            "symbol": to_pair(code),
            "interval": spec.label,
            "startTime": start_ms,
            "endTime": end_ms,
            "limit": spec.limit
        }

        data = await self._get(self.KLINES_PATH, params, timeout)

        if not isinstance(data, list):
            raise DecodeError(f"Expected kline array for {code}, got {type(data).__name__}")

        closes = extract_close_prices(data[: spec.limit])
        self.logger.debug(f"Fetched {len(closes)} {spec.label} closes for {code}")
        return closes
