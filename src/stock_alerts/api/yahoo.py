"""
Yahoo Finance Chart Client

Single responsibility: communicate with the Yahoo Finance chart API.
"""

import asyncio
import logging
import urllib.parse
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Any

import aiohttp

from ..config import config
from ..errors import RateLimitedError, UpstreamError

logger = logging.getLogger(__name__)

CHART_PATH = "/v8/finance/chart/"

HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "application/json",
}


@dataclass(frozen=True)
class Quote:
    """Price and display name for one symbol, as returned by the feed."""
    symbol: str
    price: float
    display_name: str


def parse_chart_response(payload: Any, requested_symbol: str) -> Optional[Quote]:
    """
    Extract a Quote from a chart API response.

    Args:
        payload: Decoded JSON body
        requested_symbol: Symbol that was asked for (used as a fallback name)

    Returns:
        Quote, or None if the response carries no market price
    """
    if not isinstance(payload, dict):
        return None

    results = (payload.get("chart") or {}).get("result") or []
    if not results:
        return None

    meta = results[0].get("meta") or {}
    price = meta.get("regularMarketPrice")
    if price is None:
        return None

    try:
        price = float(price)
    except (ValueError, TypeError):
        return None

    symbol = (meta.get("symbol") or requested_symbol).upper()
    name = meta.get("shortName") or meta.get("longName") or meta.get("symbol") or requested_symbol

    return Quote(symbol=symbol, price=price, display_name=name)


class YahooChartClient:
    """
    Async client for the Yahoo Finance chart API.

    Handles:
    - Fetching the current price for a single symbol
    - Batch fetching with concurrency control
    - Translating HTTP 429 into RateLimitedError (retries happen upstream of this client)
    """

    def __init__(
        self,
        base_url: str = None,
        max_concurrent: int = None,
        request_delay: float = None,
        timeout: float = None,
    ):
        self.base_url = (base_url or config.yahoo_base_url).rstrip("/")
        self.max_concurrent = max_concurrent or config.max_concurrent_requests
        self.request_delay = request_delay if request_delay is not None else config.request_delay_sec
        self.timeout = timeout or config.request_timeout_sec
        self._session: Optional[aiohttp.ClientSession] = None
        self._semaphore: Optional[asyncio.Semaphore] = None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        """Create session and semaphore if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers=HEADERS,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._semaphore = asyncio.Semaphore(self.max_concurrent)

    async def close(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
            self._semaphore = None

    def chart_url(self, symbol: str) -> str:
        return f"{self.base_url}{CHART_PATH}{urllib.parse.quote(symbol, safe='')}"

    # -------------------------------------------------------------------------
    # Public Methods
    # -------------------------------------------------------------------------

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        """
        Get the current quote for one symbol.

        Args:
            symbol: Instrument symbol (e.g., "AAPL", "BTC-USD")

        Returns:
            Quote, or None if the symbol is unknown or has no market data

        Raises:
            RateLimitedError: Upstream returned 429
            UpstreamError: Any other HTTP or network failure
        """
        await self._ensure_session()

        async with self._semaphore:
            try:
                async with self._session.get(
                    self.chart_url(symbol),
                    params={"interval": "1d", "range": "1d"},
                ) as response:
                    if response.status == 429:
                        retry_after = response.headers.get("Retry-After")
                        raise RateLimitedError(
                            f"Yahoo chart API rate limited request for {symbol}",
                            retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                        )

                    # Unknown / delisted symbols come back as 404
                    if response.status == 404:
                        logger.debug(f"No chart data for {symbol} (404)")
                        return None

                    if response.status != 200:
                        raise UpstreamError(f"Yahoo chart API {response.status} for {symbol}")

                    payload = await response.json(content_type=None)

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise UpstreamError(f"Request error for {symbol}: {e}") from e

            finally:
                # Delay after request completes but still inside semaphore
                if self.request_delay:
                    await asyncio.sleep(self.request_delay)

        return parse_chart_response(payload, symbol)

    async def get_quotes(self, symbols: Iterable[str]) -> Dict[str, Quote]:
        """
        Fetch quotes for multiple symbols concurrently (bounded by the semaphore).

        The first failure cancels the batch and propagates.

        Args:
            symbols: Symbols to fetch

        Returns:
            Dict mapping symbol to Quote; symbols without data are omitted
        """
        symbols: List[str] = list(symbols)
        await self._ensure_session()

        tasks = [asyncio.ensure_future(self.get_quote(sym)) for sym in symbols]
        try:
            quotes = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        results: Dict[str, Quote] = {}
        for sym, quote in zip(symbols, quotes):
            if quote is None:
                continue
            results[sym.upper()] = quote

        logger.debug(f"Fetched {len(results)}/{len(symbols)} quotes from Yahoo")
        return results


class YahooQuoteFeed:
    """
    Synchronous quote feed over YahooChartClient.

    Each query opens a fresh session inside its own event loop, so the feed
    can be called from plain (non-async) code such as the scheduler loop.
    """

    def __init__(self, **client_kwargs):
        self.client_kwargs = client_kwargs

    async def _query_async(self, symbols: List[str]) -> Dict[str, Quote]:
        async with YahooChartClient(**self.client_kwargs) as client:
            return await client.get_quotes(symbols)

    def query(self, symbols: Iterable[str]) -> Dict[str, Quote]:
        """
        Fetch quotes for the given symbols.

        Returns:
            Dict mapping symbol to Quote; symbols without data are omitted

        Raises:
            RateLimitedError, UpstreamError
        """
        return asyncio.run(self._query_async(list(symbols)))
