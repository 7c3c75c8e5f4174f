"""
Quote Cache & Fetcher
=====================

Price fetching for the monitor loop.

Components:
- QuoteCache: single-entry, TTL-bound cache keyed by the requested symbol set
- QuoteFetcher: cache lookup, upstream query, rate-limit retry with backoff
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from ..config import config
from ..errors import RateLimitedError, UpstreamError
from ..models import PriceSample

logger = logging.getLogger(__name__)


class QuoteFeed(Protocol):
    """Upstream feed: returns quotes for the symbols it has data for."""

    def query(self, symbols: Iterable[str]) -> Dict[str, object]:
        ...


def cache_key(symbols: Iterable[str]) -> str:
    """Order-independent key for a symbol set."""
    return ",".join(sorted(symbols))


@dataclass
class _CacheEntry:
    key: str
    samples: List[PriceSample]
    fetched_at: float


class QuoteCache:
    """
    In-process cache holding the last successful batch result.

    Only one entry is kept: a request for a different symbol set replaces it.
    Entries go stale after `ttl_seconds`; nothing is ever evicted explicitly.
    """

    def __init__(self, ttl_seconds: float = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.quote_cache_ttl_sec
        self.clock = clock
        self._entry: Optional[_CacheEntry] = None
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[List[PriceSample]]:
        """Cached samples for `key`, or None on miss / expiry."""
        with self._lock:
            entry = self._entry
            if entry is None or entry.key != key:
                return None
            if self.clock() - entry.fetched_at >= self.ttl_seconds:
                return None
            return list(entry.samples)

    def put(self, key: str, samples: List[PriceSample]):
        """Replace the cached entry."""
        with self._lock:
            self._entry = _CacheEntry(key=key, samples=list(samples), fetched_at=self.clock())

    def age(self) -> Optional[float]:
        """Seconds since the current entry was stored, or None if empty."""
        with self._lock:
            if self._entry is None:
                return None
            return self.clock() - self._entry.fetched_at


class QuoteFetcher:
    """
    Fetches current prices for a set of symbols.

    Handles:
    - Serving repeated requests for the same symbol set from the cache
    - Retrying rate-limited upstream calls with (attempt + 1) * backoff delays
    - Dropping symbols the upstream has no data for
    """

    def __init__(
        self,
        feed: QuoteFeed,
        cache: QuoteCache = None,
        max_retries: int = None,
        backoff_sec: float = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.feed = feed
        self.cache = cache or QuoteCache()
        self.max_retries = max_retries if max_retries is not None else config.rate_limit_max_retries
        self.backoff_sec = backoff_sec if backoff_sec is not None else config.rate_limit_backoff_sec
        self.sleep = sleep

    def fetch_prices(self, symbols: Iterable[str]) -> List[PriceSample]:
        """
        Get current prices for a set of symbols.

        Args:
            symbols: Exact symbols needed (not deduplicated here)

        Returns:
            PriceSample list in no guaranteed order. Symbols without
            market data are omitted.

        Raises:
            UpstreamError: Feed failed, or rate limit persisted past all retries
        """
        symbols = list(symbols)
        if not symbols:
            return []

        key = cache_key(symbols)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Quote cache hit for {key} (age {self.cache.age():.1f}s)")
            return cached

        quotes = self._query_with_retry(symbols)

        samples = []
        for sym in symbols:
            quote = quotes.get(sym) or quotes.get(sym.upper())
            if quote is None:
                logger.info(f"No market data for {sym}, skipping")
                continue
            samples.append(PriceSample(
                symbol=sym,
                price=float(quote.price),
                display_name=quote.display_name or sym,
            ))

        self.cache.put(key, samples)
        return samples

    def fetch_single_price(self, symbol: str) -> Optional[PriceSample]:
        """
        Get the current price for one symbol.

        Goes through fetch_prices, so it shares (and replaces) the cache entry.

        Returns:
            PriceSample, or None if the symbol has no market data
        """
        results = self.fetch_prices([symbol.strip().upper()])
        return results[0] if results else None

    def _query_with_retry(self, symbols: List[str]) -> Dict[str, object]:
        """Query upstream, retrying only on rate-limit signals."""
        attempts = self.max_retries + 1
        last_error: Optional[RateLimitedError] = None

        for attempt in range(attempts):
            try:
                return self.feed.query(symbols)
            except RateLimitedError as e:
                last_error = e
                if attempt >= self.max_retries:
                    break
                backoff = (attempt + 1) * self.backoff_sec
                logger.warning(
                    f"Rate limited (attempt {attempt + 1}/{attempts}), backing off {backoff:.0f}s"
                )
                self.sleep(backoff)
            except UpstreamError:
                raise
            except Exception as e:
                raise UpstreamError(f"Quote feed failed: {e}") from e

        raise UpstreamError(
            f"Rate limited after {attempts} attempts for {cache_key(symbols)}"
        ) from last_error
