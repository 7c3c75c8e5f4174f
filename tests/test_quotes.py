"""Tests for the quote cache and fetcher."""

import logging

import pytest

from conftest import FakeFeed
from stock_alerts.errors import RateLimitedError, UpstreamError
from stock_alerts.monitor.quotes import QuoteCache, QuoteFetcher, cache_key


def make_fetcher(feed, clock, sleeps=None, **kwargs):
    sleeps = sleeps if sleeps is not None else []
    return QuoteFetcher(
        feed,
        cache=QuoteCache(ttl_seconds=30, clock=clock),
        max_retries=kwargs.pop("max_retries", 2),
        backoff_sec=kwargs.pop("backoff_sec", 2.0),
        sleep=sleeps.append,
    )


# ── Cache ────────────────────────────────────────────────────────────


class TestQuoteCache:
    def test_cache_key_is_order_independent(self):
        assert cache_key(["MSFT", "AAPL"]) == cache_key(["AAPL", "MSFT"]) == "AAPL,MSFT"

    def test_hit_within_ttl(self, clock):
        cache = QuoteCache(ttl_seconds=30, clock=clock)
        cache.put("AAPL", ["x"])
        clock.advance(29.9)
        assert cache.get("AAPL") == ["x"]

    def test_miss_at_ttl(self, clock):
        cache = QuoteCache(ttl_seconds=30, clock=clock)
        cache.put("AAPL", ["x"])
        clock.advance(30)
        assert cache.get("AAPL") is None

    def test_miss_on_different_key(self, clock):
        cache = QuoteCache(ttl_seconds=30, clock=clock)
        cache.put("AAPL", ["x"])
        assert cache.get("AAPL,MSFT") is None

    def test_single_entry_replaced(self, clock):
        cache = QuoteCache(ttl_seconds=30, clock=clock)
        cache.put("AAPL", ["x"])
        cache.put("MSFT", ["y"])
        assert cache.get("AAPL") is None
        assert cache.get("MSFT") == ["y"]

    def test_age(self, clock):
        cache = QuoteCache(ttl_seconds=30, clock=clock)
        assert cache.age() is None
        cache.put("AAPL", [])
        clock.advance(5)
        assert cache.age() == 5


# ── Fetching ─────────────────────────────────────────────────────────


class TestFetchPrices:
    def test_returns_samples(self, feed, clock):
        samples = make_fetcher(feed, clock).fetch_prices(["AAPL", "MSFT"])
        by_symbol = {s.symbol: s for s in samples}
        assert by_symbol["AAPL"].price == 200.0
        assert by_symbol["AAPL"].display_name == "Apple Inc."
        assert by_symbol["MSFT"].price == 400.0

    def test_second_call_within_ttl_served_from_cache(self, feed, clock):
        fetcher = make_fetcher(feed, clock)
        first = fetcher.fetch_prices(["AAPL", "MSFT"])
        clock.advance(10)
        second = fetcher.fetch_prices(["MSFT", "AAPL"])
        assert second == first
        assert len(feed.calls) == 1

    def test_cache_hit_logs_entry_age(self, feed, clock, caplog):
        fetcher = make_fetcher(feed, clock)
        fetcher.fetch_prices(["AAPL"])
        clock.advance(12.5)
        with caplog.at_level(logging.DEBUG, logger="stock_alerts.monitor.quotes"):
            fetcher.fetch_prices(["AAPL"])
        assert "Quote cache hit for AAPL (age 12.5s)" in caplog.text

    def test_call_after_ttl_hits_upstream(self, feed, clock):
        fetcher = make_fetcher(feed, clock)
        fetcher.fetch_prices(["AAPL"])
        clock.advance(31)
        fetcher.fetch_prices(["AAPL"])
        assert len(feed.calls) == 2

    def test_symbol_set_change_hits_upstream(self, feed, clock):
        fetcher = make_fetcher(feed, clock)
        fetcher.fetch_prices(["AAPL"])
        fetcher.fetch_prices(["AAPL", "MSFT"])
        assert len(feed.calls) == 2

    def test_missing_symbol_omitted(self, feed, clock):
        samples = make_fetcher(feed, clock).fetch_prices(["AAPL", "DELISTED"])
        assert [s.symbol for s in samples] == ["AAPL"]

    def test_empty_request_skips_upstream(self, feed, clock):
        assert make_fetcher(feed, clock).fetch_prices([]) == []
        assert feed.calls == []

    def test_cached_list_is_a_copy(self, feed, clock):
        fetcher = make_fetcher(feed, clock)
        fetcher.fetch_prices(["AAPL"]).clear()
        assert len(fetcher.fetch_prices(["AAPL"])) == 1


# ── Retry ────────────────────────────────────────────────────────────


class TestRetry:
    def test_rate_limit_retried_with_growing_backoff(self, feed, clock):
        sleeps = []
        feed.fail_with(RateLimitedError(), RateLimitedError())
        samples = make_fetcher(feed, clock, sleeps).fetch_prices(["AAPL"])
        assert len(samples) == 1
        assert len(feed.calls) == 3
        assert sleeps == [2.0, 4.0]

    def test_rate_limit_exhausted_raises_upstream_error(self, feed, clock):
        sleeps = []
        feed.fail_with(RateLimitedError(), RateLimitedError(), RateLimitedError())
        fetcher = make_fetcher(feed, clock, sleeps)
        with pytest.raises(UpstreamError) as exc_info:
            fetcher.fetch_prices(["AAPL"])
        assert not isinstance(exc_info.value, RateLimitedError)
        assert isinstance(exc_info.value.__cause__, RateLimitedError)
        assert len(feed.calls) == 3
        assert sleeps == [2.0, 4.0]

    def test_other_upstream_error_not_retried(self, feed, clock):
        sleeps = []
        feed.fail_with(UpstreamError("500"))
        with pytest.raises(UpstreamError):
            make_fetcher(feed, clock, sleeps).fetch_prices(["AAPL"])
        assert len(feed.calls) == 1
        assert sleeps == []

    def test_unexpected_error_wrapped(self, feed, clock):
        feed.fail_with(ConnectionResetError("reset"))
        with pytest.raises(UpstreamError):
            make_fetcher(feed, clock).fetch_prices(["AAPL"])

    def test_failure_does_not_populate_cache(self, feed, clock):
        feed.fail_with(UpstreamError("down"))
        fetcher = make_fetcher(feed, clock)
        with pytest.raises(UpstreamError):
            fetcher.fetch_prices(["AAPL"])
        fetcher.fetch_prices(["AAPL"])
        assert len(feed.calls) == 2


# ── Single Symbol ────────────────────────────────────────────────────


class TestFetchSinglePrice:
    def test_returns_sample(self, feed, clock):
        sample = make_fetcher(feed, clock).fetch_single_price("aapl")
        assert sample.symbol == "AAPL"
        assert sample.display_name == "Apple Inc."

    def test_unknown_symbol_returns_none(self, clock):
        assert make_fetcher(FakeFeed(), clock).fetch_single_price("NOPE") is None

    def test_replaces_cache_entry(self, feed, clock):
        fetcher = make_fetcher(feed, clock)
        fetcher.fetch_prices(["AAPL", "MSFT"])
        fetcher.fetch_single_price("AAPL")
        fetcher.fetch_prices(["AAPL", "MSFT"])
        assert len(feed.calls) == 3


def test_default_clock_is_monotonic_wall_time():
    cache = QuoteCache(ttl_seconds=30)
    cache.put("AAPL", [])
    assert cache.get("AAPL") == []