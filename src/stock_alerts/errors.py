"""
Errors
======

Exception taxonomy for the monitoring engine.

- UpstreamError: quote feed unreachable, bad response, or retries exhausted
- RateLimitedError: upstream asked us to slow down (retryable)
- ChannelDeliveryError: a single channel failed to deliver a single crossing
- StoreError: alert store load/write failure
"""

from typing import Optional


class StockAlertsError(Exception):
    """Base class for all stock alert errors."""


class UpstreamError(StockAlertsError):
    """Quote feed failure. Aborts the current cycle."""


class RateLimitedError(UpstreamError):
    """Upstream returned a rate-limit signal (HTTP 429)."""

    def __init__(self, message: str = "Rate limited by upstream", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class ChannelDeliveryError(StockAlertsError):
    """Delivery over one channel failed. Logged, never aborts a cycle."""

    def __init__(self, channel: str, reason: str):
        super().__init__(f"{channel}: {reason}")
        self.channel = channel
        self.reason = reason


class StoreError(StockAlertsError):
    """Alert store failure. Aborts the current cycle."""
