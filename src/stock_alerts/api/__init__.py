"""
API Package
===========

External API clients for market data.

Components:
- yahoo.py: YahooChartClient (async), YahooQuoteFeed (sync wrapper), Quote
"""

from .yahoo import (
    Quote,
    YahooChartClient,
    YahooQuoteFeed,
    parse_chart_response,
)

__all__ = [
    "Quote",
    "YahooChartClient",
    "YahooQuoteFeed",
    "parse_chart_response",
]
