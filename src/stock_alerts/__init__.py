"""
Stock Price Alert Monitor
=========================

Samples a quote feed on a schedule and notifies over email, SMS and Telegram
when a price crosses a configured threshold, with per-direction cooldowns.
"""

__version__ = "0.1.0"
