"""
Monitor Package
===============

The monitoring engine.

Components:
- quotes.py: QuoteCache + QuoteFetcher (TTL cache, rate-limit retry)
- evaluator.py: evaluate_alerts (pure, per-direction cooldowns)
- dispatcher.py: NotificationDispatcher (multi-channel, cooldown bookkeeping)
- scheduler.py: AlertScheduler (periodic, non-overlapping cycles)
"""

from .dispatcher import DeliveryOutcome, NotificationDispatcher
from .evaluator import cooldown_elapsed, evaluate_alerts
from .quotes import QuoteCache, QuoteFetcher, cache_key
from .scheduler import AlertScheduler, CycleResult, CycleStatus, SchedulerState

__all__ = [
    "AlertScheduler",
    "CycleResult",
    "CycleStatus",
    "SchedulerState",
    "DeliveryOutcome",
    "NotificationDispatcher",
    "QuoteCache",
    "QuoteFetcher",
    "cache_key",
    "cooldown_elapsed",
    "evaluate_alerts",
]
