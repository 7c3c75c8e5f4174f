"""
Quote Models
============

Ephemeral per-cycle data: price samples from the feed and the crossings
the evaluator derives from them. Never persisted.
"""

from dataclasses import dataclass

from .alert import Alert, Direction


@dataclass(frozen=True)
class PriceSample:
    """Current price for one symbol, as reported by the quote feed."""
    symbol: str
    price: float
    display_name: str


@dataclass(frozen=True)
class TriggeredCrossing:
    """A single directional threshold crossing detected in one cycle."""
    alert: Alert
    observed_price: float
    direction: Direction
    threshold: float
