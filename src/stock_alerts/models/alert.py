"""
Alert Models
============

A single monitoring rule: one symbol with independent above/below thresholds,
each carrying its own last-notified timestamp.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class Direction(str, Enum):
    """Direction of a threshold crossing."""
    ABOVE = "above"
    BELOW = "below"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Alert:
    """
    One price alert.

    An alert with both thresholds set behaves as two independent rules that
    share the symbol. Each direction tracks its own cooldown timestamp.
    """
    symbol: str
    display_name: str = ""
    above_threshold: Optional[float] = None
    below_threshold: Optional[float] = None
    enabled: bool = True
    last_notified_above_at: Optional[datetime] = None
    last_notified_below_at: Optional[datetime] = None
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self):
        self.symbol = self.symbol.strip().upper()
        if not self.symbol:
            raise ValueError("Alert symbol must not be empty")
        if self.above_threshold is None and self.below_threshold is None:
            raise ValueError(f"Alert for {self.symbol} needs an above or below threshold")
        if not self.display_name:
            self.display_name = self.symbol

    def threshold_for(self, direction: Direction) -> Optional[float]:
        """Threshold configured for a direction, or None if unset."""
        if direction == Direction.ABOVE:
            return self.above_threshold
        return self.below_threshold

    def last_notified_at(self, direction: Direction) -> Optional[datetime]:
        """Timestamp of the last successful notification for a direction."""
        if direction == Direction.ABOVE:
            return self.last_notified_above_at
        return self.last_notified_below_at
