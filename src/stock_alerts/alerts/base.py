"""
Notification Channel Base
=========================

Narrow contract every channel implements: deliver one crossing, report
success or failure. Transport errors are turned into a failed DeliveryResult
(or raised as ChannelDeliveryError); the dispatcher handles both.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..models import TriggeredCrossing


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of delivering one crossing over one channel."""
    channel: str
    success: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls, channel: str) -> "DeliveryResult":
        return cls(channel=channel, success=True)

    @classmethod
    def failed(cls, channel: str, reason: str) -> "DeliveryResult":
        return cls(channel=channel, success=False, reason=reason)


class NotificationChannel(ABC):
    """A single notification transport (email, SMS, ...)."""

    name: str = "channel"

    @abstractmethod
    def deliver(self, crossing: TriggeredCrossing) -> DeliveryResult:
        """Deliver one crossing."""
