"""
Notification Dispatcher
=======================

Delivers triggered crossings over every configured channel and advances
cooldowns for the directions that actually reached someone.

Rules:
- Each (crossing, channel) delivery is independent; one failure never blocks another
- All deliveries finish before any cooldown is written
- A direction's cooldown advances only if at least one channel succeeded
- With no channels configured nothing is delivered, so no cooldown advances
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Sequence

from ..alerts.base import DeliveryResult, NotificationChannel
from ..alerts.formatting import format_log_line
from ..config import config
from ..errors import ChannelDeliveryError
from ..models import Direction, TriggeredCrossing

logger = logging.getLogger(__name__)


class CooldownStore(Protocol):
    def record_cooldown(self, alert_id: str, direction: Direction, timestamp: datetime) -> None:
        ...


@dataclass
class DeliveryOutcome:
    """Per-crossing delivery bookkeeping for one cycle."""
    crossing: TriggeredCrossing
    results: List[DeliveryResult] = field(default_factory=list)
    cooldown_advanced: bool = False

    @property
    def delivered(self) -> bool:
        return any(r.success for r in self.results)

    def summary(self) -> str:
        """e.g. "AAPL:above email=ok sms=failed(HTTP 500)"."""
        parts = [f"{self.crossing.alert.symbol}:{self.crossing.direction.value}"]
        if not self.results:
            parts.append("no-channels")
        for r in self.results:
            parts.append(f"{r.channel}=ok" if r.success else f"{r.channel}=failed({r.reason})")
        return " ".join(parts)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDispatcher:
    """
    Multi-channel delivery with partial-failure bookkeeping.

    Channels are injected at construction; a channel that was not configured
    is simply absent from the list and never attempted.
    """

    def __init__(
        self,
        channels: Sequence[NotificationChannel],
        store: CooldownStore,
        max_workers: int = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.channels = list(channels)
        self.store = store
        self.max_workers = max_workers or config.delivery_max_workers
        self.clock = clock

    def _deliver_one(self, channel: NotificationChannel, crossing: TriggeredCrossing) -> DeliveryResult:
        """Deliver over one channel, converting every failure into a DeliveryResult."""
        symbol = crossing.alert.symbol
        direction = crossing.direction.value
        try:
            result = channel.deliver(crossing)
        except ChannelDeliveryError as e:
            result = DeliveryResult.failed(channel.name, e.reason)
        except Exception as e:
            result = DeliveryResult.failed(channel.name, f"{type(e).__name__}: {e}")

        if result is None:
            result = DeliveryResult.failed(channel.name, "no result")

        if result.success:
            logger.info(f"  -> {channel.name} delivered {symbol} {direction}")
        else:
            logger.error(f"  -> {channel.name} failed for {symbol} {direction}: {result.reason}")
        return result

    def notify(self, crossings: Sequence[TriggeredCrossing]) -> List[DeliveryOutcome]:
        """
        Deliver all crossings for one cycle.

        Args:
            crossings: Every crossing triggered this cycle

        Returns:
            One DeliveryOutcome per crossing, in input order

        Raises:
            StoreError: A cooldown write failed (remaining writes are skipped)
        """
        outcomes = [DeliveryOutcome(crossing=c) for c in crossings]
        if not outcomes:
            return outcomes

        for outcome in outcomes:
            logger.info(format_log_line(outcome.crossing))

        if not self.channels:
            for outcome in outcomes:
                logger.warning(
                    f"No notification channels configured; "
                    f"{outcome.crossing.alert.symbol} {outcome.crossing.direction.value} not delivered"
                )
            return outcomes

        jobs = [(outcome, channel) for outcome in outcomes for channel in self.channels]
        workers = max(1, min(self.max_workers, len(jobs)))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="deliver") as pool:
            futures = [
                (outcome, pool.submit(self._deliver_one, channel, outcome.crossing))
                for outcome, channel in jobs
            ]
            # Results are collected in submission order
            for outcome, future in futures:
                outcome.results.append(future.result())

        self._advance_cooldowns(outcomes)
        return outcomes

    def _advance_cooldowns(self, outcomes: List[DeliveryOutcome]):
        """Persist cooldown timestamps for delivered directions."""
        notified_at: Optional[datetime] = None
        for outcome in outcomes:
            crossing = outcome.crossing
            if not outcome.delivered:
                logger.warning(
                    f"All channels failed for {crossing.alert.symbol} {crossing.direction.value}; "
                    f"will retry next cycle"
                )
                continue

            if notified_at is None:
                notified_at = self.clock()
            self.store.record_cooldown(crossing.alert.id, crossing.direction, notified_at)
            outcome.cooldown_advanced = True
