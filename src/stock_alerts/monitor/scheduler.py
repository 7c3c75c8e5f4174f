"""
Alert Scheduler
===============

Drives the fetch -> evaluate -> notify pipeline.

- One cycle immediately on start, then one every `interval_seconds`
- Cycles never overlap: a cycle that overruns delays the next tick,
  and a concurrent run_once() call is skipped
- Any error is contained to its own cycle
"""

import logging
import signal
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Protocol

from ..config import config
from ..errors import UpstreamError
from ..models import Alert, PriceSample, TriggeredCrossing
from .dispatcher import DeliveryOutcome, NotificationDispatcher
from .evaluator import evaluate_alerts
from .quotes import QuoteFetcher

logger = logging.getLogger(__name__)


class AlertSource(Protocol):
    def load_enabled_alerts(self) -> List[Alert]:
        ...


class SchedulerState(Enum):
    """Pipeline stage of the current cycle."""
    IDLE = "idle"
    FETCHING = "fetching"
    EVALUATING = "evaluating"
    NOTIFYING = "notifying"


class CycleStatus(Enum):
    OK = "ok"
    NO_ALERTS = "no_alerts"
    FETCH_FAILED = "fetch_failed"
    SKIPPED = "skipped"


@dataclass
class CycleResult:
    """What happened during one cycle."""
    status: CycleStatus
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    symbols: List[str] = field(default_factory=list)
    samples: List[PriceSample] = field(default_factory=list)
    crossings: List[TriggeredCrossing] = field(default_factory=list)
    outcomes: List[DeliveryOutcome] = field(default_factory=list)
    error: Optional[str] = None

    def log_line(self) -> str:
        """Single structured line describing the cycle."""
        prices = ",".join(f"{s.symbol}:{s.price:.2f}" for s in sorted(self.samples, key=lambda s: s.symbol))
        deliveries = "; ".join(o.summary() for o in self.outcomes)
        parts = [
            f"status={self.status.value}",
            f"symbols={','.join(self.symbols) or '-'}",
            f"prices={prices or '-'}",
            f"crossings={len(self.crossings)}",
        ]
        if deliveries:
            parts.append(f"deliveries=[{deliveries}]")
        if self.error:
            parts.append(f"error={self.error}")
        return "cycle " + " ".join(parts)


class AlertScheduler:
    """
    Periodic monitor loop.

    Uses a single worker: the loop thread runs every cycle itself, so
    cycles cannot overlap and the quote cache and cooldown state are never
    touched by two cycles at once.
    """

    def __init__(
        self,
        store: AlertSource,
        fetcher: QuoteFetcher,
        dispatcher: NotificationDispatcher,
        interval_seconds: float = None,
        cooldown_minutes: float = None,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[float], bool] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            store: Source of enabled alerts
            fetcher: Quote fetcher (with cache)
            dispatcher: Notification dispatcher (writes cooldowns to the store)
            interval_seconds: Time between cycle starts
            cooldown_minutes: Per-direction notification cooldown
            clock: Monotonic clock used for tick scheduling
            wait: Sleep between ticks; returns True if the loop should stop
                (default: wait on the stop event)
        """
        self.store = store
        self.fetcher = fetcher
        self.dispatcher = dispatcher
        self.interval = interval_seconds if interval_seconds is not None else config.check_interval_sec
        self.cooldown_minutes = cooldown_minutes if cooldown_minutes is not None else config.cooldown_minutes
        self.clock = clock

        self.state = SchedulerState.IDLE
        self.cycles_run = 0
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._wait = wait or self._stop_event.wait

    # -------------------------------------------------------------------------
    # Single Cycle
    # -------------------------------------------------------------------------

    def run_once(self) -> CycleResult:
        """
        Run one full fetch -> evaluate -> notify cycle.

        Returns:
            CycleResult (status SKIPPED if another cycle is in progress)

        Raises:
            StoreError: Loading alerts or writing a cooldown failed
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous cycle still running, skipping this tick")
            return CycleResult(status=CycleStatus.SKIPPED)

        try:
            result = self._run_cycle()
            self.cycles_run += 1
            logger.info(result.log_line())
            return result
        finally:
            self.state = SchedulerState.IDLE
            self._cycle_lock.release()

    def _run_cycle(self) -> CycleResult:
        started_at = datetime.now(timezone.utc)
        alerts = self.store.load_enabled_alerts()
        if not alerts:
            logger.info("No enabled alerts. Add some with: python scripts/manage_alerts.py add <SYMBOL> --above <price>")
            return CycleResult(status=CycleStatus.NO_ALERTS, started_at=started_at)

        symbols = sorted({a.symbol for a in alerts})
        logger.info(f"Checking {len(symbols)} symbol(s): {', '.join(symbols)}")

        self.state = SchedulerState.FETCHING
        try:
            samples = self.fetcher.fetch_prices(symbols)
        except UpstreamError as e:
            logger.error(f"Failed to fetch prices: {e}")
            return CycleResult(
                status=CycleStatus.FETCH_FAILED,
                started_at=started_at,
                symbols=symbols,
                error=str(e),
            )

        for s in samples:
            logger.info(f"  {s.symbol}: ${s.price:.2f}")

        self.state = SchedulerState.EVALUATING
        crossings = evaluate_alerts(alerts, samples, self.cooldown_minutes)
        result = CycleResult(
            status=CycleStatus.OK,
            started_at=started_at,
            symbols=symbols,
            samples=samples,
            crossings=crossings,
        )

        if not crossings:
            logger.info("  No thresholds crossed.")
            return result

        self.state = SchedulerState.NOTIFYING
        result.outcomes = self.dispatcher.notify(crossings)
        return result

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def _tick(self):
        """Run one cycle, containing every error to this tick."""
        try:
            self.run_once()
        except Exception as e:
            logger.exception(f"Cycle failed: {type(e).__name__}: {e}")

    def run(self, max_cycles: int = None):
        """
        Main entry point - run cycles until stopped.

        A stop() issued before run() is honoured: the loop exits without
        running a cycle.

        Args:
            max_cycles: Stop after this many ticks (None = run forever)
        """
        logger.info("=" * 60)
        logger.info("STOCK ALERT SCHEDULER STARTING")
        logger.info("=" * 60)
        logger.info(f"Interval: {self.interval}s | Cooldown: {self.cooldown_minutes} min")

        ticks = 0
        next_run = self.clock()
        try:
            while not self._stop_event.is_set():
                delay = next_run - self.clock()
                if delay > 0 and self._wait(delay):
                    break

                started = self.clock()
                self._tick()
                ticks += 1
                if max_cycles is not None and ticks >= max_cycles:
                    break

                # Missed ticks are dropped, not replayed
                next_run = max(started + self.interval, self.clock())
        except KeyboardInterrupt:
            logger.info("Scheduler interrupted by user")
        finally:
            logger.info("STOCK ALERT SCHEDULER STOPPED")

    def stop(self):
        """Stop the loop; a sleeping scheduler wakes immediately."""
        self._stop_event.set()

    def install_signal_handlers(self):
        """Stop gracefully on SIGINT/SIGTERM. Main thread only."""
        signal.signal(signal.SIGINT, self._handle_shutdown)
        signal.signal(signal.SIGTERM, self._handle_shutdown)

    def _handle_shutdown(self, signum, frame):
        logger.info("Shutdown signal received, stopping scheduler...")
        self.stop()
