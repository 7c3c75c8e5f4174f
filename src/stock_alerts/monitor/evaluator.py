"""
Alert Evaluator
===============

Pure threshold-crossing logic. No I/O, inputs are never mutated.

Each direction of an alert is an independent rule with its own cooldown,
measured from the last successful notification for that direction only.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from ..models import Alert, Direction, PriceSample, TriggeredCrossing


def _as_utc(ts: datetime) -> datetime:
    # Naive timestamps are stored as UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def cooldown_elapsed(
    last_notified: Optional[datetime],
    cooldown_minutes: float,
    now: datetime,
) -> bool:
    """
    Whether enough time has passed since the last notification.

    Never-notified directions are always eligible. Exactly `cooldown_minutes`
    of elapsed time counts as elapsed.
    """
    if last_notified is None:
        return True
    return _as_utc(now) - _as_utc(last_notified) >= timedelta(minutes=cooldown_minutes)


def _crosses(direction: Direction, price: float, threshold: float) -> bool:
    if direction == Direction.ABOVE:
        return price >= threshold
    return price <= threshold


def evaluate_alerts(
    alerts: Iterable[Alert],
    samples: Iterable[PriceSample],
    cooldown_minutes: float,
    now: datetime = None,
) -> List[TriggeredCrossing]:
    """
    Find every threshold crossing for this cycle.

    Args:
        alerts: Alerts to check (disabled alerts should already be filtered out)
        samples: Current price samples; last one wins for duplicate symbols
        cooldown_minutes: Minimum minutes between notifications per direction
        now: Evaluation time (default: current UTC time)

    Returns:
        One TriggeredCrossing per fired direction, alert order preserved,
        above before below for the same alert.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    price_map: Dict[str, PriceSample] = {}
    for sample in samples:
        price_map[sample.symbol] = sample

    triggered: List[TriggeredCrossing] = []

    for alert in alerts:
        sample = price_map.get(alert.symbol)
        if sample is None:
            continue

        for direction in (Direction.ABOVE, Direction.BELOW):
            threshold = alert.threshold_for(direction)
            if threshold is None:
                continue
            if not _crosses(direction, sample.price, threshold):
                continue
            if not cooldown_elapsed(alert.last_notified_at(direction), cooldown_minutes, now):
                continue

            triggered.append(TriggeredCrossing(
                alert=alert,
                observed_price=sample.price,
                direction=direction,
                threshold=threshold,
            ))

    return triggered
