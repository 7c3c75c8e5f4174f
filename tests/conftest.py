"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add src/ to path so tests run without installing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from stock_alerts.alerts.base import DeliveryResult, NotificationChannel  # noqa: E402
from stock_alerts.api.yahoo import Quote  # noqa: E402


NOW = datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeFeed:
    """Quote feed returning fixed prices; can be scripted to fail first."""

    def __init__(self, prices=None, names=None):
        self.prices = dict(prices or {})
        self.names = dict(names or {})
        self.calls = []
        self.failures = []

    def fail_with(self, *errors):
        self.failures.extend(errors)

    def query(self, symbols):
        symbols = list(symbols)
        self.calls.append(symbols)
        if self.failures:
            raise self.failures.pop(0)
        return {
            s: Quote(symbol=s, price=self.prices[s], display_name=self.names.get(s, s))
            for s in symbols
            if s in self.prices
        }


class FakeStore:
    """In-memory alert store."""

    def __init__(self, alerts=None):
        self.alerts = list(alerts or [])
        self.cooldowns = []
        self.load_calls = 0
        self.fail_load = None
        self.fail_record = None

    def load_enabled_alerts(self):
        self.load_calls += 1
        if self.fail_load:
            raise self.fail_load
        return [a for a in self.alerts if a.enabled]

    def record_cooldown(self, alert_id, direction, timestamp):
        if self.fail_record:
            raise self.fail_record
        self.cooldowns.append((alert_id, direction, timestamp))
        for a in self.alerts:
            if a.id == alert_id:
                if direction.value == "above":
                    a.last_notified_above_at = timestamp
                else:
                    a.last_notified_below_at = timestamp


class ScriptedChannel(NotificationChannel):
    """Channel that succeeds, fails, or raises as told."""

    def __init__(self, name: str, succeed: bool = True, raises: Exception = None):
        self.name = name
        self.succeed = succeed
        self.raises = raises
        self.delivered = []

    def deliver(self, crossing):
        self.delivered.append(crossing)
        if self.raises:
            raise self.raises
        if self.succeed:
            return DeliveryResult.ok(self.name)
        return DeliveryResult.failed(self.name, "scripted failure")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def feed():
    return FakeFeed(
        prices={"AAPL": 200.0, "MSFT": 400.0},
        names={"AAPL": "Apple Inc.", "MSFT": "Microsoft Corp."},
    )


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "alerts.db"
