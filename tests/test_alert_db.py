"""Tests for SQLite alert persistence."""

from datetime import timedelta

import pytest

from conftest import NOW
from stock_alerts.db import AlertStore
from stock_alerts.errors import StoreError
from stock_alerts.models import Direction


@pytest.fixture
def store(db_path):
    return AlertStore(db_path)


# ── Management ───────────────────────────────────────────────────────


class TestManagement:
    def test_add_and_get(self, store):
        alert = store.add_alert("aapl", "Apple Inc.", above=200, notes="earnings")
        loaded = store.get_alert(alert.id)
        assert loaded.symbol == "AAPL"
        assert loaded.display_name == "Apple Inc."
        assert loaded.above_threshold == 200
        assert loaded.below_threshold is None
        assert loaded.notes == "earnings"
        assert loaded.enabled
        assert loaded.created_at.tzinfo is not None

    def test_add_requires_threshold(self, store):
        with pytest.raises(ValueError):
            store.add_alert("AAPL")
        assert store.list_alerts() == []

    def test_get_missing(self, store):
        assert store.get_alert("missing") is None

    def test_list_in_creation_order(self, store):
        first = store.add_alert("AAPL", above=1)
        second = store.add_alert("MSFT", below=1)
        assert [a.id for a in store.list_alerts()] == [first.id, second.id]

    def test_remove(self, store):
        alert = store.add_alert("AAPL", above=1)
        assert store.remove_alert(alert.id)
        assert not store.remove_alert(alert.id)
        assert store.list_alerts() == []

    def test_enable_disable(self, store):
        alert = store.add_alert("AAPL", above=1)
        assert store.set_alert_enabled(alert.id, False)
        assert store.load_enabled_alerts() == []
        assert len(store.list_alerts()) == 1
        store.set_alert_enabled(alert.id, True)
        assert [a.id for a in store.load_enabled_alerts()] == [alert.id]

    def test_enable_missing(self, store):
        assert not store.set_alert_enabled("missing", True)

    def test_update_thresholds(self, store):
        alert = store.add_alert("AAPL", above=200)
        assert store.update_thresholds(alert.id, below=150)
        loaded = store.get_alert(alert.id)
        assert (loaded.above_threshold, loaded.below_threshold) == (200, 150)

    def test_clear_one_threshold(self, store):
        alert = store.add_alert("AAPL", above=200, below=150)
        store.update_thresholds(alert.id, above=None)
        loaded = store.get_alert(alert.id)
        assert (loaded.above_threshold, loaded.below_threshold) == (None, 150)

    def test_cannot_clear_last_threshold(self, store):
        alert = store.add_alert("AAPL", above=200)
        with pytest.raises(ValueError):
            store.update_thresholds(alert.id, above=None)
        assert store.get_alert(alert.id).above_threshold == 200

    def test_update_thresholds_missing(self, store):
        assert not store.update_thresholds("missing", above=1)

    def test_update_notes(self, store):
        alert = store.add_alert("AAPL", above=1, notes="old")
        assert store.update_notes(alert.id, None)
        assert store.get_alert(alert.id).notes is None


# ── Cooldowns ────────────────────────────────────────────────────────


class TestCooldowns:
    def test_recorded_cooldown_visible_on_next_load(self, store):
        alert = store.add_alert("AAPL", above=200, below=150)
        store.record_cooldown(alert.id, Direction.ABOVE, NOW)

        loaded = store.load_enabled_alerts()[0]
        assert loaded.last_notified_above_at == NOW
        assert loaded.last_notified_below_at is None

    def test_directions_independent(self, store):
        alert = store.add_alert("AAPL", above=200, below=150)
        store.record_cooldown(alert.id, Direction.ABOVE, NOW)
        store.record_cooldown(alert.id, Direction.BELOW, NOW + timedelta(minutes=5))

        loaded = store.get_alert(alert.id)
        assert loaded.last_notified_above_at == NOW
        assert loaded.last_notified_below_at == NOW + timedelta(minutes=5)

    def test_persists_across_store_instances(self, store, db_path):
        alert = store.add_alert("AAPL", above=200)
        store.record_cooldown(alert.id, "above", NOW)
        assert AlertStore(db_path).get_alert(alert.id).last_notified_above_at == NOW

    def test_naive_timestamp_stored_as_utc(self, store):
        alert = store.add_alert("AAPL", above=200)
        store.record_cooldown(alert.id, Direction.ABOVE, NOW.replace(tzinfo=None))
        assert store.get_alert(alert.id).last_notified_above_at == NOW

    def test_missing_alert_is_ignored(self, store):
        store.record_cooldown("deleted", Direction.ABOVE, NOW)


def test_unopenable_database_raises_store_error(tmp_path):
    # A directory cannot be opened as a database file
    target = tmp_path / "not_a_file"
    target.mkdir()
    with pytest.raises(StoreError):
        AlertStore(target)
