"""
Alert Database

Stores alert definitions and their per-direction cooldown timestamps.
Every operation opens and commits its own connection, so a cooldown written
in one cycle is visible to the next cycle's load.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ..config import config
from ..errors import StoreError
from ..models import Alert, Direction

logger = logging.getLogger(__name__)

_UNSET = object()

_COOLDOWN_COLUMNS = {
    Direction.ABOVE: "last_notified_above_at",
    Direction.BELOW: "last_notified_below_at",
}


def _to_iso(ts: Optional[datetime]) -> Optional[str]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class AlertStore:
    """
    SQLite persistence for alerts.

    The monitor loop only needs load_enabled_alerts() and record_cooldown();
    the remaining methods back the operator scripts.
    """

    def __init__(self, db_path: Path = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path or config.alerts_db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()
        logger.info(f"Alert database initialized: {self.db_path}")

    @contextmanager
    def _get_connection(self):
        """Get a database connection with proper cleanup."""
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open alert database: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Alert database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS alerts (
                    id TEXT PRIMARY KEY,
                    symbol TEXT NOT NULL,
                    display_name TEXT NOT NULL,
                    above_threshold REAL,
                    below_threshold REAL,
                    notes TEXT,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    last_notified_above_at TEXT,
                    last_notified_below_at TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_alerts_enabled
                ON alerts(enabled)
            """)

    @staticmethod
    def _row_to_alert(row: sqlite3.Row) -> Alert:
        return Alert(
            id=row["id"],
            symbol=row["symbol"],
            display_name=row["display_name"],
            above_threshold=row["above_threshold"],
            below_threshold=row["below_threshold"],
            notes=row["notes"],
            enabled=bool(row["enabled"]),
            last_notified_above_at=_from_iso(row["last_notified_above_at"]),
            last_notified_below_at=_from_iso(row["last_notified_below_at"]),
            created_at=_from_iso(row["created_at"]),
        )

    # -------------------------------------------------------------------------
    # Monitor Loop
    # -------------------------------------------------------------------------

    def load_enabled_alerts(self) -> List[Alert]:
        """All enabled alerts, oldest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM alerts WHERE enabled = 1 ORDER BY created_at, id"
            ).fetchall()
        return [self._row_to_alert(r) for r in rows]

    def record_cooldown(self, alert_id: str, direction: Direction, timestamp: datetime):
        """
        Record a successful notification for one direction of an alert.

        A missing alert (deleted mid-cycle) is logged and ignored.
        """
        column = _COOLDOWN_COLUMNS[Direction(direction)]
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE alerts SET {column} = ? WHERE id = ?",
                (_to_iso(timestamp), alert_id),
            )
            if cursor.rowcount == 0:
                logger.warning(f"Cooldown not recorded: alert {alert_id} no longer exists")

    # -------------------------------------------------------------------------
    # Management
    # -------------------------------------------------------------------------

    def add_alert(
        self,
        symbol: str,
        display_name: str = "",
        above: Optional[float] = None,
        below: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> Alert:
        """
        Create and persist a new alert.

        Raises:
            ValueError: Neither threshold was given
        """
        alert = Alert(
            symbol=symbol,
            display_name=display_name,
            above_threshold=above,
            below_threshold=below,
            notes=notes,
        )
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO alerts (
                    id, symbol, display_name, above_threshold, below_threshold,
                    notes, enabled, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    alert.id, alert.symbol, alert.display_name, alert.above_threshold,
                    alert.below_threshold, alert.notes, int(alert.enabled), _to_iso(alert.created_at),
                ),
            )
        logger.info(f"Added alert {alert.id} for {alert.symbol}")
        return alert

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,)).fetchone()
        return self._row_to_alert(row) if row else None

    def list_alerts(self) -> List[Alert]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM alerts ORDER BY created_at, id").fetchall()
        return [self._row_to_alert(r) for r in rows]

    def remove_alert(self, alert_id: str) -> bool:
        """Delete an alert. Returns False if it did not exist."""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM alerts WHERE id = ?", (alert_id,))
            return cursor.rowcount > 0

    def set_alert_enabled(self, alert_id: str, enabled: bool) -> bool:
        """Enable or disable an alert. Returns False if it did not exist."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE alerts SET enabled = ? WHERE id = ?",
                (int(enabled), alert_id),
            )
            return cursor.rowcount > 0

    def update_thresholds(self, alert_id: str, above=_UNSET, below=_UNSET) -> bool:
        """
        Change one or both thresholds. Pass None to clear a threshold.

        Raises:
            ValueError: The change would leave the alert with no threshold
        """
        alert = self.get_alert(alert_id)
        if alert is None:
            return False

        new_above = alert.above_threshold if above is _UNSET else above
        new_below = alert.below_threshold if below is _UNSET else below
        if new_above is None and new_below is None:
            raise ValueError(f"Alert {alert_id} must keep an above or below threshold")

        with self._get_connection() as conn:
            conn.execute(
                "UPDATE alerts SET above_threshold = ?, below_threshold = ? WHERE id = ?",
                (new_above, new_below, alert_id),
            )
        return True

    def update_notes(self, alert_id: str, notes: Optional[str]) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("UPDATE alerts SET notes = ? WHERE id = ?", (notes, alert_id))
            return cursor.rowcount > 0
