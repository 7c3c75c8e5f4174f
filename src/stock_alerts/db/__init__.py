"""
Database Package
================

SQLite persistence for alert definitions.
"""

from .alert_db import AlertStore

__all__ = ["AlertStore"]
