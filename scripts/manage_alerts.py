#!/usr/bin/env python3
"""
Manage Price Alerts
===================

Add, list, edit and remove alerts in the alert database.

Usage:
    python scripts/manage_alerts.py add AAPL --above 200
    python scripts/manage_alerts.py add TSLA --above 300 --below 150 --notes "earnings"
    python scripts/manage_alerts.py list
    python scripts/manage_alerts.py disable <id>
    python scripts/manage_alerts.py enable <id>
    python scripts/manage_alerts.py set <id> --below 140
    python scripts/manage_alerts.py notes <id> "new note"
    python scripts/manage_alerts.py remove <id>
"""

import argparse
import logging
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from stock_alerts.alerts.formatting import format_price, format_timestamp
from stock_alerts.api import YahooQuoteFeed
from stock_alerts.config import config
from stock_alerts.db import AlertStore
from stock_alerts.errors import UpstreamError
from stock_alerts.monitor import QuoteFetcher

logger = logging.getLogger(__name__)


def cmd_add(store: AlertStore, args) -> int:
    if args.above is None and args.below is None:
        print("Error: Provide at least one of --above or --below")
        return 1

    symbol = args.symbol.upper()
    print(f"Fetching current price for {symbol}...")

    # Display name is best-effort; the alert is added either way
    name = symbol
    try:
        sample = QuoteFetcher(YahooQuoteFeed()).fetch_single_price(symbol)
        if sample:
            name = sample.display_name
            print(f"  Current price: {format_price(sample.price)} ({name})")
        else:
            print(f"  Warning: Could not fetch price for {symbol}. Adding alert anyway.")
    except UpstreamError as e:
        logger.debug(f"Price lookup failed for {symbol}: {e}")
        print(f"  Warning: Could not fetch price for {symbol}. Adding alert anyway.")

    alert = store.add_alert(symbol, name, above=args.above, below=args.below, notes=args.notes)

    print("\nAlert added:")
    print(f"  ID:     {alert.id}")
    print(f"  Symbol: {alert.symbol}")
    print(f"  Name:   {alert.display_name}")
    if alert.above_threshold is not None:
        print(f"  Above:  ${alert.above_threshold:g}")
    if alert.below_threshold is not None:
        print(f"  Below:  ${alert.below_threshold:g}")
    return 0


def cmd_list(store: AlertStore, args) -> int:
    alerts = store.list_alerts()
    if not alerts:
        print("No alerts configured. Use 'add' to create one.")
        return 0

    def last(ts):
        return format_timestamp(ts) if ts else "Never"

    print(f"\n{'ID':<37} {'Symbol':<8} {'Name':<25} {'Above':<10} {'Below':<10} {'Enabled':<8} Last Notified (above / below)")
    print("-" * 140)
    for a in alerts:
        above = f"${a.above_threshold:g}" if a.above_threshold is not None else "-"
        below = f"${a.below_threshold:g}" if a.below_threshold is not None else "-"
        enabled = "Yes" if a.enabled else "No"
        print(
            f"{a.id:<37} {a.symbol:<8} {a.display_name[:24]:<25} {above:<10} {below:<10} {enabled:<8} "
            f"{last(a.last_notified_above_at)} / {last(a.last_notified_below_at)}"
        )
    print()
    return 0


def cmd_remove(store: AlertStore, args) -> int:
    if store.remove_alert(args.id):
        print(f"Alert {args.id} removed.")
        return 0
    print(f"Alert {args.id} not found.")
    return 1


def cmd_enable(store: AlertStore, args) -> int:
    enabled = args.command == "enable"
    if store.set_alert_enabled(args.id, enabled):
        print(f"Alert {args.id} {'enabled' if enabled else 'disabled'}.")
        return 0
    print(f"Alert {args.id} not found.")
    return 1


def cmd_set(store: AlertStore, args) -> int:
    changes = {}
    if args.above is not None:
        changes["above"] = args.above
    if args.below is not None:
        changes["below"] = args.below
    if args.clear_above:
        changes["above"] = None
    if args.clear_below:
        changes["below"] = None
    if not changes:
        print("Error: nothing to change")
        return 1

    try:
        found = store.update_thresholds(args.id, **changes)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if not found:
        print(f"Alert {args.id} not found.")
        return 1
    print(f"Alert {args.id} updated.")
    return 0


def cmd_notes(store: AlertStore, args) -> int:
    if store.update_notes(args.id, args.text or None):
        print(f"Alert {args.id} notes updated.")
        return 0
    print(f"Alert {args.id} not found.")
    return 1


def main():
    parser = argparse.ArgumentParser(description='Manage stock price alerts')
    parser.add_argument(
        '--db',
        type=Path,
        default=config.alerts_db_path,
        help=f'Alert database path (default: {config.alerts_db_path})'
    )
    sub = parser.add_subparsers(dest='command', required=True)

    p_add = sub.add_parser('add', help='Add a price alert')
    p_add.add_argument('symbol')
    p_add.add_argument('--above', type=float, help='Alert when price goes at or above this value')
    p_add.add_argument('--below', type=float, help='Alert when price goes at or below this value')
    p_add.add_argument('--notes', help='Free-text note shown in notifications')
    p_add.set_defaults(func=cmd_add)

    p_list = sub.add_parser('list', help='List all alerts')
    p_list.set_defaults(func=cmd_list)

    p_remove = sub.add_parser('remove', help='Remove an alert')
    p_remove.add_argument('id')
    p_remove.set_defaults(func=cmd_remove)

    for name in ('enable', 'disable'):
        p = sub.add_parser(name, help=f'{name.capitalize()} an alert')
        p.add_argument('id')
        p.set_defaults(func=cmd_enable)

    p_set = sub.add_parser('set', help='Change thresholds')
    p_set.add_argument('id')
    p_set.add_argument('--above', type=float)
    p_set.add_argument('--below', type=float)
    p_set.add_argument('--clear-above', action='store_true')
    p_set.add_argument('--clear-below', action='store_true')
    p_set.set_defaults(func=cmd_set)

    p_notes = sub.add_parser('notes', help='Set or clear notes')
    p_notes.add_argument('id')
    p_notes.add_argument('text', nargs='?', default='')
    p_notes.set_defaults(func=cmd_notes)

    args = parser.parse_args()
    logging.basicConfig(level=logging.WARNING)

    store = AlertStore(args.db)
    sys.exit(args.func(store, args))


if __name__ == "__main__":
    main()
