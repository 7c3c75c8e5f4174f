#!/usr/bin/env python3
"""
Stock Alert Monitor - CLI Entry Point
=====================================

Runs the periodic price check: fetch quotes for every enabled alert,
evaluate thresholds, notify over the configured channels.

Usage:
    # Start monitor
    python scripts/run_monitor.py

    # Dry run (console alerts only, no email/SMS/Telegram)
    python scripts/run_monitor.py --dry-run

    # Single check, then exit
    python scripts/run_monitor.py --once

    # Send a test alert over every configured channel
    python scripts/run_monitor.py --test-channels
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

# Allow running from a checkout without installing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from stock_alerts.alerts import build_channels
from stock_alerts.api import YahooQuoteFeed
from stock_alerts.config import config
from stock_alerts.db import AlertStore
from stock_alerts.models import Alert, Direction, TriggeredCrossing
from stock_alerts.monitor import AlertScheduler, CycleStatus, NotificationDispatcher, QuoteCache, QuoteFetcher


def setup_logging(log_level: str = config.log_level, log_file: str = config.log_file):
    """Configure logging for the monitor service."""
    log_path = Path(log_file)
    if not log_path.is_absolute():
        log_path = project_root / log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Date-stamped log file (e.g., logs/monitor_2026-01-18.log)
    date_str = datetime.now().strftime("%Y-%m-%d")
    dated_log_file = log_path.parent / f"{log_path.stem}_{date_str}{log_path.suffix}"

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(dated_log_file)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from HTTP libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    root_logger.info(f"Logging to: {dated_log_file}")


def send_test_alerts(channels) -> bool:
    """Send a sample crossing over every channel. True if all succeeded."""
    sample = TriggeredCrossing(
        alert=Alert(symbol="TEST", display_name="Test alert - configuration verified", above_threshold=100.0),
        observed_price=101.0,
        direction=Direction.ABOVE,
        threshold=100.0,
    )
    all_ok = True
    for channel in channels:
        result = channel.deliver(sample)
        status = "OK" if result.success else f"FAILED ({result.reason})"
        print(f"  {channel.name:<10} {status}")
        all_ok = all_ok and result.success
    return all_ok


def main():
    parser = argparse.ArgumentParser(
        description='Stock Price Alert Monitor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_monitor.py                  # Start monitor
  python scripts/run_monitor.py --dry-run        # Console alerts only
  python scripts/run_monitor.py --once           # One check, then exit
  python scripts/run_monitor.py --test-channels  # Verify channel setup
        """
    )

    parser.add_argument(
        '--interval',
        type=int,
        default=config.check_interval_sec,
        help=f'Seconds between checks (default: {config.check_interval_sec})'
    )

    parser.add_argument(
        '--cooldown',
        type=float,
        default=config.cooldown_minutes,
        help=f'Minutes before the same direction of an alert can fire again (default: {config.cooldown_minutes:g})'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Print alerts to console instead of sending them'
    )

    parser.add_argument(
        '--once',
        action='store_true',
        help='Run a single check and exit'
    )

    parser.add_argument(
        '--test-channels',
        action='store_true',
        help='Send a test alert over every configured channel'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=config.log_level,
        help=f'Log level (default: {config.log_level})'
    )

    args = parser.parse_args()

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    channels = build_channels(config, dry_run=args.dry_run)

    if args.test_channels:
        if not channels:
            print("No notification channels configured. Check SMTP_*, TWILIO_* and TELEGRAM_* settings.")
            sys.exit(1)
        print("Testing notification channels...")
        sys.exit(0 if send_test_alerts(channels) else 1)

    print("\n" + "=" * 60)
    print("STOCK PRICE ALERT MONITOR")
    print("=" * 60)
    print(f"Interval:   {args.interval} seconds")
    print(f"Cooldown:   {args.cooldown:g} minutes")
    print(f"Email:      {'configured' if config.is_email_configured() else 'not configured'}")
    print(f"SMS:        {'configured' if config.is_sms_configured() else 'not configured'}")
    print(f"Telegram:   {'configured' if config.is_telegram_configured() else 'not configured'}")
    print(f"Dry run:    {args.dry_run}")
    print(f"Database:   {config.alerts_db_path}")
    print("=" * 60)

    if not channels:
        print("\nWARNING: no notification channels configured.")
        print("Crossings will be logged but not delivered, and will re-trigger every check.")

    store = AlertStore(config.alerts_db_path)
    fetcher = QuoteFetcher(YahooQuoteFeed(), cache=QuoteCache(config.quote_cache_ttl_sec))
    dispatcher = NotificationDispatcher(channels, store)
    scheduler = AlertScheduler(
        store,
        fetcher,
        dispatcher,
        interval_seconds=args.interval,
        cooldown_minutes=args.cooldown,
    )

    try:
        if args.once:
            result = scheduler.run_once()
            sys.exit(1 if result.status == CycleStatus.FETCH_FAILED else 0)

        scheduler.install_signal_handlers()
        print("\nStarting monitor...")
        print("Press Ctrl+C to stop\n")
        scheduler.run()

    except KeyboardInterrupt:
        print("\n\nMonitor stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Monitor error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
