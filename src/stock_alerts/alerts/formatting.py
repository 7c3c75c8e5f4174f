"""
Message Formatting
==================

Builds the subject/body text for alert notifications.
"""

from datetime import datetime, timezone

import pytz

from ..config import config
from ..models import TriggeredCrossing

SMS_MAX_LENGTH = 160


def format_price(p: float) -> str:
    """Format a price with precision suited to its magnitude."""
    if p >= 1000:
        return f"${p:,.2f}"
    elif p >= 1:
        return f"${p:.2f}"
    else:
        return f"${p:.6f}"


def format_threshold(t: float) -> str:
    # Thresholds are shown as the user entered them (190, not 190.00)
    return "$" + f"{t:,.6f}".rstrip("0").rstrip(".")


def format_timestamp(ts: datetime = None, tz_name: str = None) -> str:
    """Render a timestamp in the configured alert timezone."""
    if ts is None:
        ts = datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    tz = pytz.timezone(tz_name or config.alert_timezone)
    return ts.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S %Z")


def format_subject(crossing: TriggeredCrossing) -> str:
    return (
        f"Stock Alert: {crossing.alert.symbol} is {crossing.direction.value} "
        f"{format_threshold(crossing.threshold)}"
    )


def format_alert_text(crossing: TriggeredCrossing, sent_at: datetime = None) -> str:
    """Multi-line plain-text body for email."""
    alert = crossing.alert
    direction = crossing.direction.value
    lines = [
        f"{alert.symbol} ({alert.display_name})",
        f"Current price: {format_price(crossing.observed_price)}",
        f"Threshold: {direction} {format_threshold(crossing.threshold)}",
    ]
    if alert.notes:
        lines.append(f"Notes: {alert.notes}")
    lines.extend([
        "",
        f"This alert was triggered because the stock price moved {direction} your configured threshold.",
        "",
        format_timestamp(sent_at),
    ])
    return "\n".join(lines)


def format_sms_body(crossing: TriggeredCrossing) -> str:
    """Single-line SMS body, truncated to one segment."""
    body = (
        f"Stock Alert: {crossing.alert.symbol} ({format_price(crossing.observed_price)}) "
        f"is {crossing.direction.value} {format_threshold(crossing.threshold)}"
    )
    if len(body) > SMS_MAX_LENGTH:
        body = body[:SMS_MAX_LENGTH - 3] + "..."
    return body


def format_log_line(crossing: TriggeredCrossing) -> str:
    return (
        f"[ALERT] {crossing.alert.symbol} ({format_price(crossing.observed_price)}) "
        f"is {crossing.direction.value} {format_threshold(crossing.threshold)}"
    )
