"""
Telegram Alerts
===============

Telegram Bot API channel, plus a console-only dry-run channel.
"""

import logging
import threading
import time
from dataclasses import dataclass
from html import escape

import requests

from ..models import TriggeredCrossing
from .base import DeliveryResult, NotificationChannel
from .formatting import format_price, format_threshold, format_timestamp

logger = logging.getLogger(__name__)

# 1 second between any messages (Telegram limit: 30/sec, 1/sec per chat)
MIN_MESSAGE_INTERVAL_SECONDS = 1


@dataclass
class TelegramConfig:
    """Configuration for the Telegram channel."""
    bot_token: str
    chat_id: str
    max_message_length: int = 4000
    min_message_interval: float = MIN_MESSAGE_INTERVAL_SECONDS
    timeout: float = 10.0


def format_telegram_message(crossing: TriggeredCrossing) -> str:
    """HTML message for one crossing."""
    alert = crossing.alert
    header = "PRICE ABOVE THRESHOLD" if crossing.direction.value == "above" else "PRICE BELOW THRESHOLD"
    lines = [
        f"<b>{header}</b>",
        "",
        f"<b>{escape(alert.symbol)}</b> | {escape(alert.display_name)}",
        f"Current Price: <b>{format_price(crossing.observed_price)}</b>",
        f"Threshold: {crossing.direction.value} {format_threshold(crossing.threshold)}",
    ]
    if alert.notes:
        lines.append(f"Notes: {escape(alert.notes)}")
    lines.extend(["", format_timestamp()])
    return "\n".join(lines)


class TelegramChannel(NotificationChannel):
    """
    Telegram alert sender.

    Enforces a minimum interval between messages so a burst of crossings
    does not trip Telegram's per-chat limit.
    """

    name = "telegram"

    def __init__(self, config: TelegramConfig, session: requests.Session = None):
        self.config = config
        self.session = session or requests.Session()
        self._validate()

        self._last_message_time: float = 0
        self._send_lock = threading.Lock()

    def _validate(self):
        if not self.config.bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")
        if not self.config.chat_id:
            raise ValueError("TELEGRAM_CHAT_ID is required")

    def _enforce_message_interval(self):
        """Enforce minimum interval between messages."""
        elapsed = time.time() - self._last_message_time
        if elapsed < self.config.min_message_interval:
            time.sleep(self.config.min_message_interval - elapsed)

    def _truncate_message(self, text: str) -> str:
        if len(text) > self.config.max_message_length:
            return text[:self.config.max_message_length - 20] + "\n... (truncated)"
        return text

    def deliver(self, crossing: TriggeredCrossing) -> DeliveryResult:
        text = self._truncate_message(format_telegram_message(crossing))
        url = f"https://api.telegram.org/bot{self.config.bot_token}/sendMessage"
        payload = {
            "chat_id": self.config.chat_id,
            "text": text,
            "parse_mode": "HTML",
        }

        # Messages from parallel deliveries go out one at a time
        with self._send_lock:
            self._enforce_message_interval()
            try:
                response = self.session.post(url, json=payload, timeout=self.config.timeout)
                response.raise_for_status()
                self._last_message_time = time.time()

            except requests.exceptions.Timeout:
                logger.error("Telegram request timed out")
                return DeliveryResult.failed(self.name, "timeout")
            except requests.exceptions.HTTPError as e:
                # Log status code without exposing token in URL
                status_code = e.response.status_code if e.response is not None else "unknown"
                logger.error(f"Telegram HTTP error: {status_code}")
                if status_code == 429:
                    logger.warning("Telegram rate limit hit (429)")
                return DeliveryResult.failed(self.name, f"HTTP {status_code}")
            except requests.exceptions.ConnectionError:
                logger.error("Telegram connection error - network issue")
                return DeliveryResult.failed(self.name, "connection error")
            except requests.exceptions.RequestException:
                # Exception text may contain the URL (and so the token)
                logger.error("Telegram request failed")
                return DeliveryResult.failed(self.name, "request failed")

        try:
            message_id = (response.json().get("result") or {}).get("message_id")
        except ValueError:
            message_id = None
        logger.info(f"Telegram alert sent successfully (message_id: {message_id})")
        return DeliveryResult.ok(self.name)


class DryRunChannel(NotificationChannel):
    """Prints alerts to the console instead of sending them. Always succeeds."""

    name = "dry-run"

    def deliver(self, crossing: TriggeredCrossing) -> DeliveryResult:
        text = format_telegram_message(crossing)
        plain = text.replace("<b>", "").replace("</b>", "")
        logger.info(f"[DRY RUN] Would send alert:\n{plain}")
        print(f"\n{'=' * 60}")
        print("[DRY RUN] Stock Alert:")
        print("=" * 60)
        print(plain)
        print("=" * 60 + "\n")
        return DeliveryResult.ok(self.name)
