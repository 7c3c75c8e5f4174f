"""
Alerts Package
==============

Notification channels for triggered crossings.

Components:
- base.py: NotificationChannel contract, DeliveryResult
- formatting.py: message text builders
- email_channel.py: SMTP email
- sms_channel.py: Twilio SMS
- telegram.py: Telegram Bot API, console dry-run channel
"""

import logging
from typing import List

from ..config import Config
from .base import DeliveryResult, NotificationChannel
from .email_channel import EmailChannel, EmailConfig
from .sms_channel import SmsChannel, SmsConfig
from .telegram import DryRunChannel, TelegramChannel, TelegramConfig

logger = logging.getLogger(__name__)


def build_channels(cfg: Config, dry_run: bool = False) -> List[NotificationChannel]:
    """
    Construct every configured channel.

    A channel whose settings are incomplete is left out entirely, so the
    dispatcher never attempts it.

    Args:
        cfg: Configuration to read channel settings from
        dry_run: If True, return only the console channel

    Returns:
        List of ready-to-use channels (possibly empty)
    """
    if dry_run:
        return [DryRunChannel()]

    channels: List[NotificationChannel] = []

    if cfg.is_email_configured():
        channels.append(EmailChannel(EmailConfig(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            user=cfg.smtp_user,
            password=cfg.smtp_pass,
            recipient=cfg.notify_email,
        )))

    if cfg.is_sms_configured():
        channels.append(SmsChannel(SmsConfig(
            account_sid=cfg.twilio_account_sid,
            auth_token=cfg.twilio_auth_token,
            from_number=cfg.twilio_from_number,
            to_number=cfg.notify_sms,
        )))

    if cfg.is_telegram_configured():
        channels.append(TelegramChannel(TelegramConfig(
            bot_token=cfg.telegram_bot_token,
            chat_id=cfg.telegram_chat_id,
        )))

    logger.info(f"Notification channels: {', '.join(c.name for c in channels) or 'none'}")
    return channels


__all__ = [
    "DeliveryResult",
    "NotificationChannel",
    "EmailChannel",
    "EmailConfig",
    "SmsChannel",
    "SmsConfig",
    "TelegramChannel",
    "TelegramConfig",
    "DryRunChannel",
    "build_channels",
]
