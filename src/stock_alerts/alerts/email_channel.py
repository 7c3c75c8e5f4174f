"""
Email Channel
=============

SMTP delivery. Port 465 uses implicit TLS, anything else upgrades with STARTTLS.
"""

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage

from ..models import TriggeredCrossing
from .base import DeliveryResult, NotificationChannel
from .formatting import format_alert_text, format_subject

logger = logging.getLogger(__name__)


@dataclass
class EmailConfig:
    """SMTP settings for the email channel."""
    host: str
    port: int
    user: str
    password: str
    recipient: str
    timeout: float = 30.0


class EmailChannel(NotificationChannel):
    """Sends one plain-text email per crossing."""

    name = "email"

    def __init__(self, config: EmailConfig):
        self.config = config

    def build_message(self, crossing: TriggeredCrossing) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = format_subject(crossing)
        msg["From"] = self.config.user
        msg["To"] = self.config.recipient
        msg.set_content(format_alert_text(crossing))
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.config.port == 465:
            return smtplib.SMTP_SSL(
                self.config.host,
                self.config.port,
                timeout=self.config.timeout,
                context=ssl.create_default_context(),
            )
        smtp = smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout)
        smtp.starttls(context=ssl.create_default_context())
        return smtp

    def deliver(self, crossing: TriggeredCrossing) -> DeliveryResult:
        msg = self.build_message(crossing)
        try:
            with self._connect() as smtp:
                smtp.login(self.config.user, self.config.password)
                smtp.send_message(msg)
        except smtplib.SMTPAuthenticationError:
            logger.error("Email delivery failed: SMTP authentication rejected")
            return DeliveryResult.failed(self.name, "SMTP authentication rejected")
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email delivery failed: {type(e).__name__}: {e}")
            return DeliveryResult.failed(self.name, f"{type(e).__name__}: {e}")

        logger.info(f"Email sent to {self.config.recipient}")
        return DeliveryResult.ok(self.name)
