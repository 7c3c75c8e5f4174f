"""
SMS Channel
===========

Twilio delivery through the Twilio REST client.
"""

import logging
from dataclasses import dataclass

import requests
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from ..models import TriggeredCrossing
from .base import DeliveryResult, NotificationChannel
from .formatting import format_sms_body

logger = logging.getLogger(__name__)


@dataclass
class SmsConfig:
    """Twilio settings for the SMS channel."""
    account_sid: str
    auth_token: str
    from_number: str
    to_number: str
    timeout: float = 10.0


class SmsChannel(NotificationChannel):
    """Sends one SMS per crossing via Twilio."""

    name = "sms"

    def __init__(self, config: SmsConfig, client: Client = None):
        self.config = config
        self.client = client or Client(
            config.account_sid,
            config.auth_token,
            http_client=TwilioHttpClient(timeout=config.timeout),
        )

    def deliver(self, crossing: TriggeredCrossing) -> DeliveryResult:
        try:
            message = self.client.messages.create(
                to=self.config.to_number,
                from_=self.config.from_number,
                body=format_sms_body(crossing),
            )

        except TwilioRestException as e:
            logger.error(f"Twilio rejected SMS: HTTP {e.status} (code {e.code})")
            return DeliveryResult.failed(self.name, f"HTTP {e.status}: {e.msg}")
        except TwilioException as e:
            logger.error(f"Twilio client error: {e}")
            return DeliveryResult.failed(self.name, str(e) or type(e).__name__)
        except requests.exceptions.Timeout:
            logger.error("Twilio request timed out")
            return DeliveryResult.failed(self.name, "timeout")
        except requests.exceptions.RequestException as e:
            logger.error(f"Twilio request failed: {type(e).__name__}")
            return DeliveryResult.failed(self.name, type(e).__name__)

        logger.info(f"SMS sent to {self.config.to_number} (sid: {getattr(message, 'sid', None)})")
        return DeliveryResult.ok(self.name)
