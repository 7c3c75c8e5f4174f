"""
Configuration for the Stock Price Alert Monitor

All settings in one place for easy tuning. Values come from the environment
(a `.env` file in the project root is loaded first if present).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_project_root = Path(__file__).resolve().parent.parent.parent
_env_path = _project_root / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = _env_str(name)
    return int(value) if value is not None else default


def _env_float(name: str, default: float) -> float:
    value = _env_str(name)
    return float(value) if value is not None else default


@dataclass
class Config:
    """All configuration settings."""

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------
    check_interval_sec: int = 300
    cooldown_minutes: float = 60

    # -------------------------------------------------------------------------
    # Quote Feed
    # -------------------------------------------------------------------------
    yahoo_base_url: str = "https://query1.finance.yahoo.com"
    request_timeout_sec: float = 10.0

    # Yahoo throttles aggressively - sequential by default
    max_concurrent_requests: int = 1

    # Delay after each upstream request (seconds)
    request_delay_sec: float = 0.25

    # Quote cache lifetime (seconds)
    quote_cache_ttl_sec: float = 30.0

    # Rate limiting backoff: sleep (attempt + 1) * backoff between retries
    rate_limit_max_retries: int = 2
    rate_limit_backoff_sec: float = 2.0

    # -------------------------------------------------------------------------
    # Notification Delivery
    # -------------------------------------------------------------------------
    delivery_max_workers: int = 4

    # Timezone used for timestamps in outgoing messages
    alert_timezone: str = "America/New_York"

    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    notify_email: Optional[str] = None

    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_from_number: Optional[str] = None
    notify_sms: Optional[str] = None

    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    # -------------------------------------------------------------------------
    # Storage & Logging
    # -------------------------------------------------------------------------
    data_dir: Path = field(default_factory=lambda: _project_root / "data")
    db_file: Optional[Path] = None
    log_level: str = "INFO"
    log_file: str = "logs/monitor.log"

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config from environment variables, falling back to defaults."""
        db_path = _env_str("ALERTS_DB_PATH")
        return cls(
            check_interval_sec=_env_int("CHECK_INTERVAL_SECONDS", cls.check_interval_sec),
            cooldown_minutes=_env_float("COOLDOWN_MINUTES", cls.cooldown_minutes),
            yahoo_base_url=_env_str("YAHOO_BASE_URL", cls.yahoo_base_url),
            request_timeout_sec=_env_float("REQUEST_TIMEOUT_SECONDS", cls.request_timeout_sec),
            max_concurrent_requests=_env_int("MAX_CONCURRENT_REQUESTS", cls.max_concurrent_requests),
            request_delay_sec=_env_float("REQUEST_DELAY_SECONDS", cls.request_delay_sec),
            quote_cache_ttl_sec=_env_float("QUOTE_CACHE_TTL_SECONDS", cls.quote_cache_ttl_sec),
            rate_limit_max_retries=_env_int("RATE_LIMIT_MAX_RETRIES", cls.rate_limit_max_retries),
            rate_limit_backoff_sec=_env_float("RATE_LIMIT_BACKOFF_SECONDS", cls.rate_limit_backoff_sec),
            delivery_max_workers=_env_int("DELIVERY_MAX_WORKERS", cls.delivery_max_workers),
            alert_timezone=_env_str("ALERT_TIMEZONE", cls.alert_timezone),
            smtp_host=_env_str("SMTP_HOST"),
            smtp_port=_env_int("SMTP_PORT", cls.smtp_port),
            smtp_user=_env_str("SMTP_USER"),
            smtp_pass=_env_str("SMTP_PASS"),
            notify_email=_env_str("NOTIFY_EMAIL"),
            twilio_account_sid=_env_str("TWILIO_ACCOUNT_SID"),
            twilio_auth_token=_env_str("TWILIO_AUTH_TOKEN"),
            twilio_from_number=_env_str("TWILIO_FROM_NUMBER"),
            notify_sms=_env_str("NOTIFY_SMS"),
            telegram_bot_token=_env_str("TELEGRAM_BOT_TOKEN"),
            telegram_chat_id=_env_str("TELEGRAM_CHAT_ID"),
            db_file=Path(db_path) if db_path else None,
            log_level=_env_str("LOG_LEVEL", cls.log_level),
            log_file=_env_str("LOG_FILE", cls.log_file),
        )

    @property
    def alerts_db_path(self) -> Path:
        return self.db_file or self.data_dir / "alerts.db"

    # -------------------------------------------------------------------------
    # Channel Availability
    # -------------------------------------------------------------------------

    def is_email_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_pass and self.notify_email)

    def is_sms_configured(self) -> bool:
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_from_number
            and self.notify_sms
        )

    def is_telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


# Global config instance
config = Config.from_env()
