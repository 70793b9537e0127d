# noti/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from typing import Mapping, Optional

from dateutil import tz
from dotenv import load_dotenv

from noti.errors import ConfigurationError

# --------------------
# Env & configuration
# --------------------
REQUIRED_VARS = (
    "MOBILE_API_KEY",
    "SECRET_KEY",
    "ADMIN_EMAIL",
    "ADMIN_PASSWORD",
    "DATABASE_URL",
)

DEFAULT_TIMEZONE = "Asia/Ho_Chi_Minh"
DEFAULT_POLL_SECONDS = 10

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    api_key: str
    secret_key: str
    admin_email: str
    admin_password: str
    database_url: str
    timezone_name: str = DEFAULT_TIMEZONE
    log_level: str = "INFO"
    poll_seconds: int = DEFAULT_POLL_SECONDS

    @property
    def timezone(self) -> tzinfo:
        zone = tz.gettz(self.timezone_name)
        if zone is None:
            raise ConfigurationError(f"Unknown timezone: {self.timezone_name}")
        return zone


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment (after reading .env when no mapping
    is passed). Every required variable must be present and non-blank;
    there are no fallback secrets.

    Raises:
        ConfigurationError: listing every missing key, or on a bad
        timezone / poll interval.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    values = {k: (environ.get(k) or "").strip() for k in REQUIRED_VARS}
    missing_keys = [k for k, v in values.items() if not v]
    if missing_keys:
        raise ConfigurationError(f"Missing required configuration keys: {missing_keys}")

    raw_poll = (environ.get("DASHBOARD_POLL_SECONDS") or str(DEFAULT_POLL_SECONDS)).strip()
    try:
        poll_seconds = int(raw_poll)
    except ValueError:
        raise ConfigurationError(f"DASHBOARD_POLL_SECONDS must be an integer, got {raw_poll!r}")
    if poll_seconds <= 0:
        raise ConfigurationError("DASHBOARD_POLL_SECONDS must be positive")

    settings = Settings(
        api_key=values["MOBILE_API_KEY"],
        secret_key=values["SECRET_KEY"],
        admin_email=values["ADMIN_EMAIL"],
        admin_password=values["ADMIN_PASSWORD"],
        database_url=values["DATABASE_URL"],
        timezone_name=(environ.get("NOTI_TIMEZONE") or DEFAULT_TIMEZONE).strip(),
        log_level=(environ.get("LOG_LEVEL") or "INFO").strip().upper(),
        poll_seconds=poll_seconds,
    )
    # fail on a bad zone at startup, not on the first request
    settings.timezone
    return settings


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
