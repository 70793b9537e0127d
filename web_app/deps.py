# web_app/deps.py
from __future__ import annotations

from datetime import datetime, timezone

from flask import current_app

from noti.config import Settings
from noti.store import TransactionStore


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_settings() -> Settings:
    return current_app.config["NOTI_SETTINGS"]


def get_store() -> TransactionStore:
    return current_app.config["NOTI_STORE"]


def current_time() -> datetime:
    """Reference instant for this request (overridable in tests via NOTI_CLOCK)."""
    return current_app.config.get("NOTI_CLOCK", utcnow)()
