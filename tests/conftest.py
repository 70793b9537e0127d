"""Shared fixtures: a throwaway SQLite store, settings, and the Flask app."""

import logging
from datetime import datetime

import pytest
from dateutil import tz

from noti.config import Settings
from noti.errors import StoreError
from noti.store import TransactionStore
from web_app.app import create_app

API_KEY = "test-api-key"
ADMIN_EMAIL = "admin@noti.app"
ADMIN_PASSWORD = "correct horse"
VN = tz.gettz("Asia/Ho_Chi_Minh")

# Thursday, noon in Hanoi
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=VN)


class BrokenStore:
    """Store double whose every call fails the way a dead database would."""

    def insert(self, *args, **kwargs):
        raise StoreError("connection refused: db.internal:5432 password=hunter2")

    def list(self, *args, **kwargs):
        raise StoreError("connection refused: db.internal:5432 password=hunter2")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_key=API_KEY,
        secret_key="test-secret-key",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        database_url=f"sqlite:///{tmp_path / 'noti.db'}",
    )


@pytest.fixture
def store(settings):
    s = TransactionStore.from_url(settings.database_url)
    s.create_schema()
    yield s
    s.dispose()


@pytest.fixture
def app(settings, store):
    app = create_app(settings=settings, store=store, clock=lambda: NOW)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def broken_client(settings):
    app = create_app(settings=settings, store=BrokenStore(), clock=lambda: NOW)
    app.config.update(TESTING=True)
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {API_KEY}"}


@pytest.fixture
def logged_in(client):
    with client.session_transaction() as sess:
        sess["user"] = {"email": ADMIN_EMAIL, "name": "Admin"}
    return client


def logged_store_errors(caplog):
    """ERROR records that carry the StoreError traceback"""
    return [
        r for r in caplog.records
        if r.levelno == logging.ERROR and r.exc_info and isinstance(r.exc_info[1], StoreError)
    ]
