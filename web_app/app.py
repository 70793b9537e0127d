# web_app/app.py
from __future__ import annotations

import os
from datetime import datetime
from typing import Callable, Optional

from flask import Flask, jsonify

from noti.config import Settings, configure_logging, load_settings
from noti.errors import UpstreamError
from noti.store import TransactionStore
from web_app.api import api_bp
from web_app.auth import auth_bp
from web_app.dashboard import dashboard_bp
from web_app.deps import utcnow


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[TransactionStore] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Flask:
    """
    Build the Flask app. With no arguments, settings come from the environment
    (.env included) and startup fails with ConfigurationError when a required
    variable is missing.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    # ---- Flask app ----
    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config.update(
        NOTI_SETTINGS=settings,
        NOTI_STORE=store or TransactionStore.from_url(settings.database_url),
        NOTI_CLOCK=clock or utcnow,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
    )
    app.json.sort_keys = False
    app.json.ensure_ascii = False

    app.logger.info("[Config] Using NOTI_TIMEZONE=%s", settings.timezone_name)

    # ---- Blueprints (login, mobile API, dashboard) ----
    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(dashboard_bp)

    # ------------------ MIDDLEWARE ------------------
    @app.after_request
    def add_no_cache_headers(resp):
        resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        resp.headers["Pragma"] = "no-cache"
        resp.headers["Expires"] = "0"
        return resp

    @app.get("/healthz")
    def healthz():
        return jsonify(ok=True), 200

    # ------------------ CLI ------------------
    @app.cli.command("init-db")
    def init_db():
        """Create the transactions table if it does not exist."""
        try:
            app.config["NOTI_STORE"].create_schema()
        except UpstreamError as e:
            app.logger.error("init-db failed: %s", e)
            raise SystemExit(1)
        print("[Noti] transactions table ready")

    return app


if __name__ == "__main__":
    create_app().run(debug=os.environ.get("FLASK_DEBUG") == "1")
