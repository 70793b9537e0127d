# web_app/auth.py
from __future__ import annotations

import hmac
from functools import wraps
from typing import Optional

from flask import (
    Blueprint,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from noti.errors import AuthError
from web_app.deps import get_settings

auth_bp = Blueprint("auth", __name__)


# ---------- small helpers ----------
def _matches(given: str, expected: str) -> bool:
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def _wants_json() -> bool:
    accept = (request.headers.get("Accept") or "").lower()
    return "application/json" in accept or request.path.startswith("/dashboard/data")


def _safe_next(target: Optional[str]) -> Optional[str]:
    # local paths only; "//host" would leave the site
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return None


def check_bearer(header: Optional[str]) -> None:
    """Raise AuthError unless header is exactly 'Bearer <MOBILE_API_KEY>'."""
    expected = f"Bearer {get_settings().api_key}"
    if not header or not _matches(header, expected):
        raise AuthError("Unauthorized")


# ---------- decorators ----------
def require_api_key(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        try:
            check_bearer(request.headers.get("Authorization"))
        except AuthError:
            return jsonify({"error": "Unauthorized"}), 401
        return view(*args, **kwargs)
    return wrapped


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if session.get("user"):
            return view(*args, **kwargs)
        if _wants_json():
            return jsonify({"error": "Unauthorized"}), 401
        return redirect(url_for("auth.login", next=request.path))
    return wrapped


# ------------------ ROUTES ------------------
@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    next_url = _safe_next(request.values.get("next"))
    if request.method == "GET":
        if session.get("user"):
            return redirect(next_url or url_for("dashboard.dashboard"))
        return render_template("login.html", next_url=next_url)

    email = (request.form.get("email") or "").strip()
    password = request.form.get("password") or ""
    current_app.logger.info("[Auth] Login attempt: %s", email or "<empty>")

    settings = get_settings()
    if email and password and _matches(email, settings.admin_email) and _matches(password, settings.admin_password):
        session.clear()
        session["user"] = {"email": settings.admin_email, "name": "Admin"}
        current_app.logger.info("[Auth] Login successful: %s", email)
        return redirect(next_url or url_for("dashboard.dashboard"))

    current_app.logger.info("[Auth] Invalid credentials: %s", email or "<empty>")
    flash("Email hoặc mật khẩu không đúng")
    return render_template("login.html", next_url=next_url, email=email), 401


@auth_bp.get("/logout")
def logout():
    session.clear()
    return redirect(url_for("auth.login"))
