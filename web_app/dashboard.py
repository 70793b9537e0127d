# web_app/dashboard.py
from __future__ import annotations

from datetime import tzinfo
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, redirect, render_template, request, session, url_for

from noti.errors import UpstreamError, ValidationError
from noti.models import Source, Transaction
from noti.stats import FILTER_LABELS, filter_start, overview
from web_app.api import statistics_payload
from web_app.auth import login_required
from web_app.deps import current_time, get_settings, get_store

dashboard_bp = Blueprint("dashboard", __name__)

DEFAULT_FILTER = "week"


def _display_row(t: Transaction, tz: tzinfo) -> Dict[str, Any]:
    row = t.to_dict()
    row["time_label"] = t.created_at.astimezone(tz).strftime("%H:%M %d/%m")
    return row


@dashboard_bp.route("/")
def index():
    return redirect(url_for("dashboard.dashboard"))


@dashboard_bp.get("/dashboard")
@login_required
def dashboard():
    settings = get_settings()
    return render_template(
        "dashboard.html",
        user=session.get("user") or {},
        filters=FILTER_LABELS,
        default_filter=DEFAULT_FILTER,
        source_labels=Source.labels(),
        poll_ms=settings.poll_seconds * 1000,
    )


@dashboard_bp.get("/dashboard/data")
@login_required
def dashboard_data():
    """Feed polled by the dashboard: filtered list + overview, and the 14-day statistics."""
    name = (request.args.get("filter") or DEFAULT_FILTER).strip()
    tz = get_settings().timezone
    now = current_time()
    try:
        start = filter_start(name, now, tz)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    store = get_store()
    try:
        txs = store.list(start=start)
        stats = statistics_payload(store, now, tz)
    except UpstreamError:
        current_app.logger.exception("Error fetching dashboard data")
        return jsonify({"error": "Failed to fetch dashboard data"}), 500

    return jsonify({
        "filter": name,
        "transactions": [_display_row(t, tz) for t in txs],
        "overview": overview(txs, tz),
        "statistics": stats,
    })
