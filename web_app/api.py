# web_app/api.py
from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from typing import Any, Dict, Optional

from dateutil.parser import isoparse
from flask import Blueprint, current_app, jsonify, request

from noti.errors import UpstreamError, ValidationError
from noti.models import Source
from noti.stats import WINDOW_DAYS, compute_statistics
from noti.store import TransactionStore
from web_app.auth import require_api_key
from web_app.deps import current_time, get_settings, get_store

api_bp = Blueprint("api", __name__, url_prefix="/api")

# transactions.amount is a signed BIGINT
MAX_AMOUNT = 2**63 - 1


# ---------- helpers ----------
def parse_new_transaction(body: Any) -> Dict[str, Any]:
    """
    Validate a POST /api/transactions body and return store.insert() kwargs.
    amount must be a whole non-negative number, source a known tag,
    rawText optional text.
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    amount = body.get("amount")
    source = body.get("source")
    raw_text = body.get("rawText")
    if not amount or not source:
        raise ValidationError("Missing required fields: amount, source")

    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValidationError("amount must be a number")
    if isinstance(amount, float) and not amount.is_integer():
        raise ValidationError("amount must be a whole number")
    if amount < 0:
        raise ValidationError("amount must not be negative")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"amount must not exceed {MAX_AMOUNT}")

    if source not in Source.values():
        raise ValidationError(f"source must be one of {Source.values()}")

    if raw_text is not None and not isinstance(raw_text, str):
        raise ValidationError("rawText must be a string")

    return {"amount": int(amount), "source": source, "raw_text": raw_text}


def _parse_bound(name: str, raw: Optional[str], tz: tzinfo) -> Optional[datetime]:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        dt = isoparse(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt


def statistics_payload(store: TransactionStore, now: datetime, tz: tzinfo) -> Dict[str, Any]:
    """Read the trailing window and aggregate it. Shared with the dashboard feed."""
    txs = store.list(start=now - timedelta(days=WINDOW_DAYS))
    return compute_statistics(txs, now, tz, window_days=WINDOW_DAYS)


# ------------------ ROUTES ------------------
@api_bp.post("/transactions")
@require_api_key
def create_transaction():
    try:
        fields = parse_new_transaction(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        tx = get_store().insert(**fields)
    except UpstreamError:
        current_app.logger.exception("Error creating transaction")
        return jsonify({"error": "Failed to create transaction"}), 500

    current_app.logger.info("Stored transaction %s (%s %s)", tx.id, tx.source, tx.amount)
    return jsonify({"transaction": tx.to_dict()}), 201


@api_bp.get("/transactions")
@require_api_key
def list_transactions():
    tz = get_settings().timezone
    try:
        start = _parse_bound("startDate", request.args.get("startDate"), tz)
        end = _parse_bound("endDate", request.args.get("endDate"), tz)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        txs = get_store().list(start=start, end=end)
    except UpstreamError:
        current_app.logger.exception("Error fetching transactions")
        return jsonify({"error": "Failed to fetch transactions"}), 500

    return jsonify({"transactions": [t.to_dict() for t in txs]})


@api_bp.get("/statistics")
@require_api_key
def statistics():
    try:
        payload = statistics_payload(get_store(), current_time(), get_settings().timezone)
    except UpstreamError:
        current_app.logger.exception("Error fetching statistics")
        return jsonify({"error": "Failed to fetch statistics"}), 500
    return jsonify(payload)
