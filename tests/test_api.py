"""Tests for the mobile-facing JSON API"""

import logging
from datetime import datetime, timedelta

import pytest

from conftest import NOW, VN, logged_store_errors


# ---------- auth ----------
@pytest.mark.parametrize("method,path", [
    ("post", "/api/transactions"),
    ("get", "/api/transactions"),
    ("get", "/api/statistics"),
])
@pytest.mark.parametrize("header", [None, "Bearer wrong", "test-api-key", "bearer test-api-key"])
def test_endpoints_require_bearer_key(client, method, path, header):
    headers = {"Authorization": header} if header else {}
    resp = getattr(client, method)(path, headers=headers, json={"amount": 1, "source": "momo"})

    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Unauthorized"}


# ---------- POST /api/transactions ----------
def test_create_transaction(client, auth_headers, store, caplog):
    caplog.set_level(logging.INFO)
    resp = client.post(
        "/api/transactions",
        headers=auth_headers,
        json={"amount": 25000, "source": "mbbank", "rawText": "TK 1234 +25,000VND"},
    )

    assert resp.status_code == 201
    body = resp.get_json()["transaction"]
    assert body["amount"] == 25000
    assert body["source"] == "mbbank"
    assert body["raw_text"] == "TK 1234 +25,000VND"
    assert body["id"]
    assert body["created_at"]

    stored = store.list()
    assert [t.id for t in stored] == [body["id"]]

    stored_logs = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert f"Stored transaction {body['id']} (mbbank 25000)" in stored_logs


def test_create_transaction_without_raw_text(client, auth_headers):
    resp = client.post("/api/transactions", headers=auth_headers, json={"amount": 10000.0, "source": "momo"})
    assert resp.status_code == 201
    body = resp.get_json()["transaction"]
    assert body["amount"] == 10000
    assert body["raw_text"] is None


@pytest.mark.parametrize("payload", [
    {"source": "momo"},
    {"amount": 1000},
    {"amount": 0, "source": "momo"},
    {"amount": 1000, "source": ""},
    {},
])
def test_create_transaction_missing_fields(client, auth_headers, payload):
    resp = client.post("/api/transactions", headers=auth_headers, json=payload)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Missing required fields: amount, source"}


@pytest.mark.parametrize("payload", [
    {"amount": "1000", "source": "momo"},
    {"amount": 10.5, "source": "momo"},
    {"amount": -500, "source": "momo"},
    {"amount": True, "source": "momo"},
    {"amount": 10**20, "source": "momo"},
    {"amount": 1e20, "source": "momo"},
    {"amount": 2**63, "source": "momo"},
    {"amount": 1000, "source": "zalopay"},
    {"amount": 1000, "source": "momo", "rawText": 42},
    [1, 2, 3],
])
def test_create_transaction_rejects_malformed_input(client, auth_headers, store, payload):
    resp = client.post("/api/transactions", headers=auth_headers, json=payload)
    assert resp.status_code == 400
    assert "error" in resp.get_json()
    assert store.list() == []


def test_create_transaction_accepts_largest_bigint(client, auth_headers, store):
    resp = client.post("/api/transactions", headers=auth_headers, json={"amount": 2**63 - 1, "source": "momo"})
    assert resp.status_code == 201
    assert store.list()[0].amount == 2**63 - 1


def test_create_transaction_rejects_non_json_body(client, auth_headers):
    resp = client.post("/api/transactions", headers=auth_headers, data="amount=1000&source=momo")
    assert resp.status_code == 400


def test_create_transaction_store_failure_is_generic(broken_client, auth_headers, caplog):
    resp = broken_client.post("/api/transactions", headers=auth_headers, json={"amount": 1000, "source": "momo"})

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to create transaction"}
    assert "hunter2" not in resp.get_data(as_text=True)

    errors = logged_store_errors(caplog)
    assert [r.getMessage() for r in errors] == ["Error creating transaction"]
    assert "connection refused" in str(errors[0].exc_info[1])


# ---------- GET /api/transactions ----------
def _seed(store):
    base = datetime(2026, 1, 10, 8, 0, tzinfo=VN)
    for i in range(4):
        store.insert(1000 * (i + 1), "momo", created_at=base + timedelta(days=i))


def test_list_transactions(client, auth_headers, store):
    _seed(store)
    resp = client.get("/api/transactions", headers=auth_headers)

    assert resp.status_code == 200
    amounts = [t["amount"] for t in resp.get_json()["transactions"]]
    assert amounts == [4000, 3000, 2000, 1000]


def test_list_transactions_with_bounds(client, auth_headers, store):
    _seed(store)
    resp = client.get(
        "/api/transactions?startDate=2026-01-11&endDate=2026-01-12T23:59:59%2B07:00",
        headers=auth_headers,
    )

    assert resp.status_code == 200
    amounts = [t["amount"] for t in resp.get_json()["transactions"]]
    assert amounts == [3000, 2000]


def test_list_transactions_bad_date(client, auth_headers):
    resp = client.get("/api/transactions?startDate=yesterday", headers=auth_headers)
    assert resp.status_code == 400
    assert "startDate" in resp.get_json()["error"]


def test_list_transactions_store_failure(broken_client, auth_headers, caplog):
    resp = broken_client.get("/api/transactions", headers=auth_headers)
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to fetch transactions"}

    errors = logged_store_errors(caplog)
    assert [r.getMessage() for r in errors] == ["Error fetching transactions"]
    assert "connection refused" in str(errors[0].exc_info[1])


# ---------- GET /api/statistics ----------
def test_statistics(client, auth_headers, store):
    store.insert(100, "momo", created_at=NOW - timedelta(days=10))
    store.insert(50000, "mbbank", created_at=NOW - timedelta(days=9))
    store.insert(20000, "momo", created_at=NOW - timedelta(hours=3))
    store.insert(999999, "momo", created_at=NOW - timedelta(days=15))

    resp = client.get("/api/statistics", headers=auth_headers)

    assert resp.status_code == 200
    body = resp.get_json()
    assert set(body) == {"kpis", "charts", "sources"}

    kpis = body["kpis"]
    assert kpis["totalTransactions"] == 3
    assert kpis["thisWeekTotal"] == 20000
    assert kpis["lastWeekTotal"] == 50100
    assert kpis["weekOverWeekChange"] == pytest.approx(-60.1)
    assert kpis["averageTransaction"] == 23367
    assert kpis["highestTransaction"] == 50000
    assert kpis["lowestTransaction"] == 100

    charts = body["charts"]
    assert len(charts["hourlyChartData"]) == 24
    assert charts["peakHour"] == "12h"
    assert charts["peakHourAmount"] == 50100
    assert len(charts["dailyChartData"]) == 7
    assert charts["dailyChartData"][-1]["amount"] == 20000
    assert sum(r["count"] for r in charts["amountDistribution"]) == 3

    assert body["sources"] == {
        "momo": {"total": 20100, "count": 2},
        "mbbank": {"total": 50000, "count": 1},
    }


def test_statistics_empty_store(client, auth_headers):
    body = client.get("/api/statistics", headers=auth_headers).get_json()
    assert body["kpis"]["totalTransactions"] == 0
    assert body["kpis"]["weekOverWeekChange"] is None


def test_statistics_store_failure(broken_client, auth_headers, caplog):
    resp = broken_client.get("/api/statistics", headers=auth_headers)
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to fetch statistics"}
    assert "db.internal" not in resp.get_data(as_text=True)

    errors = logged_store_errors(caplog)
    assert [r.getMessage() for r in errors] == ["Error fetching statistics"]
    assert "connection refused" in str(errors[0].exc_info[1])


# ---------- misc ----------
def test_healthz_needs_no_auth(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}
    assert resp.headers["Cache-Control"].startswith("no-store")
