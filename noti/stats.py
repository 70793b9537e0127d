# noti/stats.py
"""
Aggregation over a flat list of transactions. Every function here is pure:
it reads the transactions it is given plus a reference instant and returns
fresh dicts/lists, so the API and the dashboard feed can share it freely.

Calendar days and hours of day are always taken in the business timezone
passed as ``tz``; nothing assumes the input is sorted.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from noti.errors import ValidationError
from noti.models import Source, Transaction

WINDOW_DAYS = 14
WEEK = timedelta(days=7)
TOP_DAYS_LIMIT = 5
DAILY_POINTS = 7

# (label, inclusive min, exclusive max); None = unbounded
AMOUNT_RANGES: Tuple[Tuple[str, int, Optional[int]], ...] = (
    ("< 20K", 0, 20_000),
    ("20K-50K", 20_000, 50_000),
    ("50K-100K", 50_000, 100_000),
    ("100K-200K", 100_000, 200_000),
    ("200K-500K", 200_000, 500_000),
    ("> 500K", 500_000, None),
)

# indexed by date.weekday(): Monday == 0
WEEKDAY_LABELS = ("T2", "T3", "T4", "T5", "T6", "T7", "CN")

FILTER_LABELS = {
    "today": "Hôm nay",
    "week": "7 ngày",
    "month": "30 ngày",
    "all": "Tất cả",
}


# === Small helpers ===
def _local_date(dt: datetime, tz: tzinfo) -> date:
    return dt.astimezone(tz).date()


def _total(txs: Iterable[Transaction]) -> int:
    return sum(t.amount for t in txs)


def pct_change(current: int, previous: int) -> Optional[float]:
    """Percent change rounded to one decimal; None when there is no baseline."""
    if previous <= 0:
        return None
    return round((current - previous) / previous * 100, 1)


def _round_half_up(total: int, n: int) -> int:
    # floor(total / n + 1/2) without going through floats
    return (2 * total + n) // (2 * n)


# === Views ===
def week_totals(
    transactions: Sequence[Transaction], now: datetime, window_days: int = WINDOW_DAYS
) -> Dict[str, Any]:
    week_start = now - WEEK
    window_start = now - timedelta(days=window_days)
    this_week = _total(t for t in transactions if t.created_at >= week_start)
    last_week = _total(
        t for t in transactions if window_start <= t.created_at < week_start
    )
    return {
        "thisWeekTotal": this_week,
        "lastWeekTotal": last_week,
        "weekOverWeekChange": pct_change(this_week, last_week),
    }


def hourly_distribution(
    transactions: Sequence[Transaction], tz: tzinfo
) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """Return (24 hourly buckets, peak bucket). Ties go to the earliest hour."""
    amounts = [0] * 24
    for t in transactions:
        amounts[t.created_at.astimezone(tz).hour] += t.amount

    rows = [{"hour": f"{h}h", "amount": amt} for h, amt in enumerate(amounts)]
    peak = rows[0]
    for row in rows[1:]:
        if row["amount"] > peak["amount"]:
            peak = row
    return rows, peak


def amount_distribution(transactions: Sequence[Transaction]) -> List[Dict[str, Any]]:
    counts = [0] * len(AMOUNT_RANGES)
    for t in transactions:
        for i, (_label, lo, hi) in enumerate(AMOUNT_RANGES):
            if t.amount >= lo and (hi is None or t.amount < hi):
                counts[i] += 1
                break
    return [
        {"range": label, "count": counts[i]}
        for i, (label, _lo, _hi) in enumerate(AMOUNT_RANGES)
    ]


def top_days(
    transactions: Sequence[Transaction], tz: tzinfo, limit: int = TOP_DAYS_LIMIT
) -> List[Dict[str, Any]]:
    """
    Days ranked by total amount, highest first. Equal totals keep the order
    in which their day was first seen in the input.
    """
    days: Dict[date, Dict[str, Any]] = {}
    for t in transactions:
        d = _local_date(t.created_at, tz)
        row = days.get(d)
        if row is None:
            row = days[d] = {
                "date": d.isoformat(),
                "label": d.strftime("%d/%m/%Y"),
                "amount": 0,
                "count": 0,
            }
        row["amount"] += t.amount
        row["count"] += 1
    ranked = sorted(days.values(), key=lambda r: r["amount"], reverse=True)
    return ranked[:limit]


def kpis(transactions: Sequence[Transaction]) -> Dict[str, int]:
    # 0 for highest/lowest on empty input is a placeholder, not data
    n = len(transactions)
    if n == 0:
        return {
            "totalTransactions": 0,
            "averageTransaction": 0,
            "highestTransaction": 0,
            "lowestTransaction": 0,
        }
    amounts = [t.amount for t in transactions]
    return {
        "totalTransactions": n,
        "averageTransaction": _round_half_up(sum(amounts), n),
        "highestTransaction": max(amounts),
        "lowestTransaction": min(amounts),
    }


def daily_series(
    transactions: Sequence[Transaction], now: datetime, tz: tzinfo, points: int = DAILY_POINTS
) -> List[Dict[str, Any]]:
    """Totals for the local dates of now-6d .. now, oldest first."""
    by_day: Dict[date, int] = {}
    for t in transactions:
        d = _local_date(t.created_at, tz)
        by_day[d] = by_day.get(d, 0) + t.amount

    out = []
    for i in range(points - 1, -1, -1):
        d = _local_date(now - timedelta(days=i), tz)
        out.append({
            "date": d.isoformat(),
            "label": d.strftime("%d/%m"),
            "amount": by_day.get(d, 0),
        })
    return out


def source_breakdown(transactions: Sequence[Transaction]) -> Dict[str, Dict[str, int]]:
    out = {s: {"total": 0, "count": 0} for s in Source.values()}
    for t in transactions:
        bucket = out.get(t.source)
        if bucket is None:
            continue
        bucket["total"] += t.amount
        bucket["count"] += 1
    return out


def week_comparison(
    transactions: Sequence[Transaction], now: datetime, tz: tzinfo
) -> List[Dict[str, Any]]:
    """Each of the last 7 local dates next to the same weekday a week earlier."""
    by_day: Dict[date, int] = {}
    for t in transactions:
        d = _local_date(t.created_at, tz)
        by_day[d] = by_day.get(d, 0) + t.amount

    rows = []
    for i in range(DAILY_POINTS - 1, -1, -1):
        this_day = _local_date(now - timedelta(days=i), tz)
        last_day = this_day - timedelta(days=7)
        rows.append({
            "day": WEEKDAY_LABELS[this_day.weekday()],
            "date": this_day.isoformat(),
            "thisWeek": by_day.get(this_day, 0),
            "lastWeek": by_day.get(last_day, 0),
        })
    return rows


def compute_statistics(
    transactions: Iterable[Transaction],
    now: datetime,
    tz: tzinfo,
    window_days: int = WINDOW_DAYS,
) -> Dict[str, Any]:
    """
    Statistics bundle for the trailing window:
      - kpis: counts, average/highest/lowest, week totals and % change
      - charts: hourly buckets + peak, amount ranges, top days,
        7-day series, week-vs-week comparison
      - sources: total/count per known source
    """
    txs = list(transactions)
    hourly, peak = hourly_distribution(txs, tz)

    return {
        "kpis": {**kpis(txs), **week_totals(txs, now, window_days)},
        "charts": {
            "hourlyChartData": hourly,
            "peakHour": peak["hour"],
            "peakHourAmount": peak["amount"],
            "amountDistribution": amount_distribution(txs),
            "topDays": top_days(txs, tz),
            "dailyChartData": daily_series(txs, now, tz),
            "weekComparison": week_comparison(txs, now, tz),
        },
        "sources": source_breakdown(txs),
    }


# === Dashboard filter + overview ===
def filter_start(name: str, now: datetime, tz: tzinfo) -> Optional[datetime]:
    """Start instant of a dashboard filter window; None means no lower bound."""
    if name not in FILTER_LABELS:
        raise ValidationError(f"Unknown filter: {name!r}")
    if name == "all":
        return None
    if name == "week":
        return now - WEEK
    midnight = now.astimezone(tz).replace(hour=0, minute=0, second=0, microsecond=0)
    if name == "month":
        return midnight - relativedelta(months=1)
    return midnight


def overview(transactions: Iterable[Transaction], tz: tzinfo) -> Dict[str, Any]:
    """Overview tab: revenue, per-source split and the 7 latest active days."""
    txs = list(transactions)
    sources = source_breakdown(txs)
    labels = Source.labels()

    by_day: Dict[date, int] = {}
    for t in txs:
        d = _local_date(t.created_at, tz)
        by_day[d] = by_day.get(d, 0) + t.amount
    recent_days = sorted(by_day)[-DAILY_POINTS:]

    return {
        "totalRevenue": _total(txs),
        "sources": sources,
        "sourceShares": [
            {"name": labels[s], "value": v["total"], "count": v["count"]}
            for s, v in sources.items()
            if v["total"] > 0
        ],
        "dailyChartData": [
            {"date": d.isoformat(), "label": d.strftime("%d/%m"), "amount": by_day[d]}
            for d in recent_days
        ],
    }
