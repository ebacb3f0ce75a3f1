"""
Sales Arena — Breakdowns
==========================

Read-only views over a filtered record list: per-facet performance, stage
funnel, loss reasons, time-to-close distribution, daily evolution, open-lead
priority list and the won-sales ticker.

Note that per-facet breakdowns report ``conversion_rate`` as won / leads
(a lead-to-sale rate), unlike the agent win rate which only counts closed
deals.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from arena.aggregation import safe_div
from arena.filters import Facet, facet_value
from arena.records import UNKNOWN, SaleRecord, SaleStatus

STAGE_ORDER = ("Primer contacto", "Cualificación", "Negociación", "Cierre")

DAYS_TO_CLOSE_BINS = (
    ("< 1 día", 1),
    ("1-3 días", 3),
    ("4-7 días", 7),
    ("8-14 días", 14),
    ("15-30 días", 30),
)
DAYS_TO_CLOSE_OVERFLOW = "> 30 días"


def facet_breakdown(records: Sequence[SaleRecord], facet: Facet) -> List[Dict[str, Any]]:
    """Leads, wins, revenue and conversion per value of ``facet``, revenue desc."""
    grouped: Dict[str, Dict[str, Any]] = {}
    for r in records:
        name = facet_value(r, facet) or UNKNOWN
        row = grouped.setdefault(name, {
            "name": name, "leads": 0, "won": 0, "lost": 0, "revenue": 0.0,
            "_days": 0.0, "_timed": 0,
        })
        row["leads"] += 1
        if r.is_won:
            row["won"] += 1
            row["revenue"] += r.revenue
            if r.days_to_close is not None:
                row["_days"] += r.days_to_close
                row["_timed"] += 1
        elif r.is_lost:
            row["lost"] += 1

    rows = []
    for row in grouped.values():
        days, timed = row.pop("_days"), row.pop("_timed")
        row["conversion_rate"] = safe_div(row["won"] * 100.0, row["leads"])
        row["avg_ticket"] = safe_div(row["revenue"], row["won"])
        row["avg_days_to_close"] = safe_div(days, timed)
        rows.append(row)
    rows.sort(key=lambda r: r["revenue"], reverse=True)
    return rows


def stage_funnel(records: Iterable[SaleRecord]) -> List[Dict[str, Any]]:
    """Records currently in each pipeline stage, in funnel order."""
    counts = Counter(r.stage for r in records)
    return [{"stage": stage, "count": counts.get(stage, 0)} for stage in STAGE_ORDER]


def source_status_matrix(records: Iterable[SaleRecord]) -> List[Dict[str, Any]]:
    """Won/Lost/Open counts per attribution source, busiest source first."""
    grouped: Dict[str, Counter] = defaultdict(Counter)
    for r in records:
        grouped[r.attribution or UNKNOWN][r.status.value] += 1

    rows = [
        {"source": source, **{s.value: counts.get(s.value, 0) for s in SaleStatus}}
        for source, counts in grouped.items()
    ]
    rows.sort(key=lambda r: sum(r[s.value] for s in SaleStatus), reverse=True)
    return rows


def loss_reasons(records: Iterable[SaleRecord]) -> List[Dict[str, Any]]:
    counts = Counter(r.loss_reason or UNKNOWN for r in records if r.is_lost)
    return [{"reason": reason, "count": n} for reason, n in counts.most_common()]


def _days_bin(days: float) -> str:
    if days < 1:
        return DAYS_TO_CLOSE_BINS[0][0]
    for label, upper in DAYS_TO_CLOSE_BINS[1:]:
        if days <= upper:
            return label
    return DAYS_TO_CLOSE_OVERFLOW


def days_to_close_histogram(records: Iterable[SaleRecord]) -> List[Dict[str, Any]]:
    """Won deals with a known days_to_close, bucketed."""
    counts = Counter(
        _days_bin(r.days_to_close)
        for r in records
        if r.is_won and r.days_to_close is not None
    )
    labels = [label for label, _ in DAYS_TO_CLOSE_BINS] + [DAYS_TO_CLOSE_OVERFLOW]
    return [{"bucket": label, "count": counts.get(label, 0)} for label in labels]


def avg_days_by_agent(records: Iterable[SaleRecord]) -> List[Dict[str, Any]]:
    """Average days to close per agent over timed wins, fastest first."""
    totals: Dict[str, List[float]] = defaultdict(list)
    for r in records:
        if r.is_won and r.days_to_close is not None:
            totals[r.agent].append(r.days_to_close)
    rows = [
        {"agent": agent, "avg_days_to_close": sum(days) / len(days), "won": len(days)}
        for agent, days in totals.items()
    ]
    rows.sort(key=lambda r: r["avg_days_to_close"])
    return rows


def daily_evolution(records: Iterable[SaleRecord]) -> List[Dict[str, Any]]:
    """Per day: new leads (by registration) and wins/revenue (by resolution)."""
    days: Dict[str, Dict[str, Any]] = {}

    def _day(moment: datetime) -> Dict[str, Any]:
        key = moment.strftime("%Y-%m-%d")
        return days.setdefault(key, {"date": key, "leads": 0, "won": 0, "revenue": 0.0})

    for r in records:
        _day(r.registration_date)["leads"] += 1
        if r.is_won and r.resolution_date is not None:
            bucket = _day(r.resolution_date)
            bucket["won"] += 1
            bucket["revenue"] += r.revenue

    return [days[k] for k in sorted(days)]


def priority_leads(records: Iterable[SaleRecord], limit: int = 10) -> List[SaleRecord]:
    """Open leads with the most outreach activity first."""
    open_leads = [r for r in records if r.is_open]
    open_leads.sort(key=lambda r: r.calls_outgoing + r.whatsapp_answered, reverse=True)
    return open_leads[:limit]


def recent_wins(records: Iterable[SaleRecord], limit: int = 15) -> List[SaleRecord]:
    """Latest won sales by resolution date (undated wins sort last)."""
    won = [r for r in records if r.is_won]
    won.sort(key=lambda r: r.resolution_date or datetime.min, reverse=True)
    return won[:limit]


def new_win_ids(previous: Optional[Iterable[SaleRecord]], current: Iterable[SaleRecord]) -> List[str]:
    """Ids that are Won now but were not Won in the previous snapshot.

    Without a previous snapshot nothing is "new" (first load is not news).
    """
    if previous is None:
        return []
    before = {r.id for r in previous if r.is_won}
    return [r.id for r in current if r.is_won and r.id not in before]
