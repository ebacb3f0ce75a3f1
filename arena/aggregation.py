"""
Sales Arena — Aggregation Engine
==================================

Groups a filtered record list by agent into CommercialStats, plus the
secondary efficiency metrics and the team-wide summary used by the
analytics views. Everything here is a pure function of its input.

Primary metrics (the only ones the ranking reads):
    total_revenue      sum of revenue over Won records
    won/lost/open      counts by status
    win_rate           round(won / (won + lost) * 100), 0 without closed deals
    avg_days_to_close  mean over Won records that have days_to_close, else 0

Secondary metrics (bubble charts and scoring, never ranked on):
    effort_per_lead    (outgoing calls + answered WhatsApps) / leads
    effort_score       calls * 1.0 + whatsapp * 0.5 - failed incoming * 0.2
    revenue_per_lead, revenue_per_effort, avg_ticket
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Sequence

from arena.records import CommercialStats, SaleRecord

EFFORT_WEIGHTS = {
    "calls_outgoing": 1.0,
    "whatsapp_answered": 0.5,
    "calls_incoming_failed": -0.2,
}


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Zero-safe division."""
    if denominator == 0:
        return default
    return numerator / denominator


def win_rate(won: int, lost: int) -> int:
    """Integer percentage of closed deals that were won, 0 when none closed.

    Rounds half up (12.5 -> 13), not to even.
    """
    if won + lost == 0:
        return 0
    pct = Decimal(won * 100) / Decimal(won + lost)
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _group_by_agent(records: Sequence[SaleRecord]) -> Dict[str, List[SaleRecord]]:
    groups: Dict[str, List[SaleRecord]] = {}
    for record in records:
        groups.setdefault(record.agent, []).append(record)
    return groups


def _stats_for(agent: str, records: List[SaleRecord]) -> CommercialStats:
    won = [r for r in records if r.is_won]
    lost_count = sum(1 for r in records if r.is_lost)
    timed = [r.days_to_close for r in won if r.days_to_close is not None]

    return CommercialStats(
        agent_name=agent,
        total_revenue=sum(r.revenue for r in won),
        won_count=len(won),
        lost_count=lost_count,
        open_count=len(records) - len(won) - lost_count,
        lead_count=len(records),
        win_rate=win_rate(len(won), lost_count),
        avg_days_to_close=safe_div(sum(timed), len(timed)),
    )


def aggregate_by_agent(records: Sequence[SaleRecord]) -> List[CommercialStats]:
    """One CommercialStats per agent present in ``records``, first-seen order."""
    return [_stats_for(agent, group) for agent, group in _group_by_agent(records).items()]


def effort_score(record: SaleRecord) -> float:
    return sum(getattr(record, attr) * weight for attr, weight in EFFORT_WEIGHTS.items())


def efficiency_by_agent(records: Sequence[SaleRecord]) -> List[Dict[str, Any]]:
    """Effort vs result per agent, sorted by revenue descending."""
    rows = []
    for agent, group in _group_by_agent(records).items():
        leads = len(group)
        won = [r for r in group if r.is_won]
        lost = sum(1 for r in group if r.is_lost)
        revenue = sum(r.revenue for r in won)
        calls = sum(r.calls_outgoing for r in group)
        whatsapp = sum(r.whatsapp_answered for r in group)
        failed = sum(r.calls_incoming_failed for r in group)
        score = sum(effort_score(r) for r in group)

        rows.append({
            "agent": agent,
            "leads": leads,
            "won": len(won),
            "lost": lost,
            "revenue": revenue,
            "calls": calls,
            "whatsapp": whatsapp,
            "failed_calls": failed,
            "win_rate": win_rate(len(won), lost),
            "avg_ticket": safe_div(revenue, len(won)),
            "effort_per_lead": safe_div(calls + whatsapp, leads),
            "revenue_per_lead": safe_div(revenue, leads),
            "effort_score": score,
            "avg_effort_score": safe_div(score, leads),
            "revenue_per_effort": safe_div(revenue, score) if score > 0 else 0.0,
        })
    rows.sort(key=lambda r: r["revenue"], reverse=True)
    return rows


def team_summary(records: Sequence[SaleRecord]) -> Dict[str, Any]:
    """Headline numbers for the whole filtered view."""
    total = len(records)
    won = [r for r in records if r.is_won]
    lost = sum(1 for r in records if r.is_lost)
    revenue = sum(r.revenue for r in won)
    timed = [r.days_to_close for r in won if r.days_to_close is not None]
    actions = sum(r.calls_outgoing + r.whatsapp_answered for r in records)

    return {
        "total_leads": total,
        "won_count": len(won),
        "lost_count": lost,
        "open_count": total - len(won) - lost,
        "total_revenue": revenue,
        "avg_ticket": safe_div(revenue, len(won)),
        "avg_days_to_close": safe_div(sum(timed), len(timed)),
        "win_rate": win_rate(len(won), lost),
        "conversion_rate": safe_div(len(won) * 100.0, total),
        "avg_effort": safe_div(actions, total),
    }
