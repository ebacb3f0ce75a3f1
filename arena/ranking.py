"""
Sales Arena — Ranker
======================

Orders CommercialStats for the leaderboard and builds the fixed-size podium.

Sort keys, all descending: total_revenue, won_count, win_rate. Python's
sort is stable, so agents tied on all three keep their input order.
"""
from __future__ import annotations

from typing import Any, Dict, List, Sequence

from arena.records import CommercialStats

PODIUM_SIZE = 3


def rank_key(stats: CommercialStats):
    return (-stats.total_revenue, -stats.won_count, -stats.win_rate)


def rank_agents(stats: Sequence[CommercialStats]) -> List[CommercialStats]:
    """Strict rank order, best first."""
    return sorted(stats, key=rank_key)


def podium(ranked: Sequence[CommercialStats], size: int = PODIUM_SIZE) -> List[CommercialStats]:
    """Top ``size`` entries of an already ranked list, padded with placeholders."""
    top = list(ranked[:size])
    while len(top) < size:
        top.append(CommercialStats.placeholder())
    return top


def arena_kpis(ranked: Sequence[CommercialStats], goal: float) -> Dict[str, Any]:
    """Team totals, goal progress (capped at 100) and the current leader."""
    total_revenue = sum(s.total_revenue for s in ranked)
    total_sales = sum(s.won_count for s in ranked)
    progress = min(total_revenue / goal * 100, 100.0) if goal > 0 else 0.0
    leader = ranked[0] if ranked else None

    return {
        "total_revenue": total_revenue,
        "total_sales": total_sales,
        "goal": goal,
        "goal_progress": round(progress, 1),
        "top_performer": leader.agent_name if leader else None,
        "top_performer_revenue": leader.total_revenue if leader else 0.0,
    }
