"""
Sales Arena — Arena Router
============================
Leaderboard endpoints over the current snapshot.

Endpoints:
  GET /api/arena/status   - Feed health (loading flag, last updated, failure streak)
  GET /api/arena/records  - Filtered records
  GET /api/arena/ranking  - Agents in rank order
  GET /api/arena/podium   - Top 3, padded with placeholders
  GET /api/arena/kpis     - Team revenue, sales, goal progress, leader
  GET /api/arena/facets   - Selectable values per facet
  GET /api/arena/ticker   - Latest won sales

Filtered endpoints anchor on DATE_ANCHOR (resolution by default) unless
``anchor`` is given.
"""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Request

from arena.aggregation import aggregate_by_agent
from arena.breakdowns import recent_wins
from arena.filters import FilterState, apply_filters, distinct_values
from arena.lib.config import ArenaSettings
from arena.lib.logger import setup_logger
from arena.ranking import arena_kpis, podium, rank_agents
from arena.records import CommercialStats, Snapshot
from dashboard.api.dependencies import arena_filters, current_snapshot, get_settings, get_store
from models.arena_models import (
    ArenaStatusResponse,
    CommercialStatsResponse,
    KpiResponse,
    PodiumResponse,
    RankedStats,
    RankingResponse,
    RecordListResponse,
    SaleRecordResponse,
)

logger = setup_logger("arena_router")

router = APIRouter(prefix="/api/arena", tags=["arena"])


def _ranked(snapshot: Snapshot, filters: FilterState) -> List[CommercialStats]:
    return rank_agents(aggregate_by_agent(apply_filters(snapshot.records, filters)))


def _stats(stats: CommercialStats) -> CommercialStatsResponse:
    return CommercialStatsResponse.model_validate(stats)


@router.get("/status", response_model=ArenaStatusResponse)
async def arena_status(request: Request, settings: ArenaSettings = Depends(get_settings)):
    """Feed health. Never 503: this is what a loading screen polls."""
    store = get_store(request)
    poller = getattr(request.app.state, "poller", None)
    source = getattr(request.app.state, "source", None)
    return ArenaStatusResponse(
        **store.status(),
        poller_running=bool(poller and poller.running),
        refresh_interval_ms=settings.refresh_interval_ms,
        source=source.get_status() if source else {},
    )


@router.get("/records", response_model=RecordListResponse)
async def list_records(
    limit: int = Query(500, ge=1, le=5000),
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(arena_filters),
):
    """Filtered records in sheet order."""
    records = apply_filters(snapshot.records, filters)
    return RecordListResponse(
        filters=filters.as_dict(),
        count=len(records),
        results=[SaleRecordResponse.model_validate(r) for r in records[:limit]],
    )


@router.get("/ranking", response_model=RankingResponse)
async def ranking(
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(arena_filters),
):
    ranked = _ranked(snapshot, filters)
    return RankingResponse(
        filters=filters.as_dict(),
        count=len(ranked),
        results=[
            RankedStats(rank=i, **_stats(s).model_dump())
            for i, s in enumerate(ranked, start=1)
        ],
    )


@router.get("/podium", response_model=PodiumResponse)
async def arena_podium(
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(arena_filters),
):
    """Exactly three entries, best first; empty ranks are placeholders."""
    top = podium(_ranked(snapshot, filters))
    return PodiumResponse(filters=filters.as_dict(), podium=[_stats(s) for s in top])


@router.get("/kpis", response_model=KpiResponse)
async def kpis(
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(arena_filters),
    settings: ArenaSettings = Depends(get_settings),
):
    result = arena_kpis(_ranked(snapshot, filters), settings.team_monthly_goal)
    return KpiResponse(filters=filters.as_dict(), **result)


@router.get("/facets")
async def facets(snapshot: Snapshot = Depends(current_snapshot)):
    """Selectable values per facet across the whole snapshot."""
    return {facet.value: values for facet, values in distinct_values(snapshot.records).items()}


@router.get("/ticker")
async def ticker(
    limit: int = Query(15, ge=1, le=100),
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(arena_filters),
):
    """Latest won sales in the filtered view, newest first."""
    wins = recent_wins(apply_filters(snapshot.records, filters), limit=limit)
    return {
        "count": len(wins),
        "results": [
            {
                "id": r.id,
                "agent": r.agent,
                "client_name": r.client_name,
                "revenue": r.revenue,
                "resolution_date": r.resolution_date,
            }
            for r in wins
        ],
    }
