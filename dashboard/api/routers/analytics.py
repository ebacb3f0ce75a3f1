"""
Sales Arena — Analytics Router
================================
Secondary breakdowns over the current snapshot. Filtered views anchor on
registration date unless ``anchor`` is given.

Endpoints:
  GET /api/analytics/summary             - Team headline numbers
  GET /api/analytics/efficiency          - Effort vs result per agent
  GET /api/analytics/breakdown/{facet}   - Per-facet performance (+ source/status matrix)
  GET /api/analytics/funnel              - Records per pipeline stage
  GET /api/analytics/loss-reasons        - Lost deals by reason
  GET /api/analytics/time-to-close       - Days-to-close histogram + per-agent averages
  GET /api/analytics/evolution           - Daily leads, wins and revenue
  GET /api/analytics/priority-leads      - Open leads with the most outreach
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from arena.aggregation import efficiency_by_agent, team_summary
from arena.breakdowns import (
    avg_days_by_agent,
    daily_evolution,
    days_to_close_histogram,
    facet_breakdown,
    loss_reasons,
    priority_leads,
    source_status_matrix,
    stage_funnel,
)
from arena.filters import Facet, FilterState, apply_filters
from arena.lib.errors import ConfigError
from arena.records import Snapshot
from dashboard.api.dependencies import analytics_filters, current_snapshot
from models.arena_models import SaleRecordResponse

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/summary")
async def summary(
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(analytics_filters),
):
    records = apply_filters(snapshot.records, filters)
    return {"filters": filters.as_dict(), **team_summary(records)}


@router.get("/efficiency")
async def efficiency(
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(analytics_filters),
):
    rows = efficiency_by_agent(apply_filters(snapshot.records, filters))
    return {"filters": filters.as_dict(), "count": len(rows), "results": rows}


@router.get("/breakdown/{facet}")
async def breakdown(
    facet: str,
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(analytics_filters),
):
    """Leads, wins, revenue and lead-to-sale conversion per facet value."""
    try:
        selected = Facet.parse(facet)
    except ConfigError as e:
        raise HTTPException(status_code=404, detail=str(e))

    records = apply_filters(snapshot.records, filters)
    result = {
        "filters": filters.as_dict(),
        "facet": selected.value,
        "results": facet_breakdown(records, selected),
    }
    if selected is Facet.SOURCE:
        result["status_matrix"] = source_status_matrix(records)
    return result


@router.get("/funnel")
async def funnel(
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(analytics_filters),
):
    records = apply_filters(snapshot.records, filters)
    return {"filters": filters.as_dict(), "stages": stage_funnel(records)}


@router.get("/loss-reasons")
async def lost_deals(
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(analytics_filters),
):
    records = apply_filters(snapshot.records, filters)
    return {"filters": filters.as_dict(), "results": loss_reasons(records)}


@router.get("/time-to-close")
async def time_to_close(
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(analytics_filters),
):
    records = apply_filters(snapshot.records, filters)
    return {
        "filters": filters.as_dict(),
        "histogram": days_to_close_histogram(records),
        "by_agent": avg_days_by_agent(records),
    }


@router.get("/evolution")
async def evolution(
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(analytics_filters),
):
    records = apply_filters(snapshot.records, filters)
    return {"filters": filters.as_dict(), "days": daily_evolution(records)}


@router.get("/priority-leads")
async def open_priorities(
    limit: int = Query(10, ge=1, le=100),
    snapshot: Snapshot = Depends(current_snapshot),
    filters: FilterState = Depends(analytics_filters),
):
    leads = priority_leads(apply_filters(snapshot.records, filters), limit=limit)
    return {
        "filters": filters.as_dict(),
        "count": len(leads),
        "results": [SaleRecordResponse.model_validate(r) for r in leads],
    }
