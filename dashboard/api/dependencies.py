"""
Sales Arena — Router Dependencies
===================================

Shared FastAPI dependencies: the snapshot store wired in by the lifespan,
the current snapshot (503 while the first fetch is pending) and the
per-request FilterState built from query parameters.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException, Query, Request

from arena.fetcher import SnapshotStore
from arena.filters import AnchorDate, FilterState, build_filter_state
from arena.lib.config import ArenaSettings
from arena.lib.errors import ConfigError
from arena.records import Snapshot


def get_settings(request: Request) -> ArenaSettings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise RuntimeError("ArenaSettings not attached to app.state")
    return settings


def get_store(request: Request) -> SnapshotStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("SnapshotStore not attached to app.state")
    return store


def current_snapshot(request: Request) -> Snapshot:
    """The published snapshot, or 503 until the first fetch succeeds."""
    store = get_store(request)
    if store.loading:
        raise HTTPException(status_code=503, detail="Data is loading, first fetch pending")
    return store.snapshot


def _now(request: Request) -> datetime:
    clock = getattr(request.app.state, "clock", None) or datetime.now
    return clock()


def _joined(values: Optional[List[str]]) -> Optional[str]:
    if not values:
        return None
    return ",".join(values)


def _filter_state(request: Request, raw: dict, default_anchor: AnchorDate) -> FilterState:
    try:
        return build_filter_state(raw, now=_now(request), default_anchor=default_anchor)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _raw_filters(period, start, end, anchor, agent, source, location, status, stage, solution) -> dict:
    return {
        "period": period,
        "start": start,
        "end": end,
        "anchor": anchor,
        "agent": _joined(agent),
        "source": _joined(source),
        "location": _joined(location),
        "status": _joined(status),
        "stage": _joined(stage),
        "solution": _joined(solution),
    }


def arena_filters(
    request: Request,
    period: Optional[str] = Query(None, description="today, yesterday, last_7_days, last_30_days, week, month, year, all, custom"),
    start: Optional[str] = Query(None, description="Custom range start (YYYY-MM-DD)"),
    end: Optional[str] = Query(None, description="Custom range end (YYYY-MM-DD)"),
    anchor: Optional[str] = Query(None, description="registration or resolution"),
    agent: Optional[List[str]] = Query(None),
    source: Optional[List[str]] = Query(None),
    location: Optional[List[str]] = Query(None),
    status: Optional[List[str]] = Query(None),
    stage: Optional[List[str]] = Query(None),
    solution: Optional[List[str]] = Query(None),
) -> FilterState:
    """Filters for the leaderboard views; anchor defaults to DATE_ANCHOR."""
    default_anchor = AnchorDate.parse(get_settings(request).date_anchor)
    raw = _raw_filters(period, start, end, anchor, agent, source, location, status, stage, solution)
    return _filter_state(request, raw, default_anchor)


def analytics_filters(
    request: Request,
    period: Optional[str] = Query(None),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    anchor: Optional[str] = Query(None),
    agent: Optional[List[str]] = Query(None),
    source: Optional[List[str]] = Query(None),
    location: Optional[List[str]] = Query(None),
    status: Optional[List[str]] = Query(None),
    stage: Optional[List[str]] = Query(None),
    solution: Optional[List[str]] = Query(None),
) -> FilterState:
    """Filters for the analytics views; anchor defaults to registration date."""
    raw = _raw_filters(period, start, end, anchor, agent, source, location, status, stage, solution)
    return _filter_state(request, raw, AnchorDate.REGISTRATION)
