"""
Sales Arena — API Pydantic Models
===================================

Response models for the arena and analytics routers. Domain objects are
frozen dataclasses; these models read them by attribute.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from arena.records import SaleStatus


# ─── Records ────────────────────────────────────────────────

class SaleRecordResponse(BaseModel):
    """One normalized sheet row."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    agent: str
    status: SaleStatus
    stage: str = ""
    revenue: float = 0.0
    registration_date: datetime
    resolution_date: Optional[datetime] = None
    days_to_close: Optional[float] = None
    attribution: str
    location: str
    solution: str
    loss_reason: str
    client_name: str = ""
    phone: str = ""
    calls_outgoing: float = 0
    calls_incoming_failed: float = 0
    whatsapp_answered: float = 0
    call_duration: float = 0


class RecordListResponse(BaseModel):
    filters: Dict[str, Any]
    count: int
    results: List[SaleRecordResponse] = Field(default_factory=list)


# ─── Ranking ────────────────────────────────────────────────

class CommercialStatsResponse(BaseModel):
    """Per-agent aggregate, as ranked on the leaderboard."""
    model_config = ConfigDict(from_attributes=True)

    agent_name: str
    total_revenue: float = 0.0
    won_count: int = 0
    lost_count: int = 0
    open_count: int = 0
    lead_count: int = 0
    win_rate: int = 0
    avg_days_to_close: float = 0.0
    is_placeholder: bool = False


class RankedStats(CommercialStatsResponse):
    rank: int


class RankingResponse(BaseModel):
    filters: Dict[str, Any]
    count: int
    results: List[RankedStats] = Field(default_factory=list)


class PodiumResponse(BaseModel):
    filters: Dict[str, Any]
    podium: List[CommercialStatsResponse]


class KpiResponse(BaseModel):
    filters: Dict[str, Any]
    total_revenue: float
    total_sales: int
    goal: float
    goal_progress: float
    top_performer: Optional[str] = None
    top_performer_revenue: float = 0.0


# ─── Status ─────────────────────────────────────────────────

class ArenaStatusResponse(BaseModel):
    """Feed health: loading until the first successful fetch."""
    loading: bool
    last_updated: Optional[datetime] = None
    record_count: int = 0
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    poller_running: bool = False
    refresh_interval_ms: int
    source: Dict[str, Any] = Field(default_factory=dict)
