"""
Sales Arena — Domain Records
==============================

Typed, immutable records shared by every pipeline stage.

    SaleRecord       one normalized sheet row (a lead or a sale)
    Snapshot         the ordered records of one successful fetch
    CommercialStats  per-agent aggregate produced by the aggregation pass
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

UNASSIGNED = "Unassigned"
UNKNOWN = "Unknown"
PLACEHOLDER_NAME = "-"


class SaleStatus(str, Enum):
    WON = "Won"
    LOST = "Lost"
    OPEN = "Open"


@dataclass(frozen=True)
class SaleRecord:
    """A single normalized lead/sale row."""
    id: str
    agent: str
    status: SaleStatus
    registration_date: datetime
    stage: str = ""
    revenue: float = 0.0
    resolution_date: Optional[datetime] = None
    days_to_close: Optional[float] = None
    attribution: str = UNKNOWN
    location: str = UNKNOWN
    solution: str = UNKNOWN
    loss_reason: str = UNKNOWN
    client_name: str = ""
    phone: str = ""
    calls_outgoing: float = 0
    calls_incoming_failed: float = 0
    whatsapp_answered: float = 0
    call_duration: float = 0

    @property
    def is_won(self) -> bool:
        return self.status is SaleStatus.WON

    @property
    def is_lost(self) -> bool:
        return self.status is SaleStatus.LOST

    @property
    def is_open(self) -> bool:
        return self.status is SaleStatus.OPEN


@dataclass(frozen=True)
class Snapshot:
    """Records of the most recent successful fetch, in sheet order."""
    records: Tuple[SaleRecord, ...]
    fetched_at: datetime

    def __len__(self) -> int:
        return len(self.records)

    def ids(self) -> frozenset:
        return frozenset(r.id for r in self.records)


@dataclass(frozen=True)
class CommercialStats:
    """Per-agent performance over one filtered view."""
    agent_name: str
    total_revenue: float = 0.0
    won_count: int = 0
    lost_count: int = 0
    open_count: int = 0
    lead_count: int = 0
    win_rate: int = 0
    avg_days_to_close: float = 0.0

    @classmethod
    def placeholder(cls) -> "CommercialStats":
        """Podium filler for ranks nobody occupies."""
        return cls(agent_name=PLACEHOLDER_NAME)

    @property
    def is_placeholder(self) -> bool:
        return self.agent_name == PLACEHOLDER_NAME and self.lead_count == 0
