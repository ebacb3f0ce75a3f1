"""
Sales Arena — Filter Engine
=============================

Applies a FilterState (date interval + facet selections + anchor-date
policy) to a snapshot and lists the selectable values per facet.

Anchor-date policy is explicit because it changes the numbers:

    registration  leads funnel: a record belongs to the period in which
                  the lead entered the pipeline.
    resolution    won-revenue ranking: a record belongs to the period in
                  which it was won or lost. Open records, and closed
                  records without a resolution date, are excluded.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from arena.lib.errors import ConfigError
from arena.periods import DateInterval, Period, default_interval, resolve_period
from arena.records import SaleRecord


class AnchorDate(str, Enum):
    REGISTRATION = "registration"
    RESOLUTION = "resolution"

    @classmethod
    def parse(cls, value) -> "AnchorDate":
        if isinstance(value, AnchorDate):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ConfigError(f"Unknown date anchor: {value!r}", "anchor")


class Facet(str, Enum):
    AGENT = "agent"
    SOURCE = "source"
    LOCATION = "location"
    STATUS = "status"
    STAGE = "stage"
    SOLUTION = "solution"

    @classmethod
    def parse(cls, value) -> "Facet":
        if isinstance(value, Facet):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ConfigError(f"Unknown facet: {value!r}", "facet")


def facet_value(record: SaleRecord, facet: Facet) -> str:
    """The string a record exposes for ``facet``."""
    if facet is Facet.AGENT:
        return record.agent
    if facet is Facet.SOURCE:
        return record.attribution
    if facet is Facet.LOCATION:
        return record.location
    if facet is Facet.STATUS:
        return record.status.value
    if facet is Facet.STAGE:
        return record.stage
    return record.solution


def anchor_date(record: SaleRecord, anchor: AnchorDate) -> Optional[datetime]:
    """Date used for interval membership, or None when the record is excluded."""
    if anchor is AnchorDate.REGISTRATION:
        return record.registration_date
    if record.is_open:
        return None
    return record.resolution_date


@dataclass(frozen=True)
class FilterState:
    """Active date interval and facet selections. Empty selection = all values."""
    interval: DateInterval = field(default_factory=DateInterval)
    selections: Mapping[Facet, FrozenSet[str]] = field(default_factory=dict)
    anchor: AnchorDate = AnchorDate.REGISTRATION

    def selected(self, facet: Facet) -> FrozenSet[str]:
        return self.selections.get(facet, frozenset())

    def with_selection(self, facet: Facet, values: Iterable[str]) -> "FilterState":
        selections = dict(self.selections)
        selections[Facet.parse(facet)] = frozenset(v for v in values if v)
        return FilterState(interval=self.interval, selections=selections, anchor=self.anchor)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "interval": self.interval.as_dict(),
            "anchor": self.anchor.value,
            "selections": {
                f.value: sorted(self.selected(f)) for f in Facet if self.selected(f)
            },
        }


def matches(record: SaleRecord, state: FilterState) -> bool:
    if not state.interval.contains(anchor_date(record, state.anchor)):
        return False
    for facet, selected in state.selections.items():
        if selected and facet_value(record, facet) not in selected:
            return False
    return True


def apply_filters(records: Sequence[SaleRecord], state: FilterState) -> List[SaleRecord]:
    """Order-preserving subsequence of ``records`` that passes ``state``."""
    return [r for r in records if matches(r, state)]


def distinct_values(records: Iterable[SaleRecord]) -> Dict[Facet, List[str]]:
    """Sorted, de-duplicated, non-blank values per facet (for selectors)."""
    seen: Dict[Facet, set] = {facet: set() for facet in Facet}
    for record in records:
        for facet in Facet:
            value = facet_value(record, facet)
            if value and value.strip():
                seen[facet].add(value)
    return {facet: sorted(values) for facet, values in seen.items()}


# ---------------------------------------------------------------------------
# Request parameter normalization
# ---------------------------------------------------------------------------

def _as_list(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def build_filter_state(
    raw: Mapping[str, Any],
    now: Optional[datetime] = None,
    default_anchor: AnchorDate = AnchorDate.REGISTRATION,
) -> FilterState:
    """Build a FilterState from loose request parameters.

    Recognised keys: ``period``, ``start``, ``end``, ``anchor`` and one key
    per facet name holding a list or a comma-separated string. Without a
    period the current-month default range applies. Unknown keys with a
    facet-looking name are a caller bug and raise ConfigError.
    """
    known = {"period", "start", "end", "anchor"} | {f.value for f in Facet}
    unknown = [k for k, v in raw.items() if k not in known and v not in (None, "", [])]
    if unknown:
        raise ConfigError(f"Unknown filter parameters: {sorted(unknown)}", "filters")

    period = raw.get("period")
    if period:
        interval = resolve_period(
            Period.parse(period), now=now,
            custom_start=raw.get("start"), custom_end=raw.get("end"),
        )
    elif raw.get("start") or raw.get("end"):
        interval = resolve_period(
            Period.CUSTOM, now=now,
            custom_start=raw.get("start"), custom_end=raw.get("end"),
        )
    else:
        interval = default_interval(now)

    anchor = AnchorDate.parse(raw["anchor"]) if raw.get("anchor") else default_anchor

    selections = {}
    for facet in Facet:
        values = _as_list(raw.get(facet.value))
        if values:
            selections[facet] = frozenset(values)

    return FilterState(interval=interval, selections=selections, anchor=anchor)
