"""
Sales Arena — Period Resolver
===============================

Maps a period selector to a concrete DateInterval, evaluated against "now"
on every call (nothing is cached, so "today" rolls over at midnight).

    today         start of today .. now            exact calendar-day match
    yesterday     all of yesterday                  exact calendar-day match
    last_7_days   start of (today - 6) .. end of today
    last_30_days  start of (today - 29) .. end of today
    custom        start of start date .. end of end date
    week          Monday of the ISO week .. now
    month         1st of the month .. now
    year          January 1st .. now
    all           unbounded
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional, Union

from arena.lib.errors import ConfigError
from arena.lib.logger import setup_logger

logger = setup_logger("periods")

DateLike = Union[date, datetime, str, None]


class Period(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    CUSTOM = "custom"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"

    @classmethod
    def parse(cls, value: Union[str, "Period"]) -> "Period":
        """Accept enum values, names, or the Spanish labels of the arena UI."""
        if isinstance(value, Period):
            return value
        key = (value or "").strip()
        if key.lower() in _BY_VALUE:
            return _BY_VALUE[key.lower()]
        if key.upper() in _SPANISH_LABELS:
            return _SPANISH_LABELS[key.upper()]
        raise ConfigError(f"Unknown period selector: {value!r}", "period")


_BY_VALUE = {p.value: p for p in Period}

_SPANISH_LABELS = {
    "HOY": Period.TODAY,
    "AYER": Period.YESTERDAY,
    "ÚLTIMOS 7 DÍAS": Period.LAST_7_DAYS,
    "ULTIMOS 7 DIAS": Period.LAST_7_DAYS,
    "ÚLTIMOS 30 DÍAS": Period.LAST_30_DAYS,
    "ULTIMOS 30 DIAS": Period.LAST_30_DAYS,
    "PERSONALIZADO": Period.CUSTOM,
    "SEMANA": Period.WEEK,
    "MES": Period.MONTH,
    "AÑO": Period.YEAR,
    "ANO": Period.YEAR,
    "TODO": Period.ALL,
}


@dataclass(frozen=True)
class DateInterval:
    """Closed interval; a None bound means unbounded on that side.

    When ``same_day`` is set, membership is calendar-day equality with that
    day instead of an interval test.
    """
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    same_day: Optional[date] = None

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, moment: Optional[datetime]) -> bool:
        if moment is None:
            return False
        if self.same_day is not None:
            return moment.date() == self.same_day
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True

    def as_dict(self) -> dict:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "same_day": self.same_day.isoformat() if self.same_day else None,
        }


def start_of_day(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.min)


def end_of_day(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.max)


def _as_date(value: DateLike, name: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ConfigError(f"Invalid {name} date: {value!r} (expected YYYY-MM-DD)", name)


def custom_interval(custom_start: DateLike, custom_end: DateLike) -> DateInterval:
    start = _as_date(custom_start, "start")
    end = _as_date(custom_end, "end")
    if start and end and start > end:
        raise ConfigError(f"Custom range starts after it ends: {start} > {end}", "start")
    if start is None or end is None:
        logger.warning(
            "Custom range is open-ended (start=%s, end=%s); missing bound is unrestricted",
            start, end,
        )
    return DateInterval(
        start=start_of_day(start) if start else None,
        end=end_of_day(end) if end else None,
    )


def resolve_period(
    period: Union[Period, str],
    now: Optional[datetime] = None,
    custom_start: DateLike = None,
    custom_end: DateLike = None,
) -> DateInterval:
    """Resolve ``period`` to a DateInterval anchored at ``now`` (default: current time)."""
    period = Period.parse(period)
    now = now or datetime.now()
    today = now.date()

    if period is Period.TODAY:
        return DateInterval(start=start_of_day(today), end=now, same_day=today)
    if period is Period.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return DateInterval(
            start=start_of_day(yesterday), end=end_of_day(yesterday), same_day=yesterday,
        )
    if period is Period.LAST_7_DAYS:
        return DateInterval(start=start_of_day(today - timedelta(days=6)), end=end_of_day(today))
    if period is Period.LAST_30_DAYS:
        return DateInterval(start=start_of_day(today - timedelta(days=29)), end=end_of_day(today))
    if period is Period.CUSTOM:
        return custom_interval(custom_start, custom_end)
    if period is Period.WEEK:
        return DateInterval(start=start_of_day(today - timedelta(days=today.weekday())), end=now)
    if period is Period.MONTH:
        return DateInterval(start=start_of_day(today.replace(day=1)), end=now)
    if period is Period.YEAR:
        return DateInterval(start=start_of_day(today.replace(month=1, day=1)), end=now)
    return DateInterval()


def default_interval(now: Optional[datetime] = None) -> DateInterval:
    """Dashboard default: first day of the current month through end of today."""
    now = now or datetime.now()
    return DateInterval(
        start=start_of_day(now.date().replace(day=1)),
        end=end_of_day(now),
    )
