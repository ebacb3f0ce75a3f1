"""
Sales Arena — Record Normalizer
=================================

Turns one raw sheet row (column label -> cell text) into a SaleRecord.

The sheet is maintained by hand in Spanish, so the same column can appear
under several spellings (with and without diacritics) and even twice. Every
field is read through COLUMN_ALIASES and the first non-empty alias wins.

Normalization never raises: a malformed cell degrades to a safe default
(zero for numbers, "Unknown" for categorical facets, the current time for
the registration date). The only rejection is a row whose derived id is
empty, which the fetcher drops from the snapshot.
"""
from __future__ import annotations

import hashlib
import math
import re
from datetime import datetime
from typing import Dict, Mapping, Optional, Tuple

from arena.lib.logger import setup_logger
from arena.records import UNASSIGNED, UNKNOWN, SaleRecord, SaleStatus

logger = setup_logger("normalizer")

# ---------------------------------------------------------------------------
# Column mapping
# ---------------------------------------------------------------------------

COLUMN_ALIASES: Dict[str, Tuple[str, ...]] = {
    "id": ("ID contacto",),
    "location": ("Ubicacion", "Ubicación"),
    "registration_date": ("Fecha Registro",),
    "client_name": ("Nombre completo",),
    "phone": ("teléfono", "Teléfono", "telefono"),
    "solution": ("Solucion", "Solución"),
    "status": ("Estado",),
    "attribution": ("Atribucion", "Atribución"),
    "agent": ("Comercial",),
    "stage": ("Etapa",),
    "resolution_date": ("Fecha ganado/perdido",),
    "days_to_close": ("Tiempo en ganarse (dias)", "Tiempo en ganarse (días)"),
    "calls_outgoing": ("Nº de llamadas salientes",),
    "calls_incoming_failed": ("Nº de llamadas entrantes (fallidas)",),
    "whatsapp_answered": ("Nº de whatsapp contestados",),
    "call_duration": ("Duración llamada", "Duracion llamada"),
    "loss_reason": ("Motivo perdida", "Motivo pérdida"),
    "revenue": ("Ingresos",),
}

STATUS_LABELS = {
    "ganado": SaleStatus.WON,
    "perdido": SaleStatus.LOST,
}

_SLASH_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
)

_NUMERIC_JUNK = re.compile(r"[^\d.,-]")


# ---------------------------------------------------------------------------
# Cell parsers
# ---------------------------------------------------------------------------

def first_value(row: Mapping[str, Optional[str]], field: str) -> str:
    """Return the first non-empty cell among the aliases of ``field``."""
    for label in COLUMN_ALIASES[field]:
        value = row.get(label)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def _parse_iso(value: str) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            # Sheet dates are wall-clock; keep everything naive local time
            parsed = parsed.astimezone().replace(tzinfo=None)
    except (ValueError, OverflowError):
        return None
    return parsed


def _parse_slashed(value: str) -> Optional[datetime]:
    for fmt in _SLASH_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_date(value: Optional[str], fallback: Optional[datetime] = None) -> Optional[datetime]:
    """Parse ``YYYY-MM-DD[...]`` or ``D/M/YYYY[ H:mm[:ss]]``.

    ISO is tried first; a date-only ISO value lands on midnight. Anything
    else returns ``fallback``.
    """
    if not value or not value.strip():
        return fallback
    text = " ".join(value.split())
    parsed = _parse_iso(text) or _parse_slashed(text)
    if parsed is None:
        logger.debug("Unparseable date %r, using fallback", value)
        return fallback
    return parsed


def parse_currency(value: Optional[str]) -> float:
    """Parse a locale-formatted amount like ``"1.200,50 €"`` or ``"5900"``.

    Both ``.`` and ``,`` present: European grouping, dots are thousands and
    the comma is the decimal point. Only ``,``: the comma is the decimal
    point. Only one ``.``: it is the decimal point. Several dots and no
    comma: the dots are thousands separators. Unparseable or non-finite
    input is 0.
    """
    if not value:
        return 0.0
    cleaned = _NUMERIC_JUNK.sub("", str(value))

    if "," in cleaned and "." in cleaned:
        normalized = cleaned.replace(".", "").replace(",", ".", 1)
    elif "," in cleaned:
        normalized = cleaned.replace(",", ".", 1)
    elif cleaned.count(".") > 1:
        normalized = cleaned.replace(".", "")
    else:
        normalized = cleaned

    try:
        amount = float(normalized)
    except ValueError:
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def parse_count(value: Optional[str]) -> float:
    """Non-negative counter; blanks and garbage are 0."""
    return max(parse_currency(value), 0.0)


def parse_duration(value: Optional[str]) -> float:
    """Call duration in seconds from ``H:MM:SS``, ``MM:SS`` or a plain number."""
    if not value:
        return 0.0
    text = value.strip()
    if ":" not in text:
        return parse_count(text)
    seconds = 0.0
    try:
        for part in text.split(":"):
            seconds = seconds * 60 + float(part or 0)
    except ValueError:
        logger.debug("Unparseable duration %r", value)
        return 0.0
    if not math.isfinite(seconds):
        return 0.0
    return max(seconds, 0.0)


def parse_status(value: Optional[str]) -> SaleStatus:
    return STATUS_LABELS.get((value or "").strip().lower(), SaleStatus.OPEN)


def derive_id(row: Mapping[str, Optional[str]]) -> str:
    """Natural key (``ID contacto``) or a content hash of the non-empty cells.

    Returns "" for a row without any content.
    """
    natural = first_value(row, "id")
    if natural:
        return natural

    cells = sorted(
        (str(k), str(v).strip())
        for k, v in row.items()
        if k is not None and v is not None and str(v).strip()
    )
    if not cells:
        return ""
    digest = hashlib.sha1(
        "\x1f".join(f"{k}={v}" for k, v in cells).encode("utf-8")
    ).hexdigest()
    return f"row-{digest[:16]}"


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------

def normalize_row(row: Mapping[str, Optional[str]], now: Optional[datetime] = None) -> SaleRecord:
    """Build a SaleRecord from one raw row. Never raises."""
    now = now or datetime.now()
    status = parse_status(first_value(row, "status"))

    revenue = 0.0
    if status is SaleStatus.WON:
        revenue = max(parse_currency(first_value(row, "revenue")), 0.0)

    resolution_date = None
    if status is not SaleStatus.OPEN:
        resolution_date = parse_date(first_value(row, "resolution_date"))

    days_to_close = None
    raw_days = first_value(row, "days_to_close")
    if status is SaleStatus.WON and raw_days:
        parsed_days = parse_currency(raw_days)
        if parsed_days >= 0:
            days_to_close = parsed_days

    return SaleRecord(
        id=derive_id(row),
        agent=first_value(row, "agent") or UNASSIGNED,
        status=status,
        stage=first_value(row, "stage"),
        revenue=revenue,
        registration_date=parse_date(first_value(row, "registration_date"), fallback=now),
        resolution_date=resolution_date,
        days_to_close=days_to_close,
        attribution=first_value(row, "attribution") or UNKNOWN,
        location=first_value(row, "location") or UNKNOWN,
        solution=first_value(row, "solution") or UNKNOWN,
        loss_reason=first_value(row, "loss_reason") or UNKNOWN,
        client_name=first_value(row, "client_name"),
        phone=first_value(row, "phone"),
        calls_outgoing=parse_count(first_value(row, "calls_outgoing")),
        calls_incoming_failed=parse_count(first_value(row, "calls_incoming_failed")),
        whatsapp_answered=parse_count(first_value(row, "whatsapp_answered")),
        call_duration=parse_duration(first_value(row, "call_duration")),
    )
