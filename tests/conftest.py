"""Shared fixtures for the Sales Arena tests."""

import os
from datetime import datetime

import pytest

# Keep test runs from writing daily log files
os.environ.setdefault("LOG_TO_FILE", "false")

from arena.records import SaleRecord, SaleStatus  # noqa: E402

NOW = datetime(2025, 3, 15, 12, 0, 0)

SAMPLE_CSV = (
    "ID contacto,Comercial,Estado,Etapa,Fecha Registro,Fecha ganado/perdido,Ingresos,"
    "Atribucion,Ubicación,Solución,Motivo perdida,Tiempo en ganarse (dias),"
    "Nº de llamadas salientes,Nº de whatsapp contestados,Nº de llamadas entrantes (fallidas)\n"
    "1,Ana,Ganado,Cierre,2025-03-01,10/03/2025 10:30:00,\"1.200,50 €\",Meta,Madrid,Solar,,9,5,2,1\n"
    "2,Ana,Perdido,Negociación,2025-03-02,12/03/2025,,Google,Madrid,Solar,Precio,,3,1,0\n"
    "3,Luis,Ganado,Cierre,2025-03-03,14/03/2025 09:00,800,Meta,Sevilla,Baterías,,,2,4,0\n"
    "4,Luis,Abierto,Primer contacto,2025-03-10,,,Google,Sevilla,Solar,,,7,3,0\n"
    "\n"
    "5,,Ganado,Cierre,2025-02-20,01/03/2025,300,,,,,2,0,0,0\n"
)


def _make_record(
    id="r1",
    agent="Ana",
    status=SaleStatus.WON,
    revenue=0.0,
    registration_date=datetime(2025, 3, 1),
    resolution_date=None,
    **kwargs,
) -> SaleRecord:
    """SaleRecord with sensible defaults; Won records get revenue only when asked."""
    if status is SaleStatus.WON and resolution_date is None:
        resolution_date = datetime(2025, 3, 10)
    return SaleRecord(
        id=id,
        agent=agent,
        status=status,
        revenue=revenue if status is SaleStatus.WON else 0.0,
        registration_date=registration_date,
        resolution_date=resolution_date,
        **kwargs,
    )


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def records():
    """Two agents, mixed statuses, all inside March 2025."""
    return [
        _make_record("1", "Ana", SaleStatus.WON, 1200.0, days_to_close=9.0,
                     attribution="Meta", location="Madrid", solution="Solar", stage="Cierre",
                     calls_outgoing=5, whatsapp_answered=2, calls_incoming_failed=1),
        _make_record("2", "Ana", SaleStatus.LOST, registration_date=datetime(2025, 3, 2),
                     resolution_date=datetime(2025, 3, 12), attribution="Google",
                     location="Madrid", solution="Solar", stage="Negociación",
                     loss_reason="Precio", calls_outgoing=3, whatsapp_answered=1),
        _make_record("3", "Luis", SaleStatus.WON, 800.0, registration_date=datetime(2025, 3, 3),
                     resolution_date=datetime(2025, 3, 14), attribution="Meta",
                     location="Sevilla", solution="Baterías", stage="Cierre",
                     calls_outgoing=2, whatsapp_answered=4),
        _make_record("4", "Luis", SaleStatus.OPEN, registration_date=datetime(2025, 3, 10),
                     attribution="Google", location="Sevilla", solution="Solar",
                     stage="Primer contacto", calls_outgoing=7, whatsapp_answered=3),
    ]
