"""
Sales Arena configuration.

All settings come from environment variables (a project-level .env is loaded
on import) and are validated once into a frozen ArenaSettings. Anything
invalid raises ConfigError so a misconfigured deployment fails at startup
instead of silently polling the wrong thing.

Environment:
    SHEET_CSV_URL          full CSV export URL (takes precedence)
    SHEET_ID / SHEET_GID   Google Sheet id and tab gid (gid defaults to 0)
    REFRESH_INTERVAL_MS    polling interval, default 10000
    TEAM_MONTHLY_GOAL      revenue goal for the KPI cards, default 50000
    DATE_ANCHOR            "resolution" (default) or "registration"
    HTTP_TIMEOUT_SECONDS   transport timeout, default 30
    DASHBOARD_PORT         API port, default 8001
    CORS_ORIGINS           comma-separated origins
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from arena.lib.errors import ConfigError

BASE_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(BASE_DIR / ".env")

DEFAULT_SHEET_ID = "17OzrRnZaNo36bIwU48OirJCgtgD5cX-taAjL07vB0c8"

DEFAULT_CONFIG = {
    "refresh_interval_ms": 10_000,
    "team_monthly_goal": 50_000.0,
    "date_anchor": "resolution",
    "http_timeout_seconds": 30.0,
    "dashboard_port": 8001,
    "cors_origins": "http://localhost:3000,http://localhost:8001",
}

# 1s floor: anything faster hammers the export endpoint for no fresher data
MIN_REFRESH_INTERVAL_MS = 1_000

VALID_ANCHORS = ("registration", "resolution")


@dataclass(frozen=True)
class ArenaSettings:
    sheet_id: str = DEFAULT_SHEET_ID
    sheet_gid: str = "0"
    sheet_csv_url: Optional[str] = None
    refresh_interval_ms: int = DEFAULT_CONFIG["refresh_interval_ms"]
    team_monthly_goal: float = DEFAULT_CONFIG["team_monthly_goal"]
    date_anchor: str = DEFAULT_CONFIG["date_anchor"]
    http_timeout_seconds: float = DEFAULT_CONFIG["http_timeout_seconds"]
    dashboard_port: int = DEFAULT_CONFIG["dashboard_port"]
    cors_origins: List[str] = field(
        default_factory=lambda: DEFAULT_CONFIG["cors_origins"].split(",")
    )

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_ms / 1000.0

    def validate(self) -> "ArenaSettings":
        if not (self.sheet_csv_url or self.sheet_id):
            raise ConfigError("Either SHEET_CSV_URL or SHEET_ID must be set", "SHEET_ID")
        if self.refresh_interval_ms < MIN_REFRESH_INTERVAL_MS:
            raise ConfigError(
                f"REFRESH_INTERVAL_MS must be >= {MIN_REFRESH_INTERVAL_MS}, "
                f"got {self.refresh_interval_ms}",
                "REFRESH_INTERVAL_MS",
            )
        if self.team_monthly_goal <= 0:
            raise ConfigError("TEAM_MONTHLY_GOAL must be positive", "TEAM_MONTHLY_GOAL")
        if self.date_anchor not in VALID_ANCHORS:
            raise ConfigError(
                f"DATE_ANCHOR must be one of {VALID_ANCHORS}, got {self.date_anchor!r}",
                "DATE_ANCHOR",
            )
        if self.http_timeout_seconds <= 0:
            raise ConfigError("HTTP_TIMEOUT_SECONDS must be positive", "HTTP_TIMEOUT_SECONDS")
        return self


def _env_number(env: Mapping[str, str], key: str, cast, default):
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be numeric, got {raw!r}", key)


def load_settings(env: Optional[Mapping[str, str]] = None) -> ArenaSettings:
    """Build validated settings from the environment (or an explicit mapping)."""
    env = os.environ if env is None else env

    origins = env.get("CORS_ORIGINS") or DEFAULT_CONFIG["cors_origins"]

    settings = ArenaSettings(
        sheet_id=(env.get("SHEET_ID") or DEFAULT_SHEET_ID).strip(),
        sheet_gid=(env.get("SHEET_GID") or "0").strip(),
        sheet_csv_url=(env.get("SHEET_CSV_URL") or "").strip() or None,
        refresh_interval_ms=_env_number(
            env, "REFRESH_INTERVAL_MS", int, DEFAULT_CONFIG["refresh_interval_ms"]
        ),
        team_monthly_goal=_env_number(
            env, "TEAM_MONTHLY_GOAL", float, DEFAULT_CONFIG["team_monthly_goal"]
        ),
        date_anchor=(env.get("DATE_ANCHOR") or DEFAULT_CONFIG["date_anchor"]).strip().lower(),
        http_timeout_seconds=_env_number(
            env, "HTTP_TIMEOUT_SECONDS", float, DEFAULT_CONFIG["http_timeout_seconds"]
        ),
        dashboard_port=_env_number(
            env, "DASHBOARD_PORT", int, DEFAULT_CONFIG["dashboard_port"]
        ),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )
    return settings.validate()
