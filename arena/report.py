"""
Sales Arena — One-shot Report
===============================

Fetches the sheet once and prints the ranking, podium and KPIs for a period.

Usage:
    python -m arena.report                          # current month, resolution anchor
    python -m arena.report --period last_7_days
    python -m arena.report --start 2025-03-01 --end 2025-03-15 --anchor registration
    python -m arena.report --file export.csv --json
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from arena.aggregation import aggregate_by_agent
from arena.fetcher import build_snapshot, parse_csv
from arena.filters import AnchorDate, apply_filters, build_filter_state
from arena.lib.config import ArenaSettings, load_settings
from arena.lib.errors import ArenaError, DataFetchError
from arena.lib.logger import setup_logger
from arena.ranking import arena_kpis, podium, rank_agents
from integrations.google_sheets import GoogleSheetsExport

logger = setup_logger("report")


def build_report(
    csv_text: str,
    settings: ArenaSettings,
    filters: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Ranking, podium and KPIs for one CSV export."""
    now = now or datetime.now()
    snapshot = build_snapshot(parse_csv(csv_text), fetched_at=now)
    state = build_filter_state(
        filters or {}, now=now, default_anchor=AnchorDate.parse(settings.date_anchor),
    )
    ranked = rank_agents(aggregate_by_agent(apply_filters(snapshot.records, state)))

    return {
        "generated_at": now.isoformat(),
        "record_count": len(snapshot),
        "filters": state.as_dict(),
        "ranking": [
            {"rank": i, **vars(s)} for i, s in enumerate(ranked, start=1)
        ],
        "podium": [s.agent_name for s in podium(ranked)],
        "kpis": arena_kpis(ranked, settings.team_monthly_goal),
    }


def render_text(report: Dict[str, Any]) -> str:
    kpis = report["kpis"]
    interval = report["filters"]["interval"]
    lines = [
        "SALES ARENA",
        f"Period: {interval.get('start') or '-'} -> {interval.get('end') or '-'}"
        f"  (anchor: {report['filters']['anchor']})",
        f"Records in snapshot: {report['record_count']}",
        "",
        f"Revenue: {kpis['total_revenue']:,.2f} / {kpis['goal']:,.2f}"
        f"  ({kpis['goal_progress']}%)",
        f"Sales: {kpis['total_sales']}",
        f"Leader: {kpis['top_performer'] or '-'}",
        "",
        "Podium: " + " | ".join(
            f"{place}. {name}" for place, name in enumerate(report["podium"], start=1)
        ),
        "",
        f"{'#':>3}  {'Agent':<24} {'Revenue':>12} {'Won':>5} {'Lost':>5} {'Open':>5} {'Win%':>5}",
    ]
    for row in report["ranking"]:
        lines.append(
            f"{row['rank']:>3}  {row['agent_name'][:24]:<24} {row['total_revenue']:>12,.2f} "
            f"{row['won_count']:>5} {row['lost_count']:>5} {row['open_count']:>5} {row['win_rate']:>5}"
        )
    return "\n".join(lines)


async def _fetch(settings: ArenaSettings) -> str:
    return await GoogleSheetsExport.from_settings(settings).fetch_csv()


def _read_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DataFetchError(f"Cannot read CSV export {path}: {e}", source=str(path))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Print the sales arena ranking")
    parser.add_argument(
        "--period", type=str, default=None,
        help="today, yesterday, last_7_days, last_30_days, week, month, year, all",
    )
    parser.add_argument("--start", type=str, default=None, help="Custom range start (YYYY-MM-DD)")
    parser.add_argument("--end", type=str, default=None, help="Custom range end (YYYY-MM-DD)")
    parser.add_argument(
        "--anchor", type=str, default=None,
        help="Date that places a record in the period: registration or resolution",
    )
    parser.add_argument(
        "--file", type=Path, default=None,
        help="Read a local CSV export instead of fetching the sheet",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    try:
        settings = load_settings()
        if args.file:
            csv_text = _read_file(args.file)
        else:
            csv_text = asyncio.run(_fetch(settings))
        report = build_report(csv_text, settings, filters={
            "period": args.period, "start": args.start,
            "end": args.end, "anchor": args.anchor,
        })
    except ArenaError as e:
        logger.error("Report failed: %s", e)
        return 1

    if args.json:
        print(json.dumps(report, indent=2, default=str, ensure_ascii=False))
    else:
        print(render_text(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
