"""
Sales Arena — Entry Point
===========================

Run: python main.py
"""

import logging
import os

from arena.lib.config import load_settings

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger("sales-arena")


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    port = settings.dashboard_port

    logger.info("=" * 60)
    logger.info("  SALES ARENA — Live Sales Leaderboard")
    logger.info("=" * 60)
    logger.info(f"  Feed        : {settings.sheet_csv_url or settings.sheet_id}")
    logger.info(f"  Refresh     : every {settings.refresh_interval_ms} ms")
    logger.info(f"  Server      : http://0.0.0.0:{port}")
    logger.info(f"  API Docs    : http://localhost:{port}/docs")
    logger.info(f"  WebSocket   : ws://localhost:{port}/ws/arena")
    logger.info("=" * 60)

    uvicorn.run(
        "dashboard.api.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("DEBUG", "false").lower() == "true",
    )
