"""
Sales Arena — API Server
==========================

Read-only API over the live sales snapshot, plus a WebSocket push feed.
The snapshot poller is bound to the application lifespan: it starts with
the server and is stopped on shutdown.

Route groups:
  /api/health        - Health check
  /api/arena/*       - Leaderboard: ranking, podium, KPIs, ticker, facets, status
  /api/analytics/*   - Breakdowns: summary, efficiency, funnel, loss reasons...
  /ws/arena          - WebSocket live feed
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from arena.fetcher import CSVSource, SnapshotPoller, SnapshotStore
from arena.lib.config import ArenaSettings, load_settings
from arena.lib.logger import setup_logger
from dashboard.api.routers.analytics import router as analytics_router
from dashboard.api.routers.arena import router as arena_router
from dashboard.api.websocket import websocket_endpoint, ws_manager
from integrations.google_sheets import GoogleSheetsExport

logger = setup_logger("api")

VERSION = "1.0.0"


# ─── Lifespan ─────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app):
    """Start the snapshot poller on startup, stop it on shutdown."""
    logger.info("Starting Sales Arena...")
    app.state.poller.start()
    logger.info("Sales Arena ready")
    yield
    logger.info("Shutting down Sales Arena...")
    await app.state.poller.stop()


# ─── App Setup ────────────────────────────────────────────────

def create_app(settings: Optional[ArenaSettings] = None,
               source: Optional[CSVSource] = None) -> FastAPI:
    """Build the API. ``settings`` defaults to the environment; ``source`` to the sheet export."""
    settings = settings or load_settings()
    source = source or GoogleSheetsExport.from_settings(settings)

    app = FastAPI(
        title="Sales Arena",
        version=VERSION,
        description="Live sales leaderboard fed by a shared spreadsheet",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    store = SnapshotStore()
    app.state.settings = settings
    app.state.source = source
    app.state.store = store
    app.state.poller = SnapshotPoller(source, store, settings.refresh_interval_seconds)
    app.state.poller.add_listener(ws_manager.on_refresh)

    app.include_router(arena_router)
    app.include_router(analytics_router)
    app.add_api_websocket_route("/ws/arena", websocket_endpoint)

    @app.get("/api/health", tags=["system"])
    async def health():
        """Health check with feed status."""
        return {
            "status": "healthy",
            "service": "Sales Arena",
            "version": VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "feed": store.status(),
            "websocket_connections": ws_manager.connection_count,
        }

    return app


app = create_app()
