"""
Sales Arena — WebSocket Manager
=================================
Pushes refresh events to connected arena screens.

Usage:
    from dashboard.api.websocket import ws_manager, websocket_endpoint

    # Registered as a SnapshotPoller listener:
    poller.add_listener(ws_manager.on_refresh)

    # In FastAPI:
    app.add_api_websocket_route("/ws/arena", websocket_endpoint)

Events:
    connected       sent once on join
    data_refreshed  after every published snapshot
    new_sales       when ids that were not Won before are Won now
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from arena.breakdowns import new_win_ids
from arena.lib.logger import setup_logger
from arena.records import Snapshot

logger = setup_logger("websocket")


def _payload(message: Dict[str, Any]) -> str:
    return json.dumps({**message, "timestamp": datetime.now().isoformat()}, default=str)


class WebSocketManager:
    """Manages active WebSocket connections and broadcasts events."""

    def __init__(self):
        self._connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self._connections.add(websocket)
        logger.info("WebSocket connected. Active connections: %d", len(self._connections))

    def disconnect(self, websocket: WebSocket):
        self._connections.discard(websocket)
        logger.info("WebSocket disconnected. Active connections: %d", len(self._connections))

    async def broadcast(self, message: Dict[str, Any]):
        """Send a message to all connected clients, dropping dead sockets."""
        if not self._connections:
            return

        payload = _payload(message)
        disconnected = set()
        for ws in list(self._connections):
            try:
                await ws.send_text(payload)
            except Exception as e:
                logger.debug("Dropping WebSocket after send failure: %s", e)
                disconnected.add(ws)

        for ws in disconnected:
            self._connections.discard(ws)

    async def send_to(self, websocket: WebSocket, message: Dict[str, Any]):
        try:
            await websocket.send_text(_payload(message))
        except Exception as e:
            logger.debug("Dropping WebSocket after send failure: %s", e)
            self._connections.discard(websocket)

    async def on_refresh(self, previous: Optional[Snapshot], snapshot: Snapshot):
        """SnapshotPoller listener: announce the refresh and any new sales."""
        await self.broadcast({
            "event": "data_refreshed",
            "data": {
                "last_updated": snapshot.fetched_at.isoformat(),
                "record_count": len(snapshot),
            },
        })

        fresh = set(new_win_ids(previous.records if previous else None, snapshot.records))
        if not fresh:
            return

        sales = [
            {"id": r.id, "agent": r.agent, "client_name": r.client_name, "revenue": r.revenue}
            for r in snapshot.records if r.id in fresh
        ]
        logger.info("New sales detected: %d", len(sales))
        await self.broadcast({"event": "new_sales", "data": {"sales": sales}})

    @property
    def connection_count(self) -> int:
        return len(self._connections)


# Singleton manager
ws_manager = WebSocketManager()


async def websocket_endpoint(websocket: WebSocket):
    """Clients connect to ws://host/ws/arena; a {"type": "ping"} gets a pong."""
    await ws_manager.connect(websocket)
    await ws_manager.send_to(websocket, {
        "event": "connected",
        "data": {"message": "Connected to Sales Arena live feed"},
    })

    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(msg, dict) and msg.get("type") == "ping":
                await ws_manager.send_to(websocket, {"event": "pong", "data": {}})
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(websocket)
