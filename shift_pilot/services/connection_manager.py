"""Tracks WebSocket clients listening for trip events and broadcasts to them."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Set of connected UI clients guarded by an asyncio.Lock."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.info("Trip event client connected (%d total)", len(self._connections))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.discard(websocket)
        logger.info("Trip event client disconnected (%d remaining)", len(self._connections))

    @property
    def active_count(self) -> int:
        return len(self._connections)

    async def broadcast_json(self, data: dict[str, Any]) -> None:
        """Send *data* to every client; clients that fail are dropped."""
        async with self._lock:
            clients = list(self._connections)
        for ws in clients:
            try:
                await ws.send_json(data)
            except Exception as exc:
                logger.warning("Dropping trip event client after send failure: %s", exc)
                await self.disconnect(ws)
