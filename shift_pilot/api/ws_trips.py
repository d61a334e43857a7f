"""WebSocket endpoint streaming trip notifications to UI clients.

Path: /ws/trips

Clients only listen; anything they send is ignored.  Payloads are produced
by TripEventBroadcaster.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from shift_pilot.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


def create_trip_events_router(connections: ConnectionManager) -> APIRouter:
    router = APIRouter()

    @router.websocket("/ws/trips")
    async def trip_events(websocket: WebSocket) -> None:
        await connections.connect(websocket)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await connections.disconnect(websocket)

    return router
