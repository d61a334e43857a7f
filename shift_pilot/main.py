"""shift-pilot — trip detection and mileage tracking service.

This is the application entry point.  It wires the location source, the
trip detector, the session manager and its collaborators, and the
WebSocket/HTTP endpoints together.  Each call to create_app() builds an
independent object graph.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from shift_pilot.adapters.registry import build_default_registry
from shift_pilot.adapters.source import PushLocationSource
from shift_pilot.api.trips import create_trip_router
from shift_pilot.api.ws_location import create_location_router
from shift_pilot.api.ws_trips import create_trip_events_router
from shift_pilot.config import Settings, settings
from shift_pilot.core.detector import TripDetector
from shift_pilot.core.session_manager import TripSessionManager
from shift_pilot.domain.enums import TripPurpose
from shift_pilot.services.broadcaster import TripEventBroadcaster
from shift_pilot.services.connection_manager import ConnectionManager
from shift_pilot.services.deduction import StaticRateProvider
from shift_pilot.services.ledger import InMemoryTripLedger
from shift_pilot.services.tracking_service import TrackingService
from shift_pilot.store.checkpoint import (
    CheckpointStore,
    CheckpointWriter,
    InMemoryCheckpointStore,
    JsonFileCheckpointStore,
)

logger = logging.getLogger(__name__)


def create_app(cfg: Settings = settings) -> FastAPI:
    """Build the object graph for *cfg* and return the FastAPI app."""

    # ── Core ─────────────────────────────────────────────────────────────
    gate = cfg.validity_gate()
    detector = TripDetector(thresholds=cfg.detection_thresholds(), gate=gate)
    source = PushLocationSource()

    store: CheckpointStore = (
        JsonFileCheckpointStore(cfg.checkpoint_path)
        if cfg.checkpoint_path
        else InMemoryCheckpointStore()
    )
    ledger = InMemoryTripLedger()
    manager = TripSessionManager(
        source=source,
        checkpoints=CheckpointWriter(store, throttle_ms=cfg.checkpoint_throttle_ms),
        detector=detector,
        classifier=ledger,
        gate=gate,
    )

    # ── Collaborators ────────────────────────────────────────────────────
    rates = StaticRateProvider({TripPurpose.WORK: cfg.business_rate_per_mile})
    connections = ConnectionManager()
    broadcaster = TripEventBroadcaster(connections, rates)
    broadcaster.attach(manager.events)

    # ── Recovery ─────────────────────────────────────────────────────────
    if cfg.auto_detect:
        manager.enable_auto_detect()
    manager.restore()

    service = TrackingService(source, manager)
    registry = build_default_registry()

    # ── App ──────────────────────────────────────────────────────────────
    app = FastAPI(
        title=cfg.app_name,
        description="Automatic trip detection and mileage tracking",
        version="0.1.0",
    )
    app.state.service = service
    app.state.ledger = ledger
    app.state.broadcaster = broadcaster

    app.include_router(create_location_router(service, registry))
    app.include_router(create_trip_events_router(connections))
    app.include_router(create_trip_router(service, rates))

    @app.get("/health")
    async def health() -> dict:
        status = await service.status()
        return {
            "status": "ok",
            "detection_state": status["detection_state"],
            "tracking": status["tracking"],
            "auto_detect_enabled": status["auto_detect_enabled"],
            "pending_trip": status["pending_trip"] is not None,
            "samples_delivered": source.delivered_count,
            "samples_dropped": source.dropped_count,
            "adapters": registry.stats,
            "event_clients": connections.active_count,
            "classified_trips": len(ledger),
        }

    logger.info("%s ready (auto_detect=%s)", cfg.app_name, manager.auto_detect_enabled)
    return app


# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

app = create_app()


def main() -> None:
    """Run the API server."""
    logger.info("Starting %s on %s:%d", settings.app_name, settings.host, settings.port)
    uvicorn.run(
        "shift_pilot.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
