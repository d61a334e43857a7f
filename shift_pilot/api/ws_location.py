"""WebSocket endpoint for location sample ingestion.

Path: /ws/location

Accepts either one sample or a background batch ``{"locations": [...]}``.
Each item is validated against the LocationSample schema first; if strict
validation fails the adapter registry gets a chance to translate a
provider-specific payload.  Items that neither path accepts are reported
back and skipped; the rest of the batch is still processed.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from shift_pilot.adapters.registry import AdaptationError, AdapterRegistry, NoAdapterFoundError
from shift_pilot.domain.sample import LocationSample
from shift_pilot.services.tracking_service import TrackingService

logger = logging.getLogger(__name__)


def parse_sample(raw: Any, registry: AdapterRegistry | None) -> LocationSample:
    """Validate *raw* as a LocationSample, falling back to the registry.

    Raises:
        ValueError: If the payload is not a sample in any known format.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"expected an object, got {type(raw).__name__}")
    try:
        return LocationSample.model_validate(raw)
    except ValidationError as exc:
        if registry is None:
            raise ValueError(str(exc)) from exc
        try:
            return registry.adapt(raw)
        except (NoAdapterFoundError, AdaptationError) as adapt_exc:
            raise ValueError(str(adapt_exc)) from adapt_exc


def create_location_router(
    service: TrackingService,
    registry: AdapterRegistry | None = None,
) -> APIRouter:
    """Factory that wires the ingestion endpoint to a TrackingService."""

    router = APIRouter()

    @router.websocket("/ws/location")
    async def ingest_location(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("Location source connected")

        try:
            while True:
                raw = await websocket.receive_json()
                items = raw["locations"] if isinstance(raw, dict) and "locations" in raw else [raw]
                if not isinstance(items, list):
                    await websocket.send_json({
                        "status": "error",
                        "detail": "'locations' must be a list",
                    })
                    continue

                # ── Validate at the boundary ─────────────────────────────
                samples: list[LocationSample] = []
                errors: list[dict[str, Any]] = []
                for index, item in enumerate(items):
                    try:
                        samples.append(parse_sample(item, registry))
                    except ValueError as exc:
                        logger.debug("Rejected location item %d: %s", index, exc)
                        errors.append({"index": index, "detail": str(exc)})

                if not samples:
                    await websocket.send_json({
                        "status": "error",
                        "detail": "no valid location samples",
                        "errors": errors,
                    })
                    continue

                # ── Feed the core ────────────────────────────────────────
                delivered = await service.ingest_batch(samples)
                status = await service.status()

                # ── Acknowledge ──────────────────────────────────────────
                await websocket.send_json({
                    "status": "accepted" if delivered else "dropped",
                    "received": len(samples),
                    "delivered": delivered,
                    "errors": errors,
                    "detection_state": status["detection_state"],
                    "tracking": status["tracking"],
                })

        except WebSocketDisconnect:
            logger.info("Location source disconnected")

    return router
