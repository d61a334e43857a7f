"""REST endpoints controlling the active trip.

Paths (prefix /api):
    GET  /trip                     tracking status + estimated deduction
    POST /trip/manual/start        open a manual trip (409 if one is open)
    POST /trip/stop/request        ask to stop (drives the confirmation UI)
    POST /trip/stop/cancel         withdraw the stop request
    POST /trip/stop/confirm        stop, validate, maybe queue for classification
    POST /trip/pending/complete    classify the pending trip
    POST /trip/pending/discard     drop open and pending trips
    POST /auto-detect/enable       start automatic detection
    POST /auto-detect/disable      stop automatic detection
    POST /app-state                app moved to foreground/background
    POST /permissions              device permission answers changed

Host misuse (stopping with nothing open, completing with nothing pending)
maps to 409 Conflict.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from shift_pilot.core.errors import NoActiveSessionError, NoPendingTripError
from shift_pilot.domain.enums import AppState, TripPurpose
from shift_pilot.domain.permissions import PermissionStatus
from shift_pilot.services.deduction import RateProvider, estimate_business_deduction
from shift_pilot.services.tracking_service import TrackingService

logger = logging.getLogger(__name__)


class CompleteTripRequest(BaseModel):
    purpose: TripPurpose = TripPurpose.UNKNOWN
    notes: Optional[str] = Field(default=None, max_length=1000)


class AppStateRequest(BaseModel):
    state: AppState


def create_trip_router(service: TrackingService, rates: RateProvider) -> APIRouter:
    """Factory that wires the trip endpoints to a TrackingService."""

    router = APIRouter(prefix="/api", tags=["trips"])

    @router.get("/trip")
    async def trip_status() -> dict[str, Any]:
        status = await service.status()
        session = status["session"]
        status["estimated_deduction"] = (
            estimate_business_deduction(session["distance_meters"], rates) if session else 0.0
        )
        return status

    @router.post("/trip/manual/start")
    async def start_manual() -> dict[str, Any]:
        result = await service.start_manual()
        if not result.accepted:
            raise HTTPException(status_code=409, detail=result.reason)
        return {
            "status": "started",
            "start_time": result.session.start_time,
            "sample_count": result.session.sample_count,
        }

    @router.post("/trip/stop/request")
    async def request_stop() -> dict[str, Any]:
        try:
            session = await service.request_stop()
        except NoActiveSessionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {
            "status": "confirm_required",
            "mode": session.mode.value,
            "distance_meters": round(session.distance_meters, 2),
        }

    @router.post("/trip/stop/cancel")
    async def cancel_stop() -> dict[str, Any]:
        await service.cancel_stop()
        return {"status": "tracking"}

    @router.post("/trip/stop/confirm")
    async def confirm_stop() -> dict[str, Any]:
        try:
            outcome = await service.confirm_stop()
        except NoActiveSessionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {
            "status": "pending_classification" if outcome.saved else "discarded",
            "reason": outcome.reason,
            "distance_meters": round(outcome.distance_meters, 2),
            "duration_ms": outcome.duration_ms,
            "sample_count": outcome.sample_count,
        }

    @router.post("/trip/pending/complete")
    async def complete_trip(body: CompleteTripRequest) -> dict[str, Any]:
        try:
            trip_id = await service.complete_trip(body.purpose, body.notes)
        except NoPendingTripError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"status": "saved", "trip_id": trip_id}

    @router.post("/trip/pending/discard")
    async def discard_trip() -> dict[str, Any]:
        await service.discard_trip()
        return {"status": "discarded"}

    @router.post("/auto-detect/enable")
    async def enable_auto_detect() -> dict[str, Any]:
        enabled = await service.enable_auto_detect()
        return {"auto_detect_enabled": enabled}

    @router.post("/auto-detect/disable")
    async def disable_auto_detect() -> dict[str, Any]:
        await service.disable_auto_detect()
        return {"auto_detect_enabled": False}

    @router.post("/app-state")
    async def app_state(body: AppStateRequest) -> dict[str, Any]:
        await service.app_state_changed(body.state)
        return {"state": body.state.value}

    @router.post("/permissions")
    async def permissions(body: PermissionStatus) -> dict[str, Any]:
        await service.set_permissions(body)
        return {
            "foreground_access": body.has_foreground_access,
            "background_access": body.has_full_access,
        }

    return router
