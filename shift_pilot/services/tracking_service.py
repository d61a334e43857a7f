"""TrackingService — async entry point that serialises access to the core.

The detector and session manager are synchronous and assume one caller at a
time.  WebSocket and HTTP handlers run concurrently, so every entry into the
core goes through this service and its asyncio.Lock: one sample or one
command is processed at a time, in arrival order.
"""

from __future__ import annotations

import asyncio
import logging

from shift_pilot.adapters.source import PushLocationSource
from shift_pilot.core.session_manager import StartResult, StopOutcome, TripSessionManager
from shift_pilot.domain.enums import AppState, TripPurpose
from shift_pilot.domain.permissions import PermissionStatus
from shift_pilot.domain.sample import LocationSample
from shift_pilot.domain.session import ActiveTripSession

logger = logging.getLogger(__name__)


class TrackingService:
    """Lock-guarded facade over a PushLocationSource and a TripSessionManager."""

    def __init__(self, source: PushLocationSource, manager: TripSessionManager) -> None:
        self._source = source
        self._manager = manager
        self._lock = asyncio.Lock()

    @property
    def manager(self) -> TripSessionManager:
        return self._manager

    @property
    def source(self) -> PushLocationSource:
        return self._source

    # ── Samples ──────────────────────────────────────────────────────────

    async def ingest(self, sample: LocationSample) -> bool:
        """Push one sample through every subscriber.  False if dropped."""
        async with self._lock:
            return self._source.push(sample)

    async def ingest_batch(self, samples: list[LocationSample]) -> int:
        """Push a background batch in order, holding the lock throughout."""
        async with self._lock:
            delivered = self._source.push_batch(samples)
        logger.debug("Ingested batch: %d/%d delivered", delivered, len(samples))
        return delivered

    async def set_permissions(self, permissions: PermissionStatus) -> None:
        async with self._lock:
            self._source.set_permissions(permissions)

    # ── Commands ─────────────────────────────────────────────────────────

    async def start_manual(self) -> StartResult:
        async with self._lock:
            return self._manager.start_manual()

    async def request_stop(self) -> ActiveTripSession:
        async with self._lock:
            return self._manager.request_stop()

    async def cancel_stop(self) -> None:
        async with self._lock:
            self._manager.cancel_stop()

    async def confirm_stop(self) -> StopOutcome:
        async with self._lock:
            return self._manager.confirm_stop()

    async def complete_trip(self, purpose: TripPurpose, notes: str | None = None) -> str:
        async with self._lock:
            return self._manager.complete_trip(purpose, notes)

    async def discard_trip(self) -> None:
        async with self._lock:
            self._manager.discard_trip()

    async def enable_auto_detect(self) -> bool:
        async with self._lock:
            return self._manager.enable_auto_detect()

    async def disable_auto_detect(self) -> None:
        async with self._lock:
            self._manager.disable_auto_detect()

    async def app_state_changed(self, state: AppState) -> None:
        async with self._lock:
            self._manager.on_app_state_change(state)

    async def restore(self) -> ActiveTripSession | None:
        async with self._lock:
            return self._manager.restore()

    async def status(self) -> dict:
        async with self._lock:
            return self._manager.status()
