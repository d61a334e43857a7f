"""TripEventBroadcaster — the notification collaborator of the host.

Subscribes to the session manager's event channel and turns each event into
a user-facing payload (title, body, figures) pushed to ``/ws/trips``
clients.  Event delivery is synchronous; the push is scheduled as a task on
the running loop so it never delays sample processing.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any

from shift_pilot.core.geodesic import meters_to_miles
from shift_pilot.domain.enums import TripEventKind
from shift_pilot.domain.trip_event import TripEvent
from shift_pilot.foundation.events import EventChannel, Subscription
from shift_pilot.services.connection_manager import ConnectionManager
from shift_pilot.services.deduction import RateProvider, estimate_business_deduction

logger = logging.getLogger(__name__)


def build_notification(event: TripEvent, rates: RateProvider) -> dict[str, Any]:
    """Plain-data notification for a trip event."""
    miles = meters_to_miles(event.distance_meters)
    payload: dict[str, Any] = {
        "event": event.kind.value,
        "mode": event.mode.value if event.mode else None,
        "occurred_at": event.occurred_at,
        "distance_miles": round(miles, 2),
        "duration_seconds": event.duration_ms // 1000,
    }

    if event.kind == TripEventKind.TRIP_STARTED:
        payload["title"] = "Trip Started"
        payload["body"] = "We detected you're driving. Tracking your trip now!"
    elif event.kind == TripEventKind.TRIP_STOPPED:
        potential = estimate_business_deduction(event.distance_meters, rates)
        payload["potential_deduction"] = potential
        payload["title"] = f"New trip: ${potential:.2f} potential!"
        payload["body"] = "Work or personal? Classify now to claim!"
    else:
        payload["reason"] = event.reason
        payload["title"] = "Trip Not Saved"
        payload["body"] = (
            "Your trip was too short to save. Trips must be at least 0.1 miles "
            f"and 60 seconds long. Your trip: {miles:.2f} miles, "
            f"{event.duration_ms // 1000} seconds."
        )
    return payload


class TripEventBroadcaster:
    """Bridges trip events to connected WebSocket clients."""

    def __init__(self, connections: ConnectionManager, rates: RateProvider) -> None:
        self._connections = connections
        self._rates = rates
        self._subscription: Subscription | None = None
        self.recent: deque[dict[str, Any]] = deque(maxlen=100)

    def attach(self, channel: EventChannel[TripEvent]) -> None:
        if self._subscription is None:
            self._subscription = channel.subscribe(self.on_event)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def on_event(self, event: TripEvent) -> None:
        payload = build_notification(event, self._rates)
        logger.info("Notify: %s", payload["title"])
        self.recent.append(payload)
        if self._connections.active_count == 0:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; trip event not broadcast")
            return
        loop.create_task(self._connections.broadcast_json(payload))
