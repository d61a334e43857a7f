"""In-memory trip ledger — the classification collaborator used by the host.

A real deployment replaces this with the backend client that stores trips.
The core only sees the ``classify`` method.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from shift_pilot.domain.enums import TripPurpose
from shift_pilot.domain.session import PendingTripData
from shift_pilot.foundation.identifiers import new_trip_id

logger = logging.getLogger(__name__)


class ClassifiedTrip(BaseModel):
    """A pending trip plus the user's classification."""

    trip_id: str
    purpose: TripPurpose
    notes: str | None = None
    trip: PendingTripData

    model_config = {"frozen": True}


class InMemoryTripLedger:
    """Keeps classified trips in insertion order."""

    def __init__(self) -> None:
        self._trips: dict[str, ClassifiedTrip] = {}

    def classify(
        self,
        pending: PendingTripData,
        purpose: TripPurpose,
        notes: str | None = None,
    ) -> str:
        if pending.sample_count < 2:
            raise ValueError("trip must have at least 2 locations")
        trip_id = new_trip_id()
        self._trips[trip_id] = ClassifiedTrip(
            trip_id=trip_id, purpose=purpose, notes=notes, trip=pending
        )
        logger.debug("Stored trip %s (%s)", trip_id, purpose.value)
        return trip_id

    def get(self, trip_id: str) -> ClassifiedTrip | None:
        return self._trips.get(trip_id)

    @property
    def trips(self) -> list[ClassifiedTrip]:
        return list(self._trips.values())

    def __len__(self) -> int:
        return len(self._trips)
