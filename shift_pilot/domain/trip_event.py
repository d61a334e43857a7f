"""TripEvent — plain data describing a trip lifecycle change.

Emitted by the detector (``trip_started`` / ``trip_stopped``) and by the
session manager (all three kinds) for notification collaborators.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from shift_pilot.domain.enums import SessionMode, TripEventKind
from shift_pilot.domain.sample import LocationSample


class TripEvent(BaseModel):
    """Immutable trip lifecycle event."""

    kind: TripEventKind
    locations: tuple[LocationSample, ...] = Field(default_factory=tuple)
    distance_meters: float = Field(..., ge=0.0)
    duration_ms: int = Field(..., ge=0)
    occurred_at: int = Field(..., description="Epoch ms at which the event was decided")
    mode: Optional[SessionMode] = None
    reason: Optional[str] = Field(
        default=None,
        description="Machine-readable reason, e.g. 'too_short' for discards",
    )

    model_config = {"frozen": True}

    @property
    def sample_count(self) -> int:
        return len(self.locations)
