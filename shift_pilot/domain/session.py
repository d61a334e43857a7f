"""Trip session models — the open trip and the finished-but-unclassified trip.

ActiveTripSession is the one piece of mutable shared state in the core.  It
is mutated *only* by the TripSessionManager that owns it; everyone else
receives deep copies via ``snapshot()``.  It is a pydantic model so that the
same object doubles as the crash-recovery checkpoint payload.

PendingTripData is immutable: once a trip has ended its contents never
change, it only waits for the user to classify or discard it.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from shift_pilot.core.geodesic import segment_distance
from shift_pilot.domain.enums import SessionMode
from shift_pilot.domain.sample import LocationSample


class ActiveTripSession(BaseModel):
    """The currently open trip, manual or auto-detected."""

    start_time: int = Field(..., description="Epoch ms at which the trip started")
    mode: SessionMode
    locations: list[LocationSample] = Field(default_factory=list)
    distance_meters: float = Field(default=0.0, ge=0.0)
    start_location: Optional[LocationSample] = None

    # ── Mutation ─────────────────────────────────────────────────────────

    def append_sample(self, sample: LocationSample) -> float:
        """Append *sample* and add the hop from the previous last sample.

        Returns the distance added (0.0 for the first sample).
        """
        added = segment_distance(self.locations[-1], sample) if self.locations else 0.0
        self.locations.append(sample)
        self.distance_meters += added
        if self.start_location is None:
            self.start_location = sample
        return added

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def sample_count(self) -> int:
        return len(self.locations)

    def duration_ms(self, now: int) -> int:
        return max(0, now - self.start_time)

    def snapshot(self) -> ActiveTripSession:
        """Deep copy safe to hand outside the owning manager."""
        return self.model_copy(deep=True)

    def summary(self, now: int) -> dict:
        """Lightweight summary for acknowledgements, logging and the host API."""
        duration = self.duration_ms(now)
        return {
            "mode": self.mode.value,
            "start_time": self.start_time,
            "duration_ms": duration,
            "elapsed": format_elapsed(duration // 1000),
            "distance_meters": round(self.distance_meters, 2),
            "sample_count": self.sample_count,
        }


class PendingTripData(BaseModel):
    """A finished trip waiting for classification."""

    start_time: int
    end_time: int
    mode: SessionMode
    locations: tuple[LocationSample, ...] = Field(default_factory=tuple)
    distance_meters: float = Field(..., ge=0.0)
    start_location: Optional[LocationSample] = None

    model_config = {"frozen": True}

    @property
    def duration_ms(self) -> int:
        return max(0, self.end_time - self.start_time)

    @property
    def sample_count(self) -> int:
        return len(self.locations)

    def summary(self) -> dict:
        return {
            "mode": self.mode.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
            "elapsed": format_elapsed(self.duration_ms // 1000),
            "distance_meters": round(self.distance_meters, 2),
            "sample_count": self.sample_count,
        }


def format_elapsed(total_seconds: int) -> str:
    """Render seconds as ``MM:SS``, or ``HH:MM:SS`` once an hour has passed."""
    total_seconds = max(0, int(total_seconds))
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"
