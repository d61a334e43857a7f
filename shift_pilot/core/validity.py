"""Trip validity gate — the single policy separating real trips from noise.

Both trip-origination paths use the same gate instance: the detector before
emitting ``trip_stopped`` and the session manager on a manual stop.  All
three conditions must hold; there is no partial credit.
"""

from __future__ import annotations

from dataclasses import dataclass

MIN_TRIP_DURATION_MS = 60_000
MIN_TRIP_DISTANCE_M = 160.0
MIN_TRIP_SAMPLES = 2


@dataclass(frozen=True)
class TripValidityGate:
    """Minimum duration / distance / sample-count thresholds."""

    min_duration_ms: int = MIN_TRIP_DURATION_MS
    min_distance_m: float = MIN_TRIP_DISTANCE_M
    min_samples: int = MIN_TRIP_SAMPLES

    def is_valid(self, distance_m: float, duration_ms: int, sample_count: int) -> bool:
        return (
            duration_ms >= self.min_duration_ms
            and distance_m >= self.min_distance_m
            and sample_count >= self.min_samples
        )


DEFAULT_GATE = TripValidityGate()


def is_valid_trip(distance_m: float, duration_ms: int, sample_count: int) -> bool:
    """Evaluate the default gate."""
    return DEFAULT_GATE.is_valid(distance_m, duration_ms, sample_count)
