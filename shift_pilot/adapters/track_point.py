"""TrackPointAdapter — flat rows exported by footprint/track recorder apps.

Expected raw format:
{
    "geo_time_ms": 1767268800000,
    "latitude": 31.2304,
    "longitude": 121.4737,
    "altitude_m": 0.0,
    "speed_mps": -1.0,
    "horizontal_accuracy_m": -1.0,
    "course": 90.0
}

Recorders write -1.0 when a reading is unavailable; those become None.
"""

from __future__ import annotations

from typing import Any

from shift_pilot.adapters.base import SampleAdapter, optional_reading
from shift_pilot.domain.sample import LocationSample


class TrackPointAdapter(SampleAdapter):
    """Maps flat track-point rows to LocationSamples."""

    @property
    def source_name(self) -> str:
        return "track_point"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        return "geo_time_ms" in raw

    def adapt(self, raw: dict[str, Any]) -> LocationSample:
        for key in ("latitude", "longitude"):
            if raw.get(key) is None:
                raise ValueError(f"track_point payload missing '{key}'")

        altitude = raw.get("altitude_m")
        return LocationSample.model_validate({
            "latitude": float(raw["latitude"]),
            "longitude": float(raw["longitude"]),
            "altitude": float(altitude) if altitude is not None else None,
            "horizontal_accuracy": optional_reading(raw.get("horizontal_accuracy_m")),
            "speed": optional_reading(raw.get("speed_mps")),
            "heading": optional_reading(raw.get("course")),
            "timestamp": int(raw["geo_time_ms"]),
        })
