"""DeviceLocationAdapter — the mobile OS location payload.

Expected raw format:
{
    "coords": {
        "latitude": 37.7749,
        "longitude": -122.4194,
        "altitude": 12.0,
        "accuracy": 5.0,
        "speed": 8.3,
        "heading": 270.0
    },
    "timestamp": 1767268800000
}

Any of altitude / accuracy / speed / heading may be null.
"""

from __future__ import annotations

from typing import Any

from shift_pilot.adapters.base import SampleAdapter
from shift_pilot.domain.sample import LocationSample


class DeviceLocationAdapter(SampleAdapter):
    """Maps nested ``coords`` payloads to LocationSamples."""

    @property
    def source_name(self) -> str:
        return "device_location"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        return isinstance(raw.get("coords"), dict) and "timestamp" in raw

    def adapt(self, raw: dict[str, Any]) -> LocationSample:
        coords = raw["coords"]
        for key in ("latitude", "longitude"):
            if coords.get(key) is None:
                raise ValueError(f"device_location payload missing 'coords.{key}'")

        timestamp = raw.get("timestamp")
        if timestamp is None:
            raise ValueError("device_location payload missing 'timestamp'")

        # Speed stays as reported; a negative value means "unknown" downstream.
        return LocationSample.model_validate({
            "latitude": coords["latitude"],
            "longitude": coords["longitude"],
            "altitude": coords.get("altitude"),
            "horizontal_accuracy": coords.get("accuracy"),
            "speed": coords.get("speed"),
            "heading": coords.get("heading"),
            "timestamp": int(timestamp),
        })
