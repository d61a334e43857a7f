"""Tests for sample adapters and the adapter registry.

Covers adapter selection, payload rejection, sentinel handling for missing
readings, and registry stats.
"""

from __future__ import annotations

import pytest

from shift_pilot.adapters.base import optional_reading
from shift_pilot.adapters.device import DeviceLocationAdapter
from shift_pilot.adapters.registry import (
    AdaptationError,
    AdapterRegistry,
    NoAdapterFoundError,
    build_default_registry,
)
from shift_pilot.adapters.track_point import TrackPointAdapter
from shift_pilot.domain.sample import LocationSample


# ── Realistic Raw Payloads ───────────────────────────────────────────────────

_TS = 1_767_268_800_000


def _device_payload(**coord_overrides) -> dict:
    coords = {
        "latitude": 37.7749,
        "longitude": -122.4194,
        "altitude": 12.0,
        "accuracy": 5.0,
        "speed": 8.3,
        "heading": 270.0,
    }
    coords.update(coord_overrides)
    return {"coords": coords, "timestamp": _TS}


def _track_point_payload(**overrides) -> dict:
    base = {
        "geo_time_ms": _TS,
        "latitude": 31.2304,
        "longitude": 121.4737,
        "altitude_m": 4.0,
        "speed_mps": 12.0,
        "horizontal_accuracy_m": 8.0,
        "course": 90.0,
    }
    base.update(overrides)
    return base


# ── Adapter Selection Tests ──────────────────────────────────────────────────


class TestAdapterSelection:
    def test_device_adapter_selected(self) -> None:
        reg = build_default_registry()
        sample = reg.adapt(_device_payload())
        assert isinstance(sample, LocationSample)
        assert sample.latitude == pytest.approx(37.7749)
        assert sample.horizontal_accuracy == 5.0
        assert sample.timestamp == _TS

    def test_track_point_adapter_selected(self) -> None:
        reg = build_default_registry()
        sample = reg.adapt(_track_point_payload())
        assert sample.speed == 12.0
        assert sample.heading == 90.0

    def test_no_adapter_raises(self) -> None:
        reg = build_default_registry()
        with pytest.raises(NoAdapterFoundError):
            reg.adapt({"lat": 1.0, "lng": 2.0})

    def test_empty_registry_raises(self) -> None:
        with pytest.raises(NoAdapterFoundError):
            AdapterRegistry().adapt(_device_payload())

    def test_duplicate_registration_rejected(self) -> None:
        reg = build_default_registry()
        with pytest.raises(ValueError):
            reg.register(DeviceLocationAdapter())


# ── Payload Rejection Tests ──────────────────────────────────────────────────


class TestPayloadRejection:
    def test_device_missing_latitude(self) -> None:
        reg = build_default_registry()
        with pytest.raises(AdaptationError) as exc_info:
            reg.adapt(_device_payload(latitude=None))
        assert exc_info.value.adapter_name == "device_location"

    def test_device_out_of_range_latitude(self) -> None:
        reg = build_default_registry()
        with pytest.raises(AdaptationError):
            reg.adapt(_device_payload(latitude=123.0))

    def test_track_point_missing_longitude(self) -> None:
        reg = build_default_registry()
        payload = _track_point_payload()
        del payload["longitude"]
        with pytest.raises(AdaptationError) as exc_info:
            reg.adapt(payload)
        assert exc_info.value.adapter_name == "track_point"

    def test_track_point_garbage_timestamp(self) -> None:
        reg = build_default_registry()
        with pytest.raises(AdaptationError):
            reg.adapt(_track_point_payload(geo_time_ms="yesterday"))


# ── Missing Readings ─────────────────────────────────────────────────────────


class TestMissingReadings:
    def test_track_point_sentinels_become_none(self) -> None:
        sample = TrackPointAdapter().adapt(
            _track_point_payload(speed_mps=-1.0, horizontal_accuracy_m=-1.0, course=-1.0)
        )
        assert sample.speed is None
        assert sample.horizontal_accuracy is None
        assert sample.heading is None
        assert sample.effective_speed == 0.0

    def test_device_null_speed_is_unknown(self) -> None:
        sample = DeviceLocationAdapter().adapt(_device_payload(speed=None))
        assert sample.speed is None
        assert not sample.speed_known

    def test_device_negative_speed_kept_but_unknown(self) -> None:
        sample = DeviceLocationAdapter().adapt(_device_payload(speed=-1.0))
        assert sample.effective_speed == 0.0

    def test_optional_reading(self) -> None:
        assert optional_reading(None) is None
        assert optional_reading(-1) is None
        assert optional_reading("3.5") == 3.5
        assert optional_reading(0) == 0.0


# ── Registry Stats Tests ─────────────────────────────────────────────────────


class TestRegistryStats:
    def test_stats_track_accepted(self) -> None:
        reg = build_default_registry()
        reg.adapt(_device_payload())
        reg.adapt(_device_payload())
        stats = {s["adapter_name"]: s for s in reg.stats}
        assert stats["device_location"]["accepted_count"] == 2

    def test_stats_track_rejected(self) -> None:
        reg = build_default_registry()
        with pytest.raises(AdaptationError):
            reg.adapt(_device_payload(longitude=None))
        stats = {s["adapter_name"]: s for s in reg.stats}
        assert stats["device_location"]["rejected_count"] == 1
        assert reg.total_rejected == 1

    def test_total_accepted(self) -> None:
        reg = build_default_registry()
        reg.adapt(_device_payload())
        reg.adapt(_track_point_payload())
        assert reg.total_accepted == 2

    def test_adapter_names(self) -> None:
        assert build_default_registry().adapter_names == ["device_location", "track_point"]

    def test_payload_not_mutated(self) -> None:
        """Adapters must not mutate the input dict."""
        reg = build_default_registry()
        payload = _track_point_payload(speed_mps=-1.0)
        original = dict(payload)
        reg.adapt(payload)
        assert payload == original


# ── can_handle Tests ─────────────────────────────────────────────────────────


class TestCanHandle:
    def test_device_can_handle_yes(self) -> None:
        assert DeviceLocationAdapter().can_handle(_device_payload())

    def test_device_needs_timestamp(self) -> None:
        assert not DeviceLocationAdapter().can_handle({"coords": {}})

    def test_track_point_can_handle_yes(self) -> None:
        assert TrackPointAdapter().can_handle({"geo_time_ms": 0})

    def test_track_point_rejects_device_shape(self) -> None:
        assert not TrackPointAdapter().can_handle(_device_payload())
