"""Adapter Registry — selects the sample adapter for a raw payload.

Adapters are tried in registration order; the first whose can_handle()
returns True translates the payload.  Nothing matches → fail fast.
"""

from __future__ import annotations

import logging
from typing import Any

from shift_pilot.adapters.base import SampleAdapter
from shift_pilot.domain.sample import LocationSample

logger = logging.getLogger(__name__)


class AdapterStats:
    """Per-adapter ingestion counters."""

    __slots__ = ("adapter_name", "accepted_count", "rejected_count")

    def __init__(self, adapter_name: str) -> None:
        self.adapter_name = adapter_name
        self.accepted_count: int = 0
        self.rejected_count: int = 0

    def to_dict(self) -> dict:
        return {
            "adapter_name": self.adapter_name,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
        }


class NoAdapterFoundError(Exception):
    """Raised when no registered adapter can handle a payload."""


class AdaptationError(Exception):
    """Raised when a matched adapter fails to translate the payload."""

    def __init__(self, adapter_name: str, reason: str) -> None:
        self.adapter_name = adapter_name
        self.reason = reason
        super().__init__(f"Adapter '{adapter_name}' failed: {reason}")


class AdapterRegistry:
    """Ordered collection of sample adapters with stats.

    Usage:
        registry = AdapterRegistry()
        registry.register(DeviceLocationAdapter())
        registry.register(TrackPointAdapter())

        sample = registry.adapt(raw_payload)
    """

    def __init__(self) -> None:
        self._adapters: list[SampleAdapter] = []
        self._stats: dict[str, AdapterStats] = {}

    def register(self, adapter: SampleAdapter) -> None:
        if adapter.source_name in self._stats:
            raise ValueError(f"adapter '{adapter.source_name}' already registered")
        self._adapters.append(adapter)
        self._stats[adapter.source_name] = AdapterStats(adapter.source_name)
        logger.info("Registered sample adapter: %s", adapter.source_name)

    def adapt(self, raw: dict[str, Any]) -> LocationSample:
        """Route *raw* through the first matching adapter.

        Raises:
            NoAdapterFoundError: If no adapter's can_handle() returns True.
            AdaptationError: If the matched adapter fails to translate.
        """
        for adapter in self._adapters:
            if not adapter.can_handle(raw):
                continue
            stats = self._stats[adapter.source_name]
            try:
                sample = adapter.adapt(raw)
            except (ValueError, TypeError, KeyError) as exc:
                stats.rejected_count += 1
                logger.warning("Adapter '%s' rejected payload: %s", adapter.source_name, exc)
                raise AdaptationError(adapter.source_name, str(exc)) from exc
            stats.accepted_count += 1
            return sample

        raise NoAdapterFoundError(
            f"No adapter can handle payload with keys: {sorted(raw.keys())}"
        )

    @property
    def adapter_names(self) -> list[str]:
        return [a.source_name for a in self._adapters]

    @property
    def stats(self) -> list[dict]:
        return [s.to_dict() for s in self._stats.values()]

    @property
    def total_accepted(self) -> int:
        return sum(s.accepted_count for s in self._stats.values())

    @property
    def total_rejected(self) -> int:
        return sum(s.rejected_count for s in self._stats.values())


def build_default_registry() -> AdapterRegistry:
    """Registry with every provider format shift-pilot understands."""
    from shift_pilot.adapters.device import DeviceLocationAdapter
    from shift_pilot.adapters.track_point import TrackPointAdapter

    registry = AdapterRegistry()
    registry.register(DeviceLocationAdapter())
    registry.register(TrackPointAdapter())
    return registry
