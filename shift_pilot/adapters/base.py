"""Abstract base for sample adapters.

Sample adapters normalise raw payloads from heterogeneous location
providers into the canonical LocationSample model.

Architectural rules:
    1. Adapters must NOT mutate the incoming payload dict.
    2. adapt() must return a fully valid LocationSample or raise ValueError.
    3. Adapters never push into a LocationSource themselves.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from shift_pilot.domain.sample import LocationSample


class SampleAdapter(ABC):
    """Base class for converting raw provider payloads into LocationSamples."""

    @abstractmethod
    def can_handle(self, raw: dict[str, Any]) -> bool:
        """Return True if this adapter knows how to translate *raw*.

        Must be a fast, non-destructive check (e.g. key presence).
        """
        ...

    @abstractmethod
    def adapt(self, raw: dict[str, Any]) -> LocationSample:
        """Translate a raw payload dict into a validated LocationSample.

        Raises:
            ValueError: If the payload cannot be normalised.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable name of the provider format this adapter handles."""
        ...


def optional_reading(value: Any) -> float | None:
    """Coerce an optional numeric reading; None and negative sentinels become None."""
    if value is None:
        return None
    reading = float(value)
    if reading < 0:
        return None
    return reading
