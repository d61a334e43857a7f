"""Deduction estimates — the rate collaborator side of the host.

The tracking core is dollar-agnostic: it reports meters and milliseconds.
Multiplying by a per-mile rate happens here, outside the core.
"""

from __future__ import annotations

from typing import Mapping, Protocol

from shift_pilot.core.geodesic import meters_to_miles
from shift_pilot.domain.enums import TripPurpose

DEFAULT_BUSINESS_RATE = 0.67


class RateProvider(Protocol):
    def rate_per_mile(self, purpose: TripPurpose) -> float:
        ...


class StaticRateProvider:
    """Fixed rates per purpose.  Purposes without a rate deduct nothing.

    Args:
        rates: Dollars per mile keyed by purpose.  Defaults to the business
            rate for work trips only.
    """

    def __init__(self, rates: Mapping[TripPurpose, float] | None = None) -> None:
        self._rates = dict(rates) if rates is not None else {TripPurpose.WORK: DEFAULT_BUSINESS_RATE}

    def rate_per_mile(self, purpose: TripPurpose) -> float:
        return self._rates.get(purpose, 0.0)


def estimate_deduction(distance_meters: float, rate_per_mile: float) -> float:
    """Dollar value of *distance_meters* at *rate_per_mile*, rounded to cents."""
    return round(meters_to_miles(distance_meters) * rate_per_mile, 2)


def estimate_business_deduction(distance_meters: float, rates: RateProvider) -> float:
    """Potential deduction if the trip is classified as work."""
    return estimate_deduction(distance_meters, rates.rate_per_mile(TripPurpose.WORK))
