"""Geodesic utilities — great-circle distance on a spherical Earth.

Pure functions, no state, no I/O.  Used by the detector for the candidate
buffer and by the session manager for the running trip total.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from shift_pilot.domain.sample import LocationSample

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_MILE = 1609.34


def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute the haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters.  Identical points give exactly 0.0 and
        antipodal points give pi * R.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # Rounding can push a a hair outside [0, 1] near antipodes; sqrt(1 - a) would be NaN.
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def segment_distance(a: LocationSample, b: LocationSample) -> float:
    """Distance in meters between two samples."""
    return haversine_distance_m(a.latitude, a.longitude, b.latitude, b.longitude)


def accumulate_path_distance(samples: Iterable[LocationSample]) -> float:
    """Sum the hop distances between consecutive samples, in order.

    Returns 0.0 for zero or one sample.
    """
    total = 0.0
    previous: LocationSample | None = None
    for sample in samples:
        if previous is not None:
            total += segment_distance(previous, sample)
        previous = sample
    return total


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE
