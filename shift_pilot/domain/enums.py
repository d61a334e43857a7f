"""Controlled enumerations for the shift-pilot domain.

Every categorical field in the domain references an enum defined here.
"""

from __future__ import annotations

from enum import Enum


class DetectionState(str, Enum):
    """States of the automatic trip-detection machine."""

    IDLE = "idle"
    POSSIBLY_MOVING = "possibly_moving"
    MOVING = "moving"
    POSSIBLY_STOPPED = "possibly_stopped"


class SessionMode(str, Enum):
    """How the active trip was started."""

    MANUAL = "manual"
    AUTO = "auto"


class TripEventKind(str, Enum):
    """Lifecycle events emitted by the detector and the session manager."""

    TRIP_STARTED = "trip_started"
    TRIP_STOPPED = "trip_stopped"
    TRIP_DISCARDED = "trip_discarded"


class TripPurpose(str, Enum):
    """Purpose chosen by the user when classifying a finished trip."""

    WORK = "work"
    PERSONAL = "personal"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class PermissionState(str, Enum):
    """OS location permission answer."""

    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"


class AppState(str, Enum):
    """Host application lifecycle state."""

    ACTIVE = "active"
    BACKGROUND = "background"
    INACTIVE = "inactive"
