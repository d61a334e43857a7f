"""Exceptions raised for host misuse of the tracking core.

Environmental conditions (GPS noise, too-short trips, denied permissions,
failed checkpoint writes) are never raised; they are handled inside the core
and surfaced as result objects or events.
"""

from __future__ import annotations


class TrackingError(Exception):
    """Base class for tracking-core errors."""


class NoActiveSessionError(TrackingError):
    """Raised when a stop is requested or confirmed with no open trip."""


class NoPendingTripError(TrackingError):
    """Raised when completing a trip while nothing awaits classification."""


class CheckpointError(TrackingError):
    """Raised by checkpoint stores when a read or write fails."""
