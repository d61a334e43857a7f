from shift_pilot.domain.enums import DetectionState, SessionMode, TripEventKind, TripPurpose
from shift_pilot.domain.sample import LocationSample
from shift_pilot.domain.session import ActiveTripSession, PendingTripData
from shift_pilot.domain.trip_event import TripEvent

__all__ = [
    "ActiveTripSession",
    "DetectionState",
    "LocationSample",
    "PendingTripData",
    "SessionMode",
    "TripEvent",
    "TripEventKind",
    "TripPurpose",
]
