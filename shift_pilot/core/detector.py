"""TripDetector — four-state machine deciding when a drive starts and ends.

Design notes:
    - Consumes one LocationSample at a time and never raises for a
      structurally valid sample.  Unknown speed counts as 0 m/s.
    - "Now" is the timestamp of the sample being processed, so a batch of
      samples delivered late by a background task is judged on the times the
      readings were taken.  Dwell is clamped at 0 for duplicate or
      out-of-order timestamps.
    - Two speed thresholds (movement > stationary) give hysteresis; the dwell
      timers absorb traffic lights and GPS speed spikes.
    - Buffering starts at the first above-threshold sample, before the trip
      is confirmed, so the reported trip includes the ramp-up.
    - Candidates failing the validity gate at the stop boundary are dropped
      without an event.  Only confirmed, valid trips reach listeners.

Transitions (speed = effective speed of the incoming sample):

    IDLE             speed > move                       → POSSIBLY_MOVING (buffer = [sample])
    POSSIBLY_MOVING  speed > move, dwell >= confirm     → MOVING          (emit trip_started)
    POSSIBLY_MOVING  speed > move, dwell <  confirm     → POSSIBLY_MOVING (append)
    POSSIBLY_MOVING  speed <= move                      → IDLE            (discard)
    MOVING           speed < stationary                 → POSSIBLY_STOPPED (append)
    MOVING           otherwise                          → MOVING          (append)
    POSSIBLY_STOPPED speed > stationary                 → MOVING          (append)
    POSSIBLY_STOPPED speed <= stationary, dwell < tmo   → POSSIBLY_STOPPED (append)
    POSSIBLY_STOPPED speed <= stationary, dwell >= tmo  → IDLE            (gate, maybe emit trip_stopped)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel, Field

from shift_pilot.core.geodesic import segment_distance
from shift_pilot.core.validity import DEFAULT_GATE, TripValidityGate
from shift_pilot.domain.enums import DetectionState, TripEventKind
from shift_pilot.domain.sample import LocationSample
from shift_pilot.domain.trip_event import TripEvent
from shift_pilot.foundation.events import EventChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionThresholds:
    """Speed thresholds (m/s) and dwell windows (ms) for trip detection."""

    # ~7 mph; above this, movement is suspected
    movement_speed_mps: float = 3.0
    # ~2 mph; below this, a stop is suspected
    stationary_speed_mps: float = 1.0
    movement_confirmation_ms: int = 60_000
    stationary_timeout_ms: int = 180_000

    def __post_init__(self) -> None:
        if self.stationary_speed_mps > self.movement_speed_mps:
            raise ValueError("stationary_speed_mps must not exceed movement_speed_mps")


class TripSnapshot(BaseModel):
    """Point-in-time copy of a confirmed trip still being detected."""

    locations: tuple[LocationSample, ...]
    distance_meters: float = Field(..., ge=0.0)
    duration_ms: int = Field(..., ge=0)

    model_config = {"frozen": True}


class TripCandidate:
    """Accumulator owned by the detector while it is not IDLE."""

    __slots__ = ("samples", "distance_meters", "trip_start_timestamp", "state_entered_at")

    def __init__(self, state_entered_at: int = 0) -> None:
        self.samples: list[LocationSample] = []
        self.distance_meters: float = 0.0
        self.trip_start_timestamp: int | None = None
        self.state_entered_at: int = state_entered_at

    def append(self, sample: LocationSample) -> None:
        if self.samples:
            self.distance_meters += segment_distance(self.samples[-1], sample)
        self.samples.append(sample)

    @property
    def is_empty(self) -> bool:
        return not self.samples

    def duration_ms(self, now: int) -> int:
        if self.trip_start_timestamp is None:
            return 0
        return max(0, now - self.trip_start_timestamp)

    def __repr__(self) -> str:
        return (
            f"TripCandidate(samples={len(self.samples)}, "
            f"distance={self.distance_meters:.1f}m, "
            f"trip_start={self.trip_start_timestamp})"
        )


class TripDetector:
    """Sequential trip-detection state machine.

    Args:
        thresholds: Speed and dwell configuration.
        gate: Validity gate applied before ``trip_stopped`` is emitted.
    """

    def __init__(
        self,
        thresholds: DetectionThresholds | None = None,
        gate: TripValidityGate | None = None,
    ) -> None:
        self._thresholds = thresholds or DetectionThresholds()
        self._gate = gate or DEFAULT_GATE
        self._state = DetectionState.IDLE
        self._candidate = TripCandidate()
        self._last_timestamp: int | None = None
        self.events: EventChannel[TripEvent] = EventChannel("trip-detection")

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def state(self) -> DetectionState:
        return self._state

    @property
    def thresholds(self) -> DetectionThresholds:
        return self._thresholds

    def get_state(self) -> DetectionState:
        return self._state

    def process_location_update(self, sample: LocationSample) -> TripEvent | None:
        """Advance the machine by exactly one sample.

        Returns the event published for this sample, if any.
        """
        t = self._thresholds
        now = sample.timestamp
        speed = sample.effective_speed
        dwell = max(0, now - self._candidate.state_entered_at)
        event: TripEvent | None = None

        logger.debug(
            "Sample %s speed=%.2f state=%s dwell=%dms",
            sample, speed, self._state.value, dwell,
        )

        if self._state == DetectionState.IDLE:
            if speed > t.movement_speed_mps:
                self._begin_candidate(sample)

        elif self._state == DetectionState.POSSIBLY_MOVING:
            if speed > t.movement_speed_mps:
                if dwell >= t.movement_confirmation_ms:
                    event = self._confirm_trip(now)
                else:
                    self._candidate.append(sample)
            else:
                self._enter_idle(now, speed)

        elif self._state == DetectionState.MOVING:
            self._candidate.append(sample)
            if speed < t.stationary_speed_mps:
                self._transition(DetectionState.POSSIBLY_STOPPED, now, speed)

        elif self._state == DetectionState.POSSIBLY_STOPPED:
            self._candidate.append(sample)
            if speed > t.stationary_speed_mps:
                self._transition(DetectionState.MOVING, now, speed)
            elif dwell >= t.stationary_timeout_ms:
                event = self._stop_trip(now, speed)

        self._last_timestamp = now
        if event is not None:
            self.events.publish(event)
        return event

    def get_current_trip_data(self, now: int | None = None) -> TripSnapshot | None:
        """Snapshot of the confirmed trip, or None before confirmation.

        Args:
            now: Epoch ms to measure duration against.  Defaults to the
                 timestamp of the last processed sample.
        """
        if self._state not in (DetectionState.MOVING, DetectionState.POSSIBLY_STOPPED):
            return None
        reference = now if now is not None else (self._last_timestamp or 0)
        return TripSnapshot(
            locations=tuple(self._candidate.samples),
            distance_meters=self._candidate.distance_meters,
            duration_ms=self._candidate.duration_ms(reference),
        )

    def reset(self) -> None:
        """Force IDLE and discard any candidate.  Safe from every state."""
        if self._state != DetectionState.IDLE or not self._candidate.is_empty:
            logger.info("Detection reset from %s", self._state.value)
        self._state = DetectionState.IDLE
        self._candidate = TripCandidate()
        self._last_timestamp = None

    # ── Transitions ──────────────────────────────────────────────────────

    def _transition(self, new_state: DetectionState, now: int, speed: float) -> None:
        logger.info(
            "Detection %s → %s (speed %.1f m/s)",
            self._state.value, new_state.value, speed,
        )
        self._state = new_state
        self._candidate.state_entered_at = now

    def _begin_candidate(self, sample: LocationSample) -> None:
        self._transition(DetectionState.POSSIBLY_MOVING, sample.timestamp, sample.effective_speed)
        candidate = TripCandidate(state_entered_at=sample.timestamp)
        candidate.append(sample)
        self._candidate = candidate

    def _enter_idle(self, now: int, speed: float) -> None:
        self._transition(DetectionState.IDLE, now, speed)
        self._candidate = TripCandidate(state_entered_at=now)

    def _confirm_trip(self, now: int) -> TripEvent:
        candidate = self._candidate
        self._state = DetectionState.MOVING
        candidate.state_entered_at = now
        candidate.trip_start_timestamp = now

        logger.info(
            "Trip started (buffered=%d, distance=%.0fm)",
            len(candidate.samples), candidate.distance_meters,
        )
        return TripEvent(
            kind=TripEventKind.TRIP_STARTED,
            locations=tuple(candidate.samples),
            distance_meters=candidate.distance_meters,
            duration_ms=0,
            occurred_at=now,
        )

    def _stop_trip(self, now: int, speed: float) -> TripEvent | None:
        candidate = self._candidate
        duration = candidate.duration_ms(now)
        valid = self._gate.is_valid(candidate.distance_meters, duration, len(candidate.samples))

        event: TripEvent | None = None
        if valid:
            logger.info(
                "Trip stopped (duration=%ds, distance=%.0fm, samples=%d)",
                duration // 1000, candidate.distance_meters, len(candidate.samples),
            )
            event = TripEvent(
                kind=TripEventKind.TRIP_STOPPED,
                locations=tuple(candidate.samples),
                distance_meters=candidate.distance_meters,
                duration_ms=duration,
                occurred_at=now,
            )
        else:
            logger.info(
                "Trip candidate discarded as too short (duration=%ds, distance=%.0fm, "
                "samples=%d; min %ds / %.0fm / %d)",
                duration // 1000, candidate.distance_meters, len(candidate.samples),
                self._gate.min_duration_ms // 1000, self._gate.min_distance_m,
                self._gate.min_samples,
            )

        self._enter_idle(now, speed)
        return event

    # ── Dunder ───────────────────────────────────────────────────────────

    def __repr__(self) -> str:
        return f"TripDetector(state={self._state.value}, candidate={self._candidate!r})"
