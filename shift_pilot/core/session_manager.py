"""TripSessionManager — owner of the single active trip.

Design notes:
    - At most one ActiveTripSession exists.  Conflicting starts are rejected,
      never queued or merged, and manual sessions always win: a manual start
      resets the detector, detector events are ignored while a manual
      session is open, and closing any session resets the detector again so
      a drive is never reported twice.
    - Stopping is two-phase.  request_stop() only records intent so the host
      can ask for confirmation; cancel_stop() leaves the session untouched;
      confirm_stop() ends tracking and runs the validity gate.
    - A manual stop that fails the gate produces a ``trip_discarded`` event
      and an outcome carrying the measured distance and duration.  Auto
      candidates that fail the gate never leave the detector.
    - Finished trips wait as PendingTripData until the host classifies or
      discards them.
    - Every mutation checkpoints through a rate-limited writer; session
      open/close and app lifecycle transitions flush immediately.
    - Everything here is synchronous.  Callers serialise access (one sample
      or command at a time); the manager holds no lock of its own.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from pydantic import BaseModel, Field

from shift_pilot.adapters.source import LocationSource
from shift_pilot.core.detector import TripDetector
from shift_pilot.core.errors import NoActiveSessionError, NoPendingTripError, TrackingError
from shift_pilot.core.geodesic import accumulate_path_distance
from shift_pilot.core.validity import DEFAULT_GATE, TripValidityGate
from shift_pilot.domain.enums import AppState, SessionMode, TripEventKind, TripPurpose
from shift_pilot.domain.sample import LocationSample
from shift_pilot.domain.session import ActiveTripSession, PendingTripData
from shift_pilot.domain.trip_event import TripEvent
from shift_pilot.foundation.clock import Clock, now_ms
from shift_pilot.foundation.events import EventChannel, Subscription
from shift_pilot.store.checkpoint import CheckpointWriter, InMemoryCheckpointStore

logger = logging.getLogger(__name__)


class TripClassifier(Protocol):
    """Collaborator that persists a classified trip and returns its id."""

    def classify(
        self,
        pending: PendingTripData,
        purpose: TripPurpose,
        notes: str | None = None,
    ) -> str:
        ...


# ── Result objects ───────────────────────────────────────────────────────────

class StartResult(BaseModel):
    """Outcome of a manual start request.

    ``session`` is the newly opened session when accepted, otherwise the one
    that blocked the start.
    """

    accepted: bool
    session: ActiveTripSession
    reason: Optional[str] = Field(default=None, description="Why the start was rejected")

    model_config = {"frozen": True}


class StopOutcome(BaseModel):
    """Outcome of a confirmed stop."""

    saved: bool = Field(..., description="True if the trip passed the validity gate")
    distance_meters: float
    duration_ms: int
    sample_count: int
    pending: Optional[PendingTripData] = None
    reason: Optional[str] = None

    model_config = {"frozen": True}


# ── Manager ──────────────────────────────────────────────────────────────────

class TripSessionManager:
    """Owns the active-trip slot and the pending (unclassified) trip.

    Args:
        source: Provider of live samples and one-shot reads.
        checkpoints: Rate-limited checkpoint writer.  Defaults to an
            in-memory store on the same clock.
        detector: Automatic trip detector.  Without one, only manual
            tracking is available.
        classifier: Collaborator receiving classified trips.
        gate: Validity gate for confirmed stops.  Share it with the detector.
        clock: Source of epoch ms for session start/stop times.
    """

    def __init__(
        self,
        source: LocationSource,
        checkpoints: CheckpointWriter | None = None,
        detector: TripDetector | None = None,
        classifier: TripClassifier | None = None,
        gate: TripValidityGate | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._source = source
        self._clock = clock
        self._checkpoints = checkpoints or CheckpointWriter(InMemoryCheckpointStore(), clock=clock)
        self._detector = detector
        self._classifier = classifier
        self._gate = gate or DEFAULT_GATE

        self._session: ActiveTripSession | None = None
        self._pending: PendingTripData | None = None
        self._stop_requested = False

        self._sample_subscription: Subscription | None = None
        self._detector_feed: Subscription | None = None
        self._detector_events: Subscription | None = None

        self.events: EventChannel[TripEvent] = EventChannel("trip-sessions")

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def session(self) -> ActiveTripSession | None:
        """Copy of the active session, or None."""
        return self._session.snapshot() if self._session is not None else None

    @property
    def pending_trip(self) -> PendingTripData | None:
        return self._pending

    @property
    def is_tracking(self) -> bool:
        return self._session is not None

    @property
    def tracking_mode(self) -> SessionMode | None:
        return self._session.mode if self._session is not None else None

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    @property
    def auto_detect_enabled(self) -> bool:
        return self._detector_feed is not None

    @property
    def detector(self) -> TripDetector | None:
        return self._detector

    def status(self) -> dict:
        """Structural facts about the manager for the host API."""
        now = self._clock()
        return {
            "tracking": self.is_tracking,
            "mode": self.tracking_mode.value if self.tracking_mode else None,
            "stop_requested": self._stop_requested,
            "auto_detect_enabled": self.auto_detect_enabled,
            "detection_state": self._detector.state.value if self._detector else None,
            "session": self._session.summary(now) if self._session else None,
            "pending_trip": self._pending.summary() if self._pending else None,
        }

    # ── Manual tracking ──────────────────────────────────────────────────

    def start_manual(self) -> StartResult:
        """Open a manual session, unless any session is already open."""
        if self._session is not None:
            logger.warning(
                "Manual start rejected: %s session already active", self._session.mode.value
            )
            return StartResult(
                accepted=False,
                session=self._session.snapshot(),
                reason="session_active",
            )

        if self._detector is not None:
            self._detector.reset()

        now = self._clock()
        session = ActiveTripSession(start_time=now, mode=SessionMode.MANUAL)
        start_sample = self._source.get_current_sample()
        if start_sample is not None:
            session.append_sample(start_sample)
        else:
            logger.info("Manual trip starting without a start location")

        self._open(session)
        logger.info("Manual trip started at %d", now)
        self.events.publish(TripEvent(
            kind=TripEventKind.TRIP_STARTED,
            mode=SessionMode.MANUAL,
            locations=tuple(session.locations),
            distance_meters=0.0,
            duration_ms=0,
            occurred_at=now,
        ))
        return StartResult(accepted=True, session=session.snapshot())

    def on_location_sample(self, sample: LocationSample) -> None:
        """Append a streamed sample to the open session."""
        if self._session is None:
            logger.debug("Sample %s arrived with no open session, ignored", sample)
            return
        self._session.append_sample(sample)
        self._checkpoints.maybe_save(self._session)

    # ── Two-phase stop ───────────────────────────────────────────────────

    def request_stop(self) -> ActiveTripSession:
        """Record the intent to stop.  Returns the session to be confirmed.

        Raises:
            NoActiveSessionError: If no session is open.
        """
        if self._session is None:
            raise NoActiveSessionError("no active trip to stop")
        self._stop_requested = True
        logger.info("Stop requested for %s trip", self._session.mode.value)
        return self._session.snapshot()

    def cancel_stop(self) -> None:
        """Withdraw a stop request.  The session keeps running unchanged."""
        if self._stop_requested:
            logger.info("Stop request cancelled")
        self._stop_requested = False

    def confirm_stop(self) -> StopOutcome:
        """End the open session and run it through the validity gate.

        Raises:
            NoActiveSessionError: If no session is open.
        """
        session = self._session
        if session is None:
            raise NoActiveSessionError("no active trip to stop")

        now = self._clock()
        duration = session.duration_ms(now)
        distance = session.distance_meters
        count = session.sample_count

        self._close()

        if not self._gate.is_valid(distance, duration, count):
            logger.info(
                "Trip too short, discarded (duration=%ds, distance=%.0fm, samples=%d)",
                duration // 1000, distance, count,
            )
            self.events.publish(TripEvent(
                kind=TripEventKind.TRIP_DISCARDED,
                mode=session.mode,
                locations=tuple(session.locations),
                distance_meters=distance,
                duration_ms=duration,
                occurred_at=now,
                reason="too_short",
            ))
            return StopOutcome(
                saved=False,
                distance_meters=distance,
                duration_ms=duration,
                sample_count=count,
                reason="too_short",
            )

        pending = PendingTripData(
            start_time=session.start_time,
            end_time=now,
            mode=session.mode,
            locations=tuple(session.locations),
            distance_meters=distance,
            start_location=session.start_location,
        )
        self._set_pending(pending)
        self._publish_stopped(pending, now)
        return StopOutcome(
            saved=True,
            distance_meters=distance,
            duration_ms=duration,
            sample_count=count,
            pending=pending,
        )

    # ── Pending trip ─────────────────────────────────────────────────────

    def complete_trip(self, purpose: TripPurpose, notes: str | None = None) -> str:
        """Hand the pending trip to the classifier and return its trip id.

        The pending trip is kept if the classifier raises.

        Raises:
            NoPendingTripError: If nothing is waiting for classification.
            TrackingError: If no classifier was configured.
        """
        pending = self._pending
        if pending is None:
            raise NoPendingTripError("no pending trip to complete")
        if self._classifier is None:
            raise TrackingError("no trip classifier configured")

        trip_id = self._classifier.classify(pending, purpose, notes)
        self._pending = None
        logger.info(
            "Trip %s classified as %s (distance=%.0fm, samples=%d)",
            trip_id, purpose.value, pending.distance_meters, pending.sample_count,
        )
        return trip_id

    def discard_trip(self) -> None:
        """Drop the open session (if any) and the pending trip (if any)."""
        logger.info("Discarding trip")
        if self._session is not None:
            self._close()
        else:
            self._checkpoints.flush(None)
        self._pending = None

    # ── Automatic detection ──────────────────────────────────────────────

    def enable_auto_detect(self) -> bool:
        """Feed the detector from the source and listen to its events.

        Returns False when there is no detector or no background permission.
        """
        if self._detector is None:
            logger.warning("Auto-detect unavailable: no detector configured")
            return False
        if not self._source.has_background_access():
            logger.warning("Auto-detect not enabled: background location permission missing")
            return False
        if self._detector_feed is not None:
            return True

        self._detector_feed = self._source.subscribe(self._detector.process_location_update)
        self._detector_events = self._detector.events.subscribe(self.on_detection_event)
        logger.info("Auto-detect enabled")
        return True

    def disable_auto_detect(self) -> None:
        """Stop feeding the detector and reset it."""
        for subscription in (self._detector_feed, self._detector_events):
            if subscription is not None:
                subscription.unsubscribe()
        self._detector_feed = None
        self._detector_events = None
        if self._detector is not None:
            self._detector.reset()
        logger.info("Auto-detect disabled")

    def on_detection_event(self, event: TripEvent) -> None:
        """Apply a detector event to the session slot."""
        if event.kind == TripEventKind.TRIP_STARTED:
            self._on_auto_started(event)
        elif event.kind == TripEventKind.TRIP_STOPPED:
            self._on_auto_stopped(event)

    def _on_auto_started(self, event: TripEvent) -> None:
        session = self._session
        if session is not None and session.mode == SessionMode.MANUAL:
            logger.info("Ignoring auto-detected start: manual trip in progress")
            return

        if session is not None:
            # An auto session restored from a checkpoint: the drive went on.
            last_ts = session.locations[-1].timestamp if session.locations else -1
            for sample in event.locations:
                if sample.timestamp > last_ts:
                    session.append_sample(sample)
                    last_ts = sample.timestamp
            logger.info("Auto-detected start continues restored trip (samples=%d)", session.sample_count)
            self._checkpoints.maybe_save(session)
            return

        locations = list(event.locations)
        session = ActiveTripSession(
            start_time=event.occurred_at - event.duration_ms,
            mode=SessionMode.AUTO,
            locations=locations,
            distance_meters=event.distance_meters,
            start_location=locations[0] if locations else None,
        )
        self._open(session)
        logger.info("Auto-detected trip started (buffered=%d)", len(locations))
        self.events.publish(event.model_copy(update={"mode": SessionMode.AUTO}))

    def _on_auto_stopped(self, event: TripEvent) -> None:
        session = self._session
        if session is not None and session.mode == SessionMode.MANUAL:
            logger.info("Ignoring auto-detected stop: manual trip in progress")
            return

        locations = list(event.locations)
        distance = event.distance_meters
        start_time = event.occurred_at - event.duration_ms

        if session is not None:
            first_ts = locations[0].timestamp if locations else event.occurred_at
            prefix = [s for s in session.locations if s.timestamp < first_ts]
            if prefix:
                locations = prefix + locations
                distance = accumulate_path_distance(locations)
            start_time = min(start_time, session.start_time)
            self._close()

        pending = PendingTripData(
            start_time=start_time,
            end_time=event.occurred_at,
            mode=SessionMode.AUTO,
            locations=tuple(locations),
            distance_meters=distance,
            start_location=locations[0] if locations else None,
        )
        self._set_pending(pending)
        logger.info(
            "Auto-detected trip stopped (duration=%ds, distance=%.0fm)",
            pending.duration_ms // 1000, distance,
        )
        self._publish_stopped(pending, event.occurred_at)

    # ── Recovery & lifecycle ─────────────────────────────────────────────

    def restore(self) -> ActiveTripSession | None:
        """Resume a session from the last checkpoint, if one exists."""
        if self._session is not None:
            logger.warning("Restore skipped: a session is already active")
            return self._session.snapshot()

        session = self._checkpoints.load()
        if session is None:
            return None

        self._session = session
        self._stop_requested = False
        self._subscribe_samples()
        logger.info(
            "Restored %s trip from checkpoint (started=%d, samples=%d, distance=%.0fm)",
            session.mode.value, session.start_time, session.sample_count, session.distance_meters,
        )
        return session.snapshot()

    def on_app_state_change(self, state: AppState) -> None:
        """Checkpoint immediately on foreground/background transitions."""
        if self._session is None:
            return
        if state in (AppState.ACTIVE, AppState.BACKGROUND):
            logger.debug("App state %s, flushing checkpoint", state.value)
            self._checkpoints.flush(self._session)

    # ── Internals ────────────────────────────────────────────────────────

    def _open(self, session: ActiveTripSession) -> None:
        self._session = session
        self._stop_requested = False
        self._subscribe_samples()
        self._checkpoints.flush(session)

    def _close(self) -> None:
        # The detector saw the same samples as the session, whatever its mode
        if self._detector is not None:
            self._detector.reset()
        if self._sample_subscription is not None:
            self._sample_subscription.unsubscribe()
            self._sample_subscription = None
        self._session = None
        self._stop_requested = False
        self._checkpoints.flush(None)

    def _subscribe_samples(self) -> None:
        if self._sample_subscription is None:
            self._sample_subscription = self._source.subscribe(self.on_location_sample)

    def _set_pending(self, pending: PendingTripData) -> None:
        if self._pending is not None:
            logger.warning("Replacing an unclassified pending trip")
        self._pending = pending

    def _publish_stopped(self, pending: PendingTripData, now: int) -> None:
        self.events.publish(TripEvent(
            kind=TripEventKind.TRIP_STOPPED,
            mode=pending.mode,
            locations=pending.locations,
            distance_meters=pending.distance_meters,
            duration_ms=pending.duration_ms,
            occurred_at=now,
        ))

    def __repr__(self) -> str:
        mode = self._session.mode.value if self._session else None
        return (
            f"TripSessionManager(mode={mode}, pending={self._pending is not None}, "
            f"auto_detect={self.auto_detect_enabled})"
        )
