"""Crash-recovery checkpoints for the active trip session.

Design notes:
    - A CheckpointStore holds at most one session.  ``save(None)`` clears it.
    - Stores raise CheckpointError on I/O failure; they never decide what a
      failure means.  The CheckpointWriter logs it and retries later, so a
      broken disk degrades recovery but never stops tracking.
    - The writer is rate limited against an injected clock: at most one
      throttled write per interval, plus explicit ``flush`` calls on session
      open/close and app lifecycle transitions.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from shift_pilot.core.errors import CheckpointError
from shift_pilot.domain.session import ActiveTripSession
from shift_pilot.foundation.clock import Clock, now_ms

logger = logging.getLogger(__name__)

DEFAULT_THROTTLE_MS = 30_000


class CheckpointStore(Protocol):
    """Durable slot for the active session."""

    def save(self, session: ActiveTripSession | None) -> None:
        """Persist *session*, or clear the slot when None."""
        ...

    def load(self) -> ActiveTripSession | None:
        """Return the persisted session, or None if the slot is empty."""
        ...


class InMemoryCheckpointStore:
    """Process-local store.  Survives nothing, useful for tests and hosts without disk."""

    def __init__(self) -> None:
        self._payload: str | None = None
        self.save_count: int = 0

    def save(self, session: ActiveTripSession | None) -> None:
        self._payload = session.model_dump_json() if session is not None else None
        self.save_count += 1

    def load(self) -> ActiveTripSession | None:
        if self._payload is None:
            return None
        return ActiveTripSession.model_validate_json(self._payload)


class JsonFileCheckpointStore:
    """Stores the session as JSON in a single file.

    Writes go to a sibling temp file that is then renamed over the target,
    so a crash mid-write leaves the previous checkpoint intact.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, session: ActiveTripSession | None) -> None:
        try:
            if session is None:
                self._path.unlink(missing_ok=True)
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(session.model_dump_json(), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError as exc:
            raise CheckpointError(f"could not write checkpoint {self._path}: {exc}") from exc

    def load(self) -> ActiveTripSession | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CheckpointError(f"could not read checkpoint {self._path}: {exc}") from exc
        try:
            return ActiveTripSession.model_validate_json(raw)
        except ValidationError as exc:
            raise CheckpointError(f"corrupt checkpoint {self._path}: {exc}") from exc


class CheckpointWriter:
    """Rate-limited, failure-tolerant front for a CheckpointStore.

    Args:
        store: Where checkpoints go.
        clock: Source of epoch ms used for throttling.
        throttle_ms: Minimum spacing between throttled writes.
    """

    def __init__(
        self,
        store: CheckpointStore,
        clock: Clock = now_ms,
        throttle_ms: int = DEFAULT_THROTTLE_MS,
    ) -> None:
        self._store = store
        self._clock = clock
        self._throttle_ms = throttle_ms
        self.last_write_at: int | None = None
        self.failed_writes: int = 0

    def maybe_save(self, session: ActiveTripSession) -> bool:
        """Write *session* unless a write happened within the throttle window."""
        now = self._clock()
        if self.last_write_at is not None and now - self.last_write_at < self._throttle_ms:
            return False
        return self._write(session, now)

    def flush(self, session: ActiveTripSession | None) -> bool:
        """Write (or clear) immediately, ignoring the throttle."""
        return self._write(session, self._clock())

    def load(self) -> ActiveTripSession | None:
        try:
            return self._store.load()
        except (CheckpointError, OSError) as exc:
            logger.warning("Checkpoint load failed, starting without a session: %s", exc)
            return None

    def _write(self, session: ActiveTripSession | None, now: int) -> bool:
        try:
            self._store.save(session)
        except (CheckpointError, OSError) as exc:
            # last_write_at is left alone so the next sample retries
            self.failed_writes += 1
            logger.warning("Checkpoint write failed (%d so far): %s", self.failed_writes, exc)
            return False
        self.last_write_at = now
        logger.debug("Checkpoint %s at %d", "saved" if session else "cleared", now)
        return True
