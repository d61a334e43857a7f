"""Location sample sources.

The core never talks to an OS location API.  It depends on the narrow
LocationSource protocol below; permission denial simply means no samples
arrive.

PushLocationSource is the in-process implementation used by the host: the
transport layer (WebSocket, background task batch, test) pushes samples in
and subscribers receive them in subscription order, one at a time.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from shift_pilot.domain.enums import PermissionState
from shift_pilot.domain.permissions import PermissionStatus
from shift_pilot.domain.sample import LocationSample
from shift_pilot.foundation.events import EventChannel, Subscription

logger = logging.getLogger(__name__)

SampleHandler = Callable[[LocationSample], None]


class LocationSource(Protocol):
    """What the core needs from a location provider."""

    def subscribe(self, handler: SampleHandler) -> Subscription:
        ...

    def get_current_sample(self) -> LocationSample | None:
        ...

    def has_foreground_access(self) -> bool:
        ...

    def has_background_access(self) -> bool:
        ...


class PushLocationSource:
    """Fan-out source fed by the host.

    Args:
        permissions: Initial permission answers.  Defaults to both granted.
    """

    def __init__(self, permissions: PermissionStatus | None = None) -> None:
        self._permissions = permissions or PermissionStatus(
            foreground=PermissionState.GRANTED,
            background=PermissionState.GRANTED,
        )
        self._channel: EventChannel[LocationSample] = EventChannel("location-samples")
        self._last_sample: LocationSample | None = None
        self.delivered_count: int = 0
        self.dropped_count: int = 0

    # ── LocationSource ───────────────────────────────────────────────────

    def subscribe(self, handler: SampleHandler) -> Subscription:
        return self._channel.subscribe(handler)

    def get_current_sample(self) -> LocationSample | None:
        """Most recent pushed sample, or None without foreground access."""
        if not self.has_foreground_access():
            return None
        return self._last_sample

    def has_foreground_access(self) -> bool:
        return self._permissions.has_foreground_access

    def has_background_access(self) -> bool:
        return self._permissions.has_full_access

    # ── Host side ────────────────────────────────────────────────────────

    @property
    def permissions(self) -> PermissionStatus:
        return self._permissions

    def set_permissions(self, permissions: PermissionStatus) -> None:
        if permissions != self._permissions:
            logger.info(
                "Location permissions changed: foreground=%s background=%s",
                permissions.foreground.value, permissions.background.value,
            )
        self._permissions = permissions

    def push(self, sample: LocationSample) -> bool:
        """Deliver *sample* to subscribers.  Returns False if it was dropped."""
        if not self.has_foreground_access():
            self.dropped_count += 1
            logger.debug("Dropping sample %s: no foreground permission", sample)
            return False
        self._last_sample = sample
        self.delivered_count += 1
        self._channel.publish(sample)
        return True

    def push_batch(self, samples: list[LocationSample]) -> int:
        """Deliver a background batch in order.  Returns how many were delivered."""
        return sum(1 for sample in samples if self.push(sample))

    @property
    def subscriber_count(self) -> int:
        return self._channel.subscriber_count
