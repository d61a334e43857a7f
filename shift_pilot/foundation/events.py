"""Typed publish/subscribe channel with explicit subscription handles.

Design notes:
    - Every subscribe() call returns a Subscription; dropping a handler is
      done through the handle, never by passing the callable back in.
    - The same handler may not be subscribed twice to one channel.  A second
      attempt raises ValueError instead of silently delivering twice.
    - Handlers run synchronously, in subscription order.  A failing handler
      is logged and the remaining handlers still receive the item.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar
from uuid import UUID

from shift_pilot.foundation.identifiers import new_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[T], None]


class Subscription:
    """Handle returned by EventChannel.subscribe()."""

    __slots__ = ("subscription_id", "_channel")

    def __init__(self, channel: EventChannel, subscription_id: UUID) -> None:
        self.subscription_id = subscription_id
        self._channel: EventChannel | None = channel

    @property
    def active(self) -> bool:
        return self._channel is not None

    def unsubscribe(self) -> None:
        """Detach the handler.  Calling this more than once is a no-op."""
        if self._channel is None:
            return
        self._channel._remove(self.subscription_id)
        self._channel = None

    def __repr__(self) -> str:
        return f"Subscription(id={self.subscription_id!s}, active={self.active})"


class EventChannel(Generic[T]):
    """Ordered fan-out of items of type T to subscribed handlers.

    Args:
        name: Label used in log messages.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._handlers: dict[UUID, Handler] = {}

    def subscribe(self, handler: Handler) -> Subscription:
        """Register *handler* and return its subscription handle.

        Raises:
            ValueError: If *handler* is already subscribed to this channel.
        """
        if any(h == handler for h in self._handlers.values()):
            raise ValueError(f"handler already subscribed to channel '{self._name}'")
        subscription_id = new_id()
        self._handlers[subscription_id] = handler
        logger.debug("Channel '%s': subscribed %s", self._name, subscription_id)
        return Subscription(self, subscription_id)

    def publish(self, item: T) -> None:
        """Deliver *item* to every handler in subscription order."""
        for subscription_id, handler in list(self._handlers.items()):
            try:
                handler(item)
            except Exception:
                logger.exception(
                    "Channel '%s': handler %s failed", self._name, subscription_id
                )

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def _remove(self, subscription_id: UUID) -> None:
        self._handlers.pop(subscription_id, None)
        logger.debug("Channel '%s': unsubscribed %s", self._name, subscription_id)
