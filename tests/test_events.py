"""Tests for the typed event channel."""

from __future__ import annotations

import logging

import pytest

from shift_pilot.foundation.events import EventChannel


class TestEventChannel:
    def test_publish_reaches_subscribers_in_order(self) -> None:
        channel: EventChannel[int] = EventChannel("test")
        seen: list[tuple[str, int]] = []
        channel.subscribe(lambda x: seen.append(("a", x)))
        channel.subscribe(lambda x: seen.append(("b", x)))
        channel.publish(7)
        assert seen == [("a", 7), ("b", 7)]

    def test_unsubscribe_stops_delivery(self) -> None:
        channel: EventChannel[int] = EventChannel("test")
        seen: list[int] = []
        sub = channel.subscribe(seen.append)
        channel.publish(1)
        sub.unsubscribe()
        channel.publish(2)
        assert seen == [1]
        assert not sub.active
        assert channel.subscriber_count == 0

    def test_unsubscribe_twice_is_noop(self) -> None:
        channel: EventChannel[int] = EventChannel("test")
        sub = channel.subscribe(lambda x: None)
        sub.unsubscribe()
        sub.unsubscribe()
        assert channel.subscriber_count == 0

    def test_double_registration_rejected(self) -> None:
        channel: EventChannel[int] = EventChannel("test")
        seen: list[int] = []
        channel.subscribe(seen.append)
        with pytest.raises(ValueError):
            channel.subscribe(seen.append)
        channel.publish(3)
        assert seen == [3]

    def test_resubscribe_after_unsubscribe(self) -> None:
        channel: EventChannel[int] = EventChannel("test")
        seen: list[int] = []
        channel.subscribe(seen.append).unsubscribe()
        channel.subscribe(seen.append)
        channel.publish(4)
        assert seen == [4]

    def test_failing_handler_does_not_block_others(self, caplog: pytest.LogCaptureFixture) -> None:
        channel: EventChannel[int] = EventChannel("test")
        seen: list[int] = []

        def boom(_: int) -> None:
            raise RuntimeError("boom")

        channel.subscribe(boom)
        channel.subscribe(seen.append)
        with caplog.at_level(logging.ERROR):
            channel.publish(5)
        assert seen == [5]
        assert "handler" in caplog.text

    def test_unsubscribe_during_publish_keeps_current_delivery(self) -> None:
        channel: EventChannel[int] = EventChannel("test")
        seen: list[int] = []
        holder = {}

        def first(x: int) -> None:
            holder["second"].unsubscribe()

        channel.subscribe(first)
        holder["second"] = channel.subscribe(seen.append)
        channel.publish(1)
        channel.publish(2)
        assert seen == [1]
