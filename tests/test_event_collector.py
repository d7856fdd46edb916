"""Tests for the EventCollector component and event sinks."""

import logging

import pytest

from partyengine.engine.event_collector import EventCollector
from partyengine.events import (
    InMemoryEventSink,
    LoggingEventSink,
    PlayerActed,
    RoundEnded,
    RoundStarted,
)


class FailingSink:
    """Sink that refuses one event name."""

    def __init__(self, fail_on: str):
        self.fail_on = fail_on
        self.published = []

    async def publish(self, event_name, payload):
        if event_name == self.fail_on:
            raise ConnectionError("broker down")
        self.published.append(event_name)


def acted(player: str = "a") -> PlayerActed:
    return PlayerActed(match_id="m1", round=1, player_id=player, action="answer")


class TestEventCollectorBuffer:
    """Tests for collecting events."""

    def test_starts_empty(self):
        """Test a new collector has no events."""
        collector = EventCollector("m1")
        assert len(collector) == 0
        assert collector.events == []
        assert collector.match_id == "m1"

    def test_add_keeps_order(self):
        """Test events stay in insertion order."""
        collector = EventCollector("m1")
        collector.add(acted())
        collector.add(RoundEnded(match_id="m1", round=1))
        collector.add(RoundStarted(match_id="m1", round=2))
        assert collector.names() == ["PlayerActed", "RoundEnded", "RoundStarted"]

    def test_events_returns_a_copy(self):
        """Test mutating the returned list leaves the buffer alone."""
        collector = EventCollector("m1")
        collector.add(acted())
        collector.events.clear()
        assert len(collector) == 1

    def test_clear(self):
        """Test clear() drops buffered events."""
        collector = EventCollector("m1")
        collector.add(acted())
        collector.clear()
        assert len(collector) == 0


class TestEventCollectorFlush:
    """Tests for flushing to a sink."""

    @pytest.mark.asyncio
    async def test_flush_publishes_in_order(self):
        """Test the sink receives events in order with JSON payloads."""
        collector = EventCollector("m1")
        collector.add(acted("a"))
        collector.add(acted("b"))
        sink = InMemoryEventSink()

        delivered = await collector.flush(sink)

        assert delivered == ["PlayerActed", "PlayerActed"]
        assert [p["player_id"] for p in sink.of_type("PlayerActed")] == ["a", "b"]
        assert len(collector) == 0

    @pytest.mark.asyncio
    async def test_failed_publish_is_logged_and_skipped(self, caplog):
        """Test one failing publish neither raises nor blocks later events."""
        collector = EventCollector("m1")
        collector.add(acted())
        collector.add(RoundEnded(match_id="m1", round=1))
        sink = FailingSink(fail_on="PlayerActed")

        with caplog.at_level(logging.ERROR):
            delivered = await collector.flush(sink)

        assert delivered == ["RoundEnded"]
        assert sink.published == ["RoundEnded"]
        assert "Failed to publish PlayerActed" in caplog.text


class TestSinks:
    """Tests for the reference sinks."""

    @pytest.mark.asyncio
    async def test_in_memory_sink_helpers(self):
        """Test names/of_type/clear."""
        sink = InMemoryEventSink()
        await sink.publish("A", {"x": 1})
        await sink.publish("B", {"x": 2})
        assert sink.names() == ["A", "B"]
        assert sink.of_type("B") == [{"x": 2}]
        sink.clear()
        assert sink.published == []

    @pytest.mark.asyncio
    async def test_logging_sink(self, caplog):
        """Test the logging sink writes one line per event."""
        sink = LoggingEventSink()
        with caplog.at_level(logging.INFO):
            await sink.publish("RoundStarted", {"match_id": "m1", "round": 2})
        assert "RoundStarted match=m1 round=2" in caplog.text
