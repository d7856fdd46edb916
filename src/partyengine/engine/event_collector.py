"""EventCollector - buffers the events of one request until its commit succeeds."""

import logging

from partyengine.events.match_events import MatchEvent
from partyengine.events.sink import EventSink

logger = logging.getLogger(__name__)


class EventCollector:
    """Collects events produced while handling a single request.

    Nothing reaches the sink until flush() is called, and the engine only
    calls flush() after the state that produced the events was saved. A
    request that loses its commit simply drops its collector.

    Usage:
        collector = EventCollector(match_id="m1")
        collector.add(PlayerActed(match_id="m1", round=2, player_id="a", action="guess"))
        await collector.flush(sink)
    """

    def __init__(self, match_id: str):
        self._match_id = match_id
        self._events: list[MatchEvent] = []

    @property
    def match_id(self) -> str:
        return self._match_id

    @property
    def events(self) -> list[MatchEvent]:
        return list(self._events)

    def add(self, event: MatchEvent) -> None:
        self._events.append(event)

    def names(self) -> list[str]:
        return [event.name for event in self._events]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    async def flush(self, sink: EventSink) -> list[str]:
        """Publish buffered events in order and empty the buffer.

        A failing publish is logged and skipped; it never undoes the commit
        that already happened, and later events are still delivered.

        Returns:
            Names of the events handed to the sink.
        """
        delivered = []
        events, self._events = self._events, []
        for event in events:
            try:
                await sink.publish(event.name, event.payload())
            except Exception:
                logger.exception("Failed to publish %s for match %s", event.name, self._match_id)
                continue
            delivered.append(event.name)
        return delivered
