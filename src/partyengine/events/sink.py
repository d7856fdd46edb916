"""Event sink collaborators.

The engine hands every event to a sink after the commit that produced it.
Delivery is fire-and-forget: the engine neither awaits acknowledgement
nor retries a failed publish.
"""

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Where domain events go (a websocket broadcaster, a queue, ...)."""

    async def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        ...


class InMemoryEventSink:
    """Keeps published events in a list. Used by tests and the simulator."""

    def __init__(self):
        self.published: list[tuple[str, dict[str, Any]]] = []

    async def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        self.published.append((event_name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.published]

    def of_type(self, event_name: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.published if name == event_name]

    def clear(self) -> None:
        self.published.clear()


class LoggingEventSink:
    """Writes events to the log instead of delivering them."""

    def __init__(self, level: int = logging.INFO):
        self._level = level

    async def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        logger.log(
            self._level,
            "%s match=%s round=%s",
            event_name,
            payload.get("match_id"),
            payload.get("round"),
        )
