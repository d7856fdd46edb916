"""Match persistence collaborators.

The engine reloads the whole MatchState at the start of every request and
saves it back with the version it loaded. A save against a moved version
raises StaleStateError so the engine can retry on fresh state.
"""

import asyncio
import logging
from typing import Optional, Protocol

from partyengine.errors import MatchNotFoundError, StaleStateError
from partyengine.models.match_state import MatchState

logger = logging.getLogger(__name__)


class MatchRepository(Protocol):
    """Atomic load/save of a match by id."""

    async def load(self, match_id: str) -> MatchState:
        """Return the stored state. Raises MatchNotFoundError."""
        ...

    async def save(
        self,
        match_id: str,
        state: MatchState,
        expected_version: Optional[int] = None,
    ) -> MatchState:
        """Store state and return it with its new version.

        With expected_version set, raise StaleStateError unless the stored
        version (0 for an unknown match) still equals it.
        """
        ...


class InMemoryMatchRepository:
    """Keeps serialized states in a dict.

    States go through JSON on every save and load, so callers never share
    objects with the store and every snapshot field must survive the trip.
    load() reads the stored state and then yields to the event loop, so
    concurrent requests can save in between, as against a networked store.
    """

    def __init__(self):
        self._store: dict[str, str] = {}
        self.saves = 0

    async def load(self, match_id: str) -> MatchState:
        data = self._store.get(match_id)
        await asyncio.sleep(0)
        if data is None:
            raise MatchNotFoundError(match_id)
        return MatchState.from_json(data)

    def current_version(self, match_id: str) -> int:
        data = self._store.get(match_id)
        if data is None:
            return 0
        return MatchState.from_json(data).version

    async def save(
        self,
        match_id: str,
        state: MatchState,
        expected_version: Optional[int] = None,
    ) -> MatchState:
        # No await between the version check and the write.
        current = self.current_version(match_id)
        if expected_version is not None and current != expected_version:
            logger.debug(
                "Rejecting save of %s: stored version %d, expected %d",
                match_id, current, expected_version,
            )
            raise StaleStateError(match_id, expected_version, current)
        saved = state.model_copy(update={"version": current + 1}, deep=True)
        self._store[match_id] = saved.to_json()
        self.saves += 1
        return saved

    async def exists(self, match_id: str) -> bool:
        return match_id in self._store

    async def delete(self, match_id: str) -> bool:
        return self._store.pop(match_id, None) is not None

    def match_ids(self) -> list[str]:
        return sorted(self._store)
