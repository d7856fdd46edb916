"""Lock subsystem: per-player action guard and the distributed round-transition lock.

PlayerActionLock lives inside the persisted state and stops a player from
acting twice in the same round/phase. RoundTransitionLock lives in a shared
key-value store and lets at most one concurrent request run a round/turn
transition.
"""

import logging
from threading import Lock
from typing import Optional, Protocol, Union

from partyengine.engine.clock import Clock, SystemClock
from partyengine.models.snapshots import ActionLockSnapshot, LockEntry, MatchPhase

logger = logging.getLogger(__name__)

# (turn_sequence, phase_index)
Step = tuple[int, int]

# Steps remembered per player
ACTED_HISTORY = 8


# ============================================================================
# PlayerActionLock
# ============================================================================


class PlayerActionLock:
    """Tracks which players already acted in the current round/phase."""

    def __init__(self, snapshot: Optional[ActionLockSnapshot] = None, clock: Optional[Clock] = None):
        self._snapshot = snapshot if snapshot is not None else ActionLockSnapshot()
        self._clock = clock or SystemClock()

    @classmethod
    def from_snapshot(cls, snapshot: ActionLockSnapshot, clock: Optional[Clock] = None) -> "PlayerActionLock":
        return cls(snapshot.model_copy(deep=True), clock)

    def snapshot(self) -> ActionLockSnapshot:
        return self._snapshot.model_copy(deep=True)

    def try_lock(self, player_id: str, step: Optional[Step] = None) -> bool:
        """Lock a player. False means they already acted (AlreadyActed).

        When step is given it is also remembered in the acted history.
        """
        if player_id in self._snapshot.locked:
            return False
        self._snapshot.locked[player_id] = LockEntry(timestamp=self._clock.now())
        if step is not None:
            self.record(player_id, step)
        return True

    def record(self, player_id: str, step: Step) -> bool:
        """Remember that a player acted in a (turn_sequence, phase_index) step.

        Returns:
            False if that step was already remembered for the player.
        """
        steps = self._snapshot.acted.setdefault(player_id, [])
        step = tuple(step)
        if step in steps:
            return False
        steps.append(step)
        del steps[:-ACTED_HISTORY]
        return True

    def has_acted(self, player_id: str, step: Step) -> bool:
        return tuple(step) in self._snapshot.acted.get(player_id, [])

    def forget(self, player_id: str) -> None:
        """Drop the lock and the acted history of a departed player."""
        self.unlock(player_id)
        self._snapshot.acted.pop(player_id, None)

    def is_locked(self, player_id: str) -> bool:
        return player_id in self._snapshot.locked

    def unlock(self, player_id: str) -> bool:
        return self._snapshot.locked.pop(player_id, None) is not None

    def unlock_all(self) -> list[str]:
        """Clear every entry. Returns who was unlocked, sorted."""
        unlocked = sorted(self._snapshot.locked)
        self._snapshot.locked = {}
        return unlocked

    def locked_players(self) -> list[str]:
        return sorted(self._snapshot.locked)


# ============================================================================
# Distributed lock store
# ============================================================================


class LockStore(Protocol):
    """Shared store with an atomic set-if-absent (Redis SET NX EX, memcached add, ...)."""

    async def try_set_if_absent(self, key: str, ttl_seconds: int) -> bool:
        ...

    async def delete(self, key: str) -> None:
        ...


class InMemoryLockStore:
    """Process-local LockStore with TTL expiry.

    Safe across asyncio tasks and threads of one process. Use a networked
    store when requests for one match can land on different processes.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SystemClock()
        self._keys: dict[str, float] = {}  # key -> expires_at
        self._mutex = Lock()

    async def try_set_if_absent(self, key: str, ttl_seconds: int) -> bool:
        now = self._clock.now()
        with self._mutex:
            expires_at = self._keys.get(key)
            if expires_at is not None and expires_at > now:
                return False
            self._keys[key] = now + ttl_seconds
            return True

    async def delete(self, key: str) -> None:
        with self._mutex:
            self._keys.pop(key, None)

    def held_keys(self) -> list[str]:
        now = self._clock.now()
        with self._mutex:
            return sorted(k for k, exp in self._keys.items() if exp > now)


# ============================================================================
# RoundTransitionLock
# ============================================================================


class RoundTransitionLock:
    """At-most-one-winner guard over a (match, round, phase) transition.

    The phase part of the key is qualified by the turn sequence so each turn
    transition inside one round gets its own key. Acquisition never blocks:
    a caller that loses must skip the transition, not retry it.
    """

    def __init__(self, store: LockStore, ttl_seconds: int = 10):
        self._store = store
        self._ttl = ttl_seconds

    @staticmethod
    def key(match_id: str, round: int, phase: Union[MatchPhase, str], turn: int = 0) -> str:
        phase_name = phase.value if isinstance(phase, MatchPhase) else phase
        return f"match:{match_id}:round:{round}:phase:{phase_name}:turn:{turn}:lock"

    async def try_acquire(
        self,
        match_id: str,
        round: int,
        phase: Union[MatchPhase, str],
        turn: int = 0,
    ) -> bool:
        lock_key = self.key(match_id, round, phase, turn)
        acquired = await self._store.try_set_if_absent(lock_key, self._ttl)
        if acquired:
            logger.info("Transition lock acquired: %s (ttl=%ss)", lock_key, self._ttl)
        else:
            logger.info("Transition lock already held: %s", lock_key)
        return acquired

    async def release(
        self,
        match_id: str,
        round: int,
        phase: Union[MatchPhase, str],
        turn: int = 0,
    ) -> None:
        lock_key = self.key(match_id, round, phase, turn)
        await self._store.delete(lock_key)
        logger.debug("Transition lock released: %s", lock_key)
