"""TurnManager - whose turn it is, under a sequential or simultaneous discipline.

Both variants share one interface:
- start_turn(): begin a fresh turn/cycle (clears round_complete)
- advance(): conclude the current turn; returns True when that completed a
  full cycle over turn_order. The caller follows up with start_turn()
- is_cycle_complete(): the stored round_complete flag
- reset_cycle(): reopen the current turn for another in-turn phase
- remaining_time(): seconds left on the turn, or None without a limit

Neither variant runs a timer thread; remaining_time() is a pure function of
the clock. While paused the clock reading is frozen at the pause.
"""

from typing import Iterable, Optional

from partyengine.engine.clock import Clock, SystemClock
from partyengine.models.snapshots import TurnMode, TurnSnapshot


class TurnManager:
    """Shared state handling. Use create_turn_manager() to get a variant."""

    mode: TurnMode

    def __init__(self, snapshot: TurnSnapshot, clock: Optional[Clock] = None):
        self._snapshot = snapshot
        self._clock = clock or SystemClock()

    def snapshot(self) -> TurnSnapshot:
        return self._snapshot.model_copy(deep=True)

    @property
    def turn_order(self) -> list[str]:
        return list(self._snapshot.turn_order)

    @property
    def turn_sequence(self) -> int:
        return self._snapshot.turn_sequence

    @property
    def current_player(self) -> Optional[str]:
        return None

    def is_cycle_complete(self) -> bool:
        return self._snapshot.round_complete

    def is_paused(self) -> bool:
        return self._snapshot.paused

    def pause(self) -> None:
        if self._snapshot.paused:
            return
        self._snapshot.paused = True
        self._snapshot.paused_at = self._clock.now()

    def resume(self) -> None:
        """Unfreeze; the paused span is added to the running turn."""
        if not self._snapshot.paused:
            return
        paused_at = self._snapshot.paused_at
        if paused_at is not None and self._snapshot.turn_started_at is not None:
            self._snapshot.turn_started_at += self._clock.now() - paused_at
        self._snapshot.paused = False
        self._snapshot.paused_at = None

    def _now(self) -> float:
        if self._snapshot.paused and self._snapshot.paused_at is not None:
            return self._snapshot.paused_at
        return self._clock.now()

    def remaining_time(self) -> Optional[float]:
        limit = self._snapshot.time_limit_seconds
        started = self._snapshot.turn_started_at
        if limit is None or started is None:
            return None
        return max(0.0, limit - (self._now() - started))

    def is_time_expired(self) -> bool:
        remaining = self.remaining_time()
        return remaining is not None and remaining <= 0

    def _begin_turn(self) -> None:
        self._snapshot.turn_sequence += 1
        self._snapshot.turn_started_at = self._clock.now()

    def start_turn(self, excluded: Iterable[str] = ()) -> None:
        raise NotImplementedError

    def advance(self, excluded: Iterable[str] = ()) -> bool:
        raise NotImplementedError

    def reset_cycle(self, excluded: Iterable[str] = ()) -> None:
        raise NotImplementedError

    def peek_next(self, excluded: Iterable[str] = ()) -> Optional[str]:
        return None

    def is_player_turn(self, player_id: str) -> bool:
        raise NotImplementedError

    def mark_action(self, player_id: str) -> bool:
        raise NotImplementedError

    def add_player(self, player_id: str) -> None:
        if player_id not in self._snapshot.turn_order:
            self._snapshot.turn_order.append(player_id)

    def remove_player(self, player_id: str) -> bool:
        raise NotImplementedError


class SequentialTurnManager(TurnManager):
    """One holder at a time, rotating through turn_order.

    With a single player every advance completes a cycle.
    """

    mode = TurnMode.SEQUENTIAL

    @property
    def current_player(self) -> Optional[str]:
        order = self._snapshot.turn_order
        if not order:
            return None
        return order[self._snapshot.current_turn_index]

    @property
    def current_turn_index(self) -> int:
        return self._snapshot.current_turn_index

    @property
    def direction(self) -> int:
        return self._snapshot.direction

    def start_turn(self, excluded: Iterable[str] = ()) -> None:
        self._snapshot.round_complete = False
        self._begin_turn()

    def _step(self, index: int) -> tuple[int, bool]:
        size = len(self._snapshot.turn_order)
        index += self._snapshot.direction
        if index >= size:
            return 0, True
        if index < 0:
            return size - 1, True
        return index, False

    def advance(self, excluded: Iterable[str] = ()) -> bool:
        """Move to the next holder, skipping excluded players.

        Sets round_complete exactly when the index wrapped past the end of
        turn_order (or past the start when reversed).
        """
        order = self._snapshot.turn_order
        if self._snapshot.paused or not order:
            return False

        skip = set(excluded)
        index, wrapped = self._step(self._snapshot.current_turn_index)
        for _ in range(len(order) - 1):
            if order[index] not in skip:
                break
            index, wrapped_again = self._step(index)
            wrapped = wrapped or wrapped_again

        self._snapshot.current_turn_index = index
        self._snapshot.round_complete = wrapped
        return wrapped

    def reset_cycle(self, excluded: Iterable[str] = ()) -> None:
        self._snapshot.round_complete = False

    def peek_next(self, excluded: Iterable[str] = ()) -> Optional[str]:
        """Who advance() would hand the turn to, without moving."""
        order = self._snapshot.turn_order
        if not order:
            return None
        skip = set(excluded)
        index, _ = self._step(self._snapshot.current_turn_index)
        for _ in range(len(order) - 1):
            if order[index] not in skip:
                break
            index, _ = self._step(index)
        return order[index]

    def reverse(self) -> None:
        self._snapshot.direction *= -1

    def is_player_turn(self, player_id: str) -> bool:
        return self.current_player == player_id

    def mark_action(self, player_id: str) -> bool:
        """Sequential turns end by advance(), not by acting."""
        return self._snapshot.round_complete

    def remove_player(self, player_id: str) -> bool:
        """Drop a player from turn_order, keeping the holder stable.

        When the holder leaves, the index already points at whoever follows
        them. If that wraps past the end of turn_order (or past the start
        when reversed), round_complete is set just as advance() would.
        """
        order = self._snapshot.turn_order
        if player_id not in order:
            return False
        index = self._snapshot.current_turn_index
        removed_index = order.index(player_id)
        order.remove(player_id)
        if not order:
            self._snapshot.current_turn_index = 0
        elif removed_index < index:
            self._snapshot.current_turn_index = index - 1
        elif removed_index == index:
            if self._snapshot.direction < 0:
                index -= 1
            if index < 0:
                self._snapshot.current_turn_index = len(order) - 1
                self._snapshot.round_complete = True
            elif index >= len(order):
                self._snapshot.current_turn_index = 0
                self._snapshot.round_complete = True
            else:
                self._snapshot.current_turn_index = index
        return True


class SimultaneousTurnManager(TurnManager):
    """Everyone acts at once; the cycle ends when nobody is pending.

    Completion depends only on set membership, never on arrival order.
    """

    mode = TurnMode.SIMULTANEOUS

    @property
    def pending_players(self) -> set[str]:
        return set(self._snapshot.pending_players)

    @property
    def completed_players(self) -> set[str]:
        return set(self._snapshot.completed_players)

    def start_turn(self, excluded: Iterable[str] = ()) -> None:
        skip = set(excluded)
        self._snapshot.pending_players = {p for p in self._snapshot.turn_order if p not in skip}
        self._snapshot.completed_players = set()
        self._snapshot.round_complete = False
        self._begin_turn()

    def reset_cycle(self, excluded: Iterable[str] = ()) -> None:
        """Everyone still active owes an action again; the turn does not change."""
        skip = set(excluded)
        self._snapshot.pending_players = {p for p in self._snapshot.turn_order if p not in skip}
        self._snapshot.completed_players = set()
        self._snapshot.round_complete = False

    def advance(self, excluded: Iterable[str] = ()) -> bool:
        """Close the current cycle.

        A simultaneous turn is a whole cycle, so this always reports True
        (unless paused). Players still pending are simply not waited for.
        """
        if self._snapshot.paused:
            return False
        self._snapshot.round_complete = True
        return True

    def is_player_turn(self, player_id: str) -> bool:
        return player_id in self._snapshot.pending_players

    def mark_action(self, player_id: str) -> bool:
        """Move a player from pending to completed.

        Returns:
            True once pending is empty.
        """
        if player_id in self._snapshot.pending_players:
            self._snapshot.pending_players.discard(player_id)
            self._snapshot.completed_players.add(player_id)
        self._refresh_complete()
        return self._snapshot.round_complete

    def drop_pending(self, player_id: str) -> bool:
        """Stop waiting for a player this cycle (disconnect, elimination)."""
        self._snapshot.pending_players.discard(player_id)
        self._refresh_complete()
        return self._snapshot.round_complete

    def _refresh_complete(self) -> None:
        if not self._snapshot.pending_players and self._snapshot.completed_players:
            self._snapshot.round_complete = True

    def add_player(self, player_id: str) -> None:
        super().add_player(player_id)
        if not self._snapshot.round_complete:
            self._snapshot.pending_players.add(player_id)

    def remove_player(self, player_id: str) -> bool:
        if player_id not in self._snapshot.turn_order:
            return False
        self._snapshot.turn_order.remove(player_id)
        self._snapshot.completed_players.discard(player_id)
        self.drop_pending(player_id)
        return True


def create_turn_manager(snapshot: TurnSnapshot, clock: Optional[Clock] = None) -> TurnManager:
    """Build the TurnManager variant matching snapshot.mode.

    The manager works on a copy; read the result back with snapshot().
    """
    copy = snapshot.model_copy(deep=True)
    if copy.mode == TurnMode.SEQUENTIAL:
        return SequentialTurnManager(copy, clock)
    return SimultaneousTurnManager(copy, clock)
