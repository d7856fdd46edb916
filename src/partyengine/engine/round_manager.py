"""RoundManager - round counters, completion and eliminations."""

from typing import Optional

from partyengine.models.snapshots import RoundSnapshot


class RoundManager:
    """Owns current_round / total_rounds and who sits out.

    Round and turn machines are kept apart. The orchestrator calls
    complete_round() when the TurnManager reports a finished cycle (in
    round-per-turn mode every concluded turn counts as one); RoundManager
    never looks at turns itself.

    Lifecycle:
        start_round()     0 -> 1 at game start, clears temporary eliminations
        complete_round()  marks the current round done; on the last round
                          sets is_complete, otherwise the caller follows up
                          with start_round()
    """

    def __init__(self, snapshot: RoundSnapshot):
        self._snapshot = snapshot

    @classmethod
    def from_snapshot(cls, snapshot: RoundSnapshot) -> "RoundManager":
        return cls(snapshot.model_copy(deep=True))

    def snapshot(self) -> RoundSnapshot:
        return self._snapshot.model_copy(deep=True)

    @property
    def current_round(self) -> int:
        return self._snapshot.current_round

    @property
    def total_rounds(self) -> int:
        return self._snapshot.total_rounds

    @property
    def round_per_turn(self) -> bool:
        return self._snapshot.round_per_turn

    @property
    def is_complete(self) -> bool:
        return self._snapshot.is_complete

    def is_last_round(self) -> bool:
        return self._snapshot.current_round >= self._snapshot.total_rounds

    def start_round(self) -> int:
        """Enter the next round.

        Returns:
            The new current round. Unchanged if the match is complete or
            already on its last round.
        """
        if self._snapshot.is_complete or self.is_last_round():
            return self._snapshot.current_round
        self._snapshot.current_round += 1
        self._snapshot.temporarily_eliminated = set()
        return self._snapshot.current_round

    def complete_round(self) -> bool:
        """Record that the current round finished.

        Calling this once the match is complete is a no-op (returns False);
        it is a safety net, callers must not rely on it for correctness.

        Returns:
            True if this call completed the whole match.
        """
        if self._snapshot.is_complete:
            return False
        if self.is_last_round():
            self._snapshot.is_complete = True
            return True
        return False

    def eliminate_temporarily(self, player_id: str) -> None:
        self._snapshot.temporarily_eliminated.add(player_id)

    def eliminate_permanently(self, player_id: str) -> None:
        self._snapshot.temporarily_eliminated.discard(player_id)
        self._snapshot.permanently_eliminated.add(player_id)

    def clear_temporary_eliminations(self) -> None:
        self._snapshot.temporarily_eliminated = set()

    def is_eliminated(self, player_id: str) -> bool:
        return (
            player_id in self._snapshot.permanently_eliminated
            or player_id in self._snapshot.temporarily_eliminated
        )

    def eliminated(self) -> set[str]:
        return self._snapshot.permanently_eliminated | self._snapshot.temporarily_eliminated

    def forget_player(self, player_id: str) -> None:
        """Drop a departed player from elimination bookkeeping."""
        self._snapshot.temporarily_eliminated.discard(player_id)
        self._snapshot.permanently_eliminated.discard(player_id)

    def progress(self) -> dict[str, Optional[int]]:
        return {
            "current_round": self._snapshot.current_round,
            "total_rounds": self._snapshot.total_rounds,
            "rounds_left": max(0, self._snapshot.total_rounds - self._snapshot.current_round),
        }
