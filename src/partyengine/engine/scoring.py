"""ScoringSystem - per-player integer accumulator."""

from typing import Any, Iterable, Optional, Protocol

from partyengine.models.snapshots import RankingEntry, ScoreEntry, ScoreSnapshot


class ScoringSystem:
    """Running totals per player.

    award() is the only mutator of totals and does no deduplication: the
    caller must invoke it at most once per scoring event.
    """

    def __init__(self, snapshot: Optional[ScoreSnapshot] = None):
        self._snapshot = snapshot if snapshot is not None else ScoreSnapshot()

    @classmethod
    def from_snapshot(cls, snapshot: ScoreSnapshot) -> "ScoringSystem":
        return cls(snapshot.model_copy(deep=True))

    def snapshot(self) -> ScoreSnapshot:
        return self._snapshot.model_copy(deep=True)

    def add_player(self, player_id: str, initial_score: int = 0) -> None:
        """Give a player an entry. Existing entries are left as they are."""
        self._snapshot.scores.setdefault(player_id, initial_score)

    def award(
        self,
        player_id: str,
        delta: int,
        round: int = 0,
        reason: Optional[str] = None,
    ) -> int:
        """Add delta (zero or negative for penalties) to a player's total.

        Returns:
            The player's new total.
        """
        total = self._snapshot.scores.get(player_id, 0) + delta
        self._snapshot.scores[player_id] = total
        if self._snapshot.track_history:
            self._snapshot.history.append(
                ScoreEntry(player_id=player_id, delta=delta, round=round, reason=reason)
            )
        return total

    def score(self, player_id: str) -> int:
        return self._snapshot.scores.get(player_id, 0)

    def scores(self) -> dict[str, int]:
        return dict(self._snapshot.scores)

    def ranking(self, players: Optional[Iterable[str]] = None) -> list[RankingEntry]:
        """Players by descending score; equal scores are ordered by player id.

        Args:
            players: Restrict the ranking to these ids. Defaults to everyone
                     who ever held a score.
        """
        ids = set(players) if players is not None else set(self._snapshot.scores)
        ordered = sorted(ids, key=lambda pid: (-self.score(pid), pid))
        return [
            RankingEntry(position=position, player_id=pid, score=self.score(pid))
            for position, pid in enumerate(ordered, start=1)
        ]

    def winners(self, players: Optional[Iterable[str]] = None) -> list[str]:
        """Every player sharing the top score (more than one on a tie)."""
        ranking = self.ranking(players)
        if not ranking:
            return []
        top = ranking[0].score
        return [entry.player_id for entry in ranking if entry.score == top]

    def statistics(self) -> dict[str, Any]:
        values = list(self._snapshot.scores.values())
        if not values:
            return {
                "total_players": 0,
                "total_points": 0,
                "average_score": 0,
                "highest_score": 0,
                "lowest_score": 0,
            }
        return {
            "total_players": len(values),
            "total_points": sum(values),
            "average_score": round(sum(values) / len(values), 2),
            "highest_score": max(values),
            "lowest_score": min(values),
        }


# ============================================================================
# Score calculators (used by game handlers to build score_deltas)
# ============================================================================


class ScoreCalculator(Protocol):
    def calculate(self, event_type: str, context: dict[str, Any]) -> int:
        ...

    def supports(self, event_type: str) -> bool:
        ...


class TableScoreCalculator:
    """Looks up points per event type.

    A "points" key in the context overrides the table, so games can pass
    computed values (e.g. time bonuses) through the same interface.

    Usage:
        calc = TableScoreCalculator({"correct_answer": 10, "wrong_answer": -2})
        calc.calculate("correct_answer", {})  # 10
    """

    def __init__(self, points: Optional[dict[str, int]] = None):
        self._points = dict(points or {})

    def calculate(self, event_type: str, context: dict[str, Any]) -> int:
        if "points" in context:
            return int(context["points"])
        return self._points.get(event_type, 0)

    def supports(self, event_type: str) -> bool:
        return event_type in self._points
