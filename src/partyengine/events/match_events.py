"""Domain events emitted by the match engine."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field

from partyengine.models.snapshots import RankingEntry, TurnMode


class MatchEvent(BaseModel):
    """Base class for all match events.

    Events are immutable once built; the engine publishes them in the
    order they were collected, after the state that produced them is saved.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
    match_id: str
    round: int = 0

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def payload(self) -> dict[str, Any]:
        """JSON-compatible payload handed to the event sink."""
        return self.model_dump(mode="json")

    def __str__(self) -> str:
        return f"{self.name}(match={self.match_id}, round={self.round})"


# ============================================================================
# Lifecycle
# ============================================================================


class GameStarted(MatchEvent):
    players: list[str]
    turn_mode: TurnMode
    total_rounds: int


class RoundStarted(MatchEvent):
    current_player: Optional[str] = None  # sequential mode only
    roles: dict[str, str] = Field(default_factory=dict)
    time_limit_seconds: Optional[int] = None
    phase_name: Optional[str] = None  # first in-turn phase, if any


class RoundEnded(MatchEvent):
    scores: dict[str, int] = Field(default_factory=dict)
    is_final: bool = False


class TurnChanged(MatchEvent):
    current_player: Optional[str] = None
    turn_index: int
    turn_sequence: int
    next_player: Optional[str] = None  # sequential mode only

    def __str__(self) -> str:
        return f"TurnChanged(player={self.current_player}, seq={self.turn_sequence})"


class GameEnded(MatchEvent):
    ranking: list[RankingEntry] = Field(default_factory=list)
    winners: list[str] = Field(default_factory=list)


class PhaseChanged(MatchEvent):
    phase_name: str
    phase_index: int
    duration_seconds: Optional[int] = None

    def __str__(self) -> str:
        return f"PhaseChanged(phase={self.phase_name}, index={self.phase_index})"


class MatchPaused(MatchEvent):
    remaining_time: Optional[float] = None


class MatchResumed(MatchEvent):
    remaining_time: Optional[float] = None


class TurnOrderReversed(MatchEvent):
    direction: int
    next_player: Optional[str] = None


# ============================================================================
# Player events
# ============================================================================


class PlayerActed(MatchEvent):
    player_id: str
    action: str

    def __str__(self) -> str:
        return f"PlayerActed(player={self.player_id}, action={self.action})"


class PlayerScoreUpdated(MatchEvent):
    player_id: str
    delta: int
    score: int


class PlayersUnlocked(MatchEvent):
    player_ids: list[str] = Field(default_factory=list)


class PlayerEliminated(MatchEvent):
    player_id: str
    permanent: bool = False


class PlayerRemoved(MatchEvent):
    player_id: str


class TurnTimedOut(MatchEvent):
    reported_by: str
    current_player: Optional[str] = None
    phase_name: Optional[str] = None
