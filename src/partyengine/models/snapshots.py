"""Serializable per-module snapshots that make up a persisted match."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class TurnMode(str, Enum):
    """Turn discipline of a match."""

    SEQUENTIAL = "sequential"  # one holder at a time
    SIMULTANEOUS = "simultaneous"  # everyone acts at once


class MatchPhase(str, Enum):
    """Top-level phase of a match."""

    WAITING = "waiting"
    PLAYING = "playing"
    SCORING = "scoring"
    FINISHED = "finished"


class RoundSnapshot(BaseModel):
    """Round counters and elimination bookkeeping.

    current_round is 0 until the game starts and never exceeds total_rounds.
    is_complete flips once the last round's completion is committed.
    """

    current_round: int = Field(default=0, ge=0)
    total_rounds: int = Field(gt=0)
    is_complete: bool = False
    round_per_turn: bool = False
    permanently_eliminated: set[str] = Field(default_factory=set)
    temporarily_eliminated: set[str] = Field(default_factory=set)  # cleared at round start

    @model_validator(mode='after')
    def validate_round_bounds(self) -> "RoundSnapshot":
        if self.current_round > self.total_rounds:
            raise ValueError(
                f"current_round ({self.current_round}) exceeds total_rounds ({self.total_rounds})"
            )
        return self


class TurnSnapshot(BaseModel):
    """Whose turn it is.

    current_turn_index is only meaningful in sequential mode.
    pending_players / completed_players are only meaningful in simultaneous mode.
    """

    mode: TurnMode = TurnMode.SIMULTANEOUS
    turn_order: list[str] = Field(default_factory=list)
    current_turn_index: int = Field(default=0, ge=0)
    pending_players: set[str] = Field(default_factory=set)
    completed_players: set[str] = Field(default_factory=set)
    round_complete: bool = False
    time_limit_seconds: Optional[int] = None
    turn_sequence: int = 0  # number of turns started so far
    turn_started_at: Optional[float] = None
    direction: int = 1
    paused: bool = False
    paused_at: Optional[float] = None  # clock reading when paused

    @model_validator(mode='after')
    def validate_direction(self) -> "TurnSnapshot":
        if self.direction not in (1, -1):
            raise ValueError(f"direction must be 1 or -1, got {self.direction}")
        return self


class RoleSnapshot(BaseModel):
    """Role held by each active player."""

    player_roles: dict[str, str] = Field(default_factory=dict)
    available_roles: list[str] = Field(default_factory=lambda: ["player"])
    allow_multiple_players_per_role: bool = False


class ScoreEntry(BaseModel):
    """One applied score delta, kept when history tracking is on."""

    player_id: str
    delta: int
    round: int = 0
    reason: Optional[str] = None


class ScoreSnapshot(BaseModel):
    """Running totals per player. Entries are never removed."""

    scores: dict[str, int] = Field(default_factory=dict)
    track_history: bool = False
    history: list[ScoreEntry] = Field(default_factory=list)


class TimerEntry(BaseModel):
    """A named countdown."""

    duration_seconds: float
    started_at: float  # epoch seconds
    paused_remaining: Optional[float] = None  # set while paused


class TimerSnapshot(BaseModel):
    timers: dict[str, TimerEntry] = Field(default_factory=dict)


class LockEntry(BaseModel):
    timestamp: float


class ActionLockSnapshot(BaseModel):
    """Players who already acted in the current round/phase.

    acted remembers the recent (turn_sequence, phase_index) steps each player
    acted in, so an action replayed after a concurrent transition is never
    counted twice.
    """

    locked: dict[str, LockEntry] = Field(default_factory=dict)
    acted: dict[str, list[tuple[int, int]]] = Field(default_factory=dict)


class PhaseDefinition(BaseModel):
    """One named step inside a turn, optionally with its own countdown."""

    name: str = Field(min_length=1)
    duration_seconds: Optional[int] = Field(default=None, gt=0)


class PhaseSnapshot(BaseModel):
    """Ordered in-turn phases and the one currently running."""

    phases: list[PhaseDefinition] = Field(default_factory=list)
    current_index: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def validate_index(self) -> "PhaseSnapshot":
        if self.phases and self.current_index >= len(self.phases):
            raise ValueError(
                f"current_index ({self.current_index}) out of range for {len(self.phases)} phases"
            )
        return self


class RankingEntry(BaseModel):
    """Final standing of one player."""

    position: int
    player_id: str
    score: int
