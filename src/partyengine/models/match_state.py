"""The persisted match aggregate."""

from typing import Any
from pydantic import BaseModel, Field

from partyengine.models.config import MatchConfig
from partyengine.models.snapshots import (
    MatchPhase,
    RoundSnapshot,
    TurnSnapshot,
    RoleSnapshot,
    ScoreSnapshot,
    TimerSnapshot,
    ActionLockSnapshot,
    PhaseSnapshot,
    RankingEntry,
)


class MatchState(BaseModel):
    """Everything the engine needs to rebuild a match on any worker.

    The set of player ids in players, roles.player_roles and turn.turn_order
    must always be identical. scores keeps entries for departed players.
    """

    match_id: str
    game_type: str
    settings: MatchConfig
    phase: MatchPhase = MatchPhase.WAITING
    players: set[str] = Field(default_factory=set)
    round: RoundSnapshot
    turn: TurnSnapshot
    roles: RoleSnapshot
    scores: ScoreSnapshot
    timers: TimerSnapshot = Field(default_factory=TimerSnapshot)
    action_lock: ActionLockSnapshot = Field(default_factory=ActionLockSnapshot)
    round_phases: PhaseSnapshot = Field(default_factory=PhaseSnapshot)
    game_data: dict[str, Any] = Field(default_factory=dict)
    ranking: list[RankingEntry] = Field(default_factory=list)
    version: int = 0

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> "MatchState":
        return cls.model_validate_json(data)
