"""Match and engine configuration."""

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from partyengine.models.snapshots import PhaseDefinition, TurnMode


class MatchConfig(BaseModel):
    """How a single match is set up.

    Usually loaded from a per-game YAML file, e.g.::

        game_type: pictionary
        turn_mode: sequential
        total_rounds: 4
        round_per_turn: true
        time_limit_seconds: 60
        roles: [drawer, guesser]
        allow_multiple_players_per_role: true
        phases:
          - {name: draw, duration_seconds: 45}
          - {name: reveal, duration_seconds: 10}
    """

    model_config = ConfigDict(extra="forbid")

    game_type: str
    turn_mode: TurnMode = TurnMode.SIMULTANEOUS
    total_rounds: int = Field(default=1, gt=0)
    round_per_turn: bool = False
    time_limit_seconds: Optional[int] = Field(default=None, gt=0)
    roles: list[str] = Field(default_factory=lambda: ["player"])
    allow_multiple_players_per_role: bool = False
    pause_between_rounds: bool = False  # stop in SCORING after each round
    track_score_history: bool = False
    min_players: int = Field(default=1, ge=1)
    max_players: Optional[int] = None
    phases: list[PhaseDefinition] = Field(default_factory=list)  # steps inside every turn

    @model_validator(mode='after')
    def validate_config(self) -> "MatchConfig":
        if not self.roles:
            raise ValueError("roles must contain at least one role name")
        if len(set(self.roles)) != len(self.roles):
            raise ValueError(f"roles must be unique, got {self.roles}")
        names = [phase.name for phase in self.phases]
        if len(set(names)) != len(names):
            raise ValueError(f"phase names must be unique, got {names}")
        if self.max_players is not None and self.max_players < self.min_players:
            raise ValueError(
                f"max_players ({self.max_players}) is below min_players ({self.min_players})"
            )
        return self


class EngineSettings(BaseModel):
    """Process-wide knobs for MatchEngine."""

    model_config = ConfigDict(extra="forbid")

    transition_lock_ttl_seconds: int = Field(default=10, gt=0)
    commit_attempts: int = Field(default=5, ge=1)
    turn_timer_name: str = "turn_timer"


def load_match_config(path: Union[str, Path]) -> MatchConfig:
    """Load a MatchConfig from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the content does not describe a valid config.
    """
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    return MatchConfig.model_validate(data)
