"""Models package."""

from partyengine.models.snapshots import (
    TurnMode,
    MatchPhase,
    RoundSnapshot,
    TurnSnapshot,
    RoleSnapshot,
    ScoreEntry,
    ScoreSnapshot,
    TimerEntry,
    TimerSnapshot,
    LockEntry,
    ActionLockSnapshot,
    PhaseDefinition,
    PhaseSnapshot,
    RankingEntry,
)
from partyengine.models.config import (
    MatchConfig,
    EngineSettings,
    load_match_config,
)
from partyengine.models.match_state import MatchState

__all__ = [
    "TurnMode",
    "MatchPhase",
    "RoundSnapshot",
    "TurnSnapshot",
    "RoleSnapshot",
    "ScoreEntry",
    "ScoreSnapshot",
    "TimerEntry",
    "TimerSnapshot",
    "LockEntry",
    "ActionLockSnapshot",
    "PhaseDefinition",
    "PhaseSnapshot",
    "RankingEntry",
    "MatchConfig",
    "EngineSettings",
    "load_match_config",
    "MatchState",
]
