"""Engine package - match orchestration components."""

from .clock import Clock, SystemClock, ManualClock
from .timer_service import TimerService
from .scoring import ScoringSystem, ScoreCalculator, TableScoreCalculator
from .role_manager import RoleManager
from .turn_manager import (
    TurnManager,
    SequentialTurnManager,
    SimultaneousTurnManager,
    create_turn_manager,
)
from .round_manager import RoundManager
from .phase_manager import PhaseManager
from .locks import (
    PlayerActionLock,
    LockStore,
    InMemoryLockStore,
    RoundTransitionLock,
)
from .event_collector import EventCollector
from .validator import (
    StateValidator,
    NoOpValidator,
    CollectingValidator,
    StrictValidator,
    create_validator,
)
from .repository import MatchRepository, InMemoryMatchRepository
from .session import MatchSession
from .match_engine import MatchEngine, ActionOutcome

__all__ = [
    "Clock",
    "SystemClock",
    "ManualClock",
    "TimerService",
    "ScoringSystem",
    "ScoreCalculator",
    "TableScoreCalculator",
    "RoleManager",
    "TurnManager",
    "SequentialTurnManager",
    "SimultaneousTurnManager",
    "create_turn_manager",
    "RoundManager",
    "PhaseManager",
    "PlayerActionLock",
    "LockStore",
    "InMemoryLockStore",
    "RoundTransitionLock",
    "EventCollector",
    "StateValidator",
    "NoOpValidator",
    "CollectingValidator",
    "StrictValidator",
    "create_validator",
    "MatchRepository",
    "InMemoryMatchRepository",
    "MatchSession",
    "MatchEngine",
    "ActionOutcome",
]
