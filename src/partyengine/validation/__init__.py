"""Match state validation.

Files:
- types.py: ValidationViolation, ValidationSeverity
- state_consistency.py: S/R/T/O/L/P/H invariant checks over a MatchState
"""

from .types import ValidationViolation, ValidationSeverity
from .state_consistency import (
    validate_match_state,
    validate_player_sets,
    validate_rounds,
    validate_turns,
    validate_roles,
    validate_locks,
    validate_phase,
    validate_round_phases,
)

__all__ = [
    "ValidationViolation",
    "ValidationSeverity",
    "validate_match_state",
    "validate_player_sets",
    "validate_rounds",
    "validate_turns",
    "validate_roles",
    "validate_locks",
    "validate_phase",
    "validate_round_phases",
]
