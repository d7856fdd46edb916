"""Exceptions raised by the match engine and its collaborators."""

from enum import Enum
from typing import Optional


class RejectionReason(str, Enum):
    """Why an action was refused. Every reason leaves persisted state untouched."""

    INVALID_PHASE = "INVALID_PHASE"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    ALREADY_ACTED = "ALREADY_ACTED"
    PLAYER_NOT_ACTIVE = "PLAYER_NOT_ACTIVE"
    HANDLER_REJECTED = "HANDLER_REJECTED"
    TIMER_NOT_EXPIRED = "TIMER_NOT_EXPIRED"


class EngineError(Exception):
    """Base class for engine errors."""


class ActionRejected(EngineError):
    """Raised inside the engine when an action fails validation.

    The orchestrator converts it into a rejected ActionOutcome before
    returning to the caller.
    """

    def __init__(self, reason: RejectionReason, message: Optional[str] = None):
        self.reason = reason
        self.message = message or reason.value
        super().__init__(self.message)


class TransitionLost(EngineError):
    """Another request already advanced the round. Absorbed by the engine."""


class MatchNotFoundError(EngineError):
    """Raised by a repository when no state exists for a match id."""

    def __init__(self, match_id: str):
        self.match_id = match_id
        super().__init__(f"Match {match_id!r} not found")


class StaleStateError(EngineError):
    """Raised by a repository when the stored version moved since load."""

    def __init__(self, match_id: str, expected: int, actual: int):
        self.match_id = match_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Match {match_id!r} is at version {actual}, expected {expected}"
        )


class CommitConflictError(EngineError):
    """Raised when a commit keeps losing to concurrent writers."""

    def __init__(self, match_id: str, attempts: int):
        self.match_id = match_id
        self.attempts = attempts
        super().__init__(
            f"Could not commit match {match_id!r} after {attempts} attempt(s)"
        )


class InvariantViolationError(EngineError):
    """Raised by StrictValidator when a state breaks a cross-snapshot invariant."""

    def __init__(self, violations: list):
        self.violations = violations
        count = len(violations)
        super().__init__(f"State validation failed with {count} violation(s)")

    def __str__(self) -> str:
        if not self.violations:
            return "InvariantViolationError(no violations)"
        lines = [f"InvariantViolationError({len(self.violations)} violations):"]
        for v in self.violations:
            lines.append(f"  {v.rule_id}: {v.message}")
        return "\n".join(lines)
