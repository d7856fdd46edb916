"""StateValidator - runtime invariant hooks for the match engine.

The engine calls on_commit() with every state it is about to save. Hooks
can be injected to catch broken invariants early.

Usage:
    # In tests or development
    validator = CollectingValidator()
    engine = MatchEngine(..., validator=validator)
    violations = validator.get_violations()

    # Fail fast instead of collecting
    engine = MatchEngine(..., validator=StrictValidator())

    # No overhead in production (validator=None)
    engine = MatchEngine(...)
"""

from typing import Protocol

from partyengine.errors import InvariantViolationError
from partyengine.models.match_state import MatchState
from partyengine.validation import ValidationSeverity, ValidationViolation, validate_match_state


class StateValidator(Protocol):
    """Hooks called by the engine before each save."""

    async def on_commit(self, state: MatchState) -> None:
        """Called with the state about to be persisted."""
        ...


class NoOpValidator:
    """No-op validator for production use (zero overhead)."""

    async def on_commit(self, state: MatchState) -> None:
        pass


class CollectingValidator:
    """Collects all violations without raising.

    Usage:
        validator = CollectingValidator()
        ...
        for v in validator.get_violations():
            print(v.rule_id, v.message)
    """

    def __init__(self):
        self._violations: list[ValidationViolation] = []
        self.checked = 0

    def get_violations(self) -> list[ValidationViolation]:
        return list(self._violations)

    def clear(self) -> None:
        self._violations.clear()
        self.checked = 0

    async def on_commit(self, state: MatchState) -> None:
        self.checked += 1
        self._violations.extend(validate_match_state(state))


class StrictValidator:
    """Raises InvariantViolationError on the first state with an error-level violation.

    The save never happens, so the broken state is not persisted.
    """

    async def on_commit(self, state: MatchState) -> None:
        violations = validate_match_state(state)
        errors = [v for v in violations if v.severity == ValidationSeverity.ERROR]
        if errors:
            raise InvariantViolationError(errors)


def create_validator(strict: bool = False) -> StateValidator:
    """Factory for the two validating hooks."""
    if strict:
        return StrictValidator()
    return CollectingValidator()
