"""Validation types shared across all validators."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel


class ValidationSeverity(str, Enum):
    """Severity level of a validation violation."""

    ERROR = "error"
    WARNING = "warning"


class ValidationViolation(BaseModel):
    """A single invariant violation found in a match state."""

    rule_id: str  # e.g., "S.1", "T.2"
    category: str  # e.g., "Player Sets", "Turns"
    message: str
    severity: ValidationSeverity = ValidationSeverity.ERROR
    context: Optional[dict] = None
