"""Runtime exception types raised while a rule automaton is running."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass
class ErrorDetails:
    """Structured metadata associated with an exception."""

    code: str
    message: str


class GameRuleViolation(Exception):
    """Base class for rule related exceptions."""

    error_code = "ERR_RULE_VIOLATION"

    def __init__(self, message: str, *, details: ErrorDetails | None = None) -> None:
        super().__init__(message)
        self.details = details or ErrorDetails(code=self.error_code, message=message)

    @property
    def code(self) -> str:
        return self.details.code


class InsufficientResourcesError(GameRuleViolation):
    """Raised when the ledger cannot cover a full cost."""

    error_code = "ERR_INSUFFICIENT_RESOURCES"

    def __init__(self, shortfall: Mapping[str, int]) -> None:
        self.shortfall: Dict[str, int] = dict(shortfall)
        missing = ", ".join(f"{token} x{amount}" for token, amount in self.shortfall.items())
        message = f"Insufficient resources, missing {missing}"
        super().__init__(message, details=ErrorDetails(code=self.error_code, message=message))


class ConstraintBlockedError(GameRuleViolation):
    """Raised when a constraint blocks and its bypass cost cannot be paid."""

    error_code = "ERR_CONSTRAINT_BLOCKED"

    def __init__(self, constraint: str, message: str | None = None) -> None:
        text = message or f"Constraint '{constraint}' blocked the transition"
        super().__init__(text, details=ErrorDetails(code=self.error_code, message=text))
        self.constraint = constraint


__all__ = [
    "ConstraintBlockedError",
    "ErrorDetails",
    "GameRuleViolation",
    "InsufficientResourcesError",
]
