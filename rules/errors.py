"""Custom exceptions raised while defining and compiling rule definitions."""

from __future__ import annotations

from typing import Sequence


class RuleDefinitionError(ValueError):
    """Base class for build-time problems with a rule definition."""


class MalformedRuleError(RuleDefinitionError):
    """Raised when a rule definition fails validation."""


class ConditionSyntaxError(MalformedRuleError):
    """Raised when a condition expression cannot be compiled."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"Invalid condition {expression!r}: {reason}")
        self.expression = expression
        self.reason = reason


class EventNameCollisionError(RuleDefinitionError):
    """Raised when two rule entries compile to the same event name."""

    def __init__(self, event_name: str, sources: Sequence[str]) -> None:
        joined = ", ".join(sources)
        super().__init__(f"Event name '{event_name}' is produced by more than one entry: {joined}")
        self.event_name = event_name
        self.sources = tuple(sources)


class EffectExecutionError(RuntimeError):
    """Raised when an action effect fails while it is being applied."""


class RuleNotFoundError(KeyError):
    """Raised when a requested rule definition cannot be resolved."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Rule definition '{name}' not found")
        self.name = name


__all__ = [
    "ConditionSyntaxError",
    "EffectExecutionError",
    "EventNameCollisionError",
    "MalformedRuleError",
    "RuleDefinitionError",
    "RuleNotFoundError",
]
