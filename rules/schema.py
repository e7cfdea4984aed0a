"""Pydantic models describing a declarative, token-gated rule definition."""

from __future__ import annotations

import re
from collections import Counter
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .conditions import CompiledCondition, compile_condition
from .errors import MalformedRuleError
from .tokens import TokenBag

ConstraintPredicate = Callable[[Any, Any], Any]


@lru_cache(maxsize=None)
def _compiled(expression: str) -> CompiledCondition:
    return compile_condition(expression)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


class _RuleModel(BaseModel):
    """Shared configuration: frozen, strict about unknown keys."""

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise MalformedRuleError(f"{type(self).__name__} is malformed: {_describe(exc)}") from exc

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]):
        """Validate ``payload`` and raise :class:`MalformedRuleError` on failure."""

        if not isinstance(payload, Mapping):
            raise MalformedRuleError(f"{cls.__name__} payload must be a mapping, got {type(payload).__name__}")
        return cls(**dict(payload))


_ALPHANUMERIC = re.compile(r"[A-Za-z0-9]")


def _require_name(value: str, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} must not be empty")
    if _ALPHANUMERIC.search(value) is None:
        raise ValueError(f"{label} must contain a letter or digit: {value!r}")
    return value.strip()


class Trigger(_RuleModel):
    """Fired by a named game occurrence; grants its tokens unconditionally."""

    event: str
    condition: Optional[str] = None
    action: Optional[str] = None
    grants: TokenBag = Field(default_factory=TokenBag)

    @field_validator("event", mode="before")
    @classmethod
    def _validate_event(cls, value: Any) -> str:
        return _require_name(value, "Trigger event")

    @field_validator("grants", mode="before")
    @classmethod
    def _parse_grants(cls, value: Any) -> TokenBag:
        return TokenBag.parse(value)

    @field_validator("condition")
    @classmethod
    def _compile_condition(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            _compiled(value)
        return value

    @property
    def name(self) -> str:
        return self.event


class Action(_RuleModel):
    """A player-initiated effect whose cost is paid before it resolves."""

    name: str
    effect: Optional[str] = None
    when: Optional[str] = None
    costs: TokenBag = Field(default_factory=TokenBag)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_name(value, "Action name")

    @field_validator("costs", mode="before")
    @classmethod
    def _parse_costs(cls, value: Any) -> TokenBag:
        return TokenBag.parse(value)


class Constraint(_RuleModel):
    """A gate that blocks unless its condition passes or its bypass is paid.

    ``condition`` is either a condition expression or a Python callable taking
    ``(context, event)``. A truthy result means the constraint *blocks*.
    """

    name: str
    condition: Union[str, ConstraintPredicate]
    message: Optional[str] = None
    bypass_cost: TokenBag = Field(default_factory=TokenBag)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_name(value, "Constraint name")

    @field_validator("bypass_cost", mode="before")
    @classmethod
    def _parse_bypass_cost(cls, value: Any) -> TokenBag:
        return TokenBag.parse(value)

    @field_validator("condition")
    @classmethod
    def _compile_condition(cls, value: Union[str, ConstraintPredicate]) -> Union[str, ConstraintPredicate]:
        if isinstance(value, str):
            _compiled(value)
        return value

    def predicate(self) -> ConstraintPredicate:
        """Return the callable evaluating this constraint's condition."""

        if isinstance(self.condition, str):
            return _compiled(self.condition)
        return self.condition

    def blocks(self, context: Any, event: Any) -> bool:
        return bool(self.predicate()(context, event))


def _duplicates(names: Iterable[str]) -> List[str]:
    return sorted(name for name, count in Counter(names).items() if count > 1)


class RuleDefinition(_RuleModel):
    """Top-level, read-only description of one game's token-gated rules."""

    name: str
    players: int = Field(default=2, ge=1)
    initial_state: Dict[str, Any] = Field(default_factory=dict)
    triggers: Tuple[Trigger, ...] = ()
    actions: Tuple[Action, ...] = ()
    constraints: Tuple[Constraint, ...] = ()

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_name(value, "Rule definition name")

    @model_validator(mode="after")
    def _validate_unique_names(self) -> "RuleDefinition":
        for label, names in (
            ("trigger", [trigger.event for trigger in self.triggers]),
            ("action", [action.name for action in self.actions]),
            ("constraint", [constraint.name for constraint in self.constraints]),
        ):
            duplicated = _duplicates(names)
            if duplicated:
                raise ValueError(f"Duplicate {label} names: {', '.join(duplicated)}")
        return self

    def token_types(self) -> Tuple[str, ...]:
        """Distinct token types referenced by grants, costs and bypass costs."""

        seen: Dict[str, None] = {}
        bags: List[TokenBag] = [trigger.grants for trigger in self.triggers]
        bags.extend(action.costs for action in self.actions)
        bags.extend(constraint.bypass_cost for constraint in self.constraints)
        for bag in bags:
            for token in bag.token_types():
                seen.setdefault(token, None)
        return tuple(seen)


__all__ = [
    "Action",
    "Constraint",
    "ConstraintPredicate",
    "RuleDefinition",
    "Trigger",
]
