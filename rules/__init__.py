"""Public package interface for rule definitions."""

from .conditions import CompiledCondition, compile_condition
from .effects import EffectRegistry, default_registry
from .errors import (
    ConditionSyntaxError,
    EffectExecutionError,
    EventNameCollisionError,
    MalformedRuleError,
    RuleDefinitionError,
    RuleNotFoundError,
)
from .loader import RuleRepository, load_rule_definition
from .schema import Action, Constraint, RuleDefinition, Trigger
from .tokens import TokenBag, parse_tokens

__all__ = [
    "Action",
    "CompiledCondition",
    "ConditionSyntaxError",
    "Constraint",
    "EffectRegistry",
    "EffectExecutionError",
    "EventNameCollisionError",
    "MalformedRuleError",
    "RuleDefinition",
    "RuleDefinitionError",
    "RuleNotFoundError",
    "RuleRepository",
    "TokenBag",
    "Trigger",
    "compile_condition",
    "default_registry",
    "load_rule_definition",
    "parse_tokens",
]
