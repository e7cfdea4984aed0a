"""Core building blocks: errors, the resource ledger and the fixed gameplay states."""

from .errors import ConstraintBlockedError, ErrorDetails, GameRuleViolation, InsufficientResourcesError
from .ledger import ResourceLedger
from .state_machine import BASE_TOPOLOGY, INITIAL_STATE, GameplayEvent, MachineState, Phase, TokenState

__all__ = [
    "BASE_TOPOLOGY",
    "ConstraintBlockedError",
    "ErrorDetails",
    "GameRuleViolation",
    "GameplayEvent",
    "INITIAL_STATE",
    "InsufficientResourcesError",
    "MachineState",
    "Phase",
    "ResourceLedger",
    "TokenState",
]
