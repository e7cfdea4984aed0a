"""Rule-to-automaton compiler and runtime interpreter."""

from .builder import CompiledAutomaton, build_automaton, build_catalog, build_states
from .catalog import CatalogEntry, EventCatalog, EventKind, EventName, HandlerId, Transition
from .context import ContextSnapshot, Event, RuntimeContext
from .handlers import ConstraintStatus
from .interpreter import DispatchOutcome, DispatchResult, InterpreterConfig, RuleInterpreter
from .observer import (
    LoggingObserver,
    NullObserver,
    ObserverHandle,
    RuleLogRecord,
    TransitionNotice,
    TransitionObserver,
)

__all__ = [
    "CatalogEntry",
    "CompiledAutomaton",
    "ConstraintStatus",
    "ContextSnapshot",
    "DispatchOutcome",
    "DispatchResult",
    "Event",
    "EventCatalog",
    "EventKind",
    "EventName",
    "HandlerId",
    "InterpreterConfig",
    "LoggingObserver",
    "NullObserver",
    "ObserverHandle",
    "RuleInterpreter",
    "RuleLogRecord",
    "RuntimeContext",
    "Transition",
    "TransitionNotice",
    "TransitionObserver",
    "build_automaton",
    "build_catalog",
    "build_states",
]
