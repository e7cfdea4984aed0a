"""Runtime interpreter driving a compiled rule automaton."""

from __future__ import annotations

import copy
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union

from core.errors import ConstraintBlockedError
from core.ledger import ResourceLedger
from core.state_machine import GameplayEvent, MachineState
from rules.effects import EffectRegistry, default_registry
from rules.schema import RuleDefinition

from .builder import CompiledAutomaton, build_automaton
from .context import ContextSnapshot, Event, EventQueue, RuntimeContext
from .handlers import ConstraintStatus, Dispatch, run_chain
from .observer import ObserverHandle, TransitionNotice, TransitionObserver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InterpreterConfig:
    """Tunable behaviour of :class:`RuleInterpreter`.

    ``skip_effect_on_unpaid_cost`` decides what happens when an action's cost
    cannot be paid: skip its effect (the default) or resolve it anyway.
    ``max_history`` caps ``move_history``; the oldest events are dropped.
    """

    skip_effect_on_unpaid_cost: bool = True
    max_history: Optional[int] = None


class DispatchOutcome(str, Enum):
    IGNORED = "ignored"
    TRANSITIONED = "transitioned"
    BLOCKED = "blocked"
    DEFERRED = "deferred"


@dataclass(frozen=True)
class DispatchResult:
    """What :meth:`RuleInterpreter.send` did with an event."""

    outcome: DispatchOutcome
    event: Event
    state: str
    cost_paid: Optional[bool] = None
    effect_applied: bool = False
    constraint_status: Optional[ConstraintStatus] = None
    effect_error: Optional[str] = None

    @property
    def transitioned(self) -> bool:
        return self.outcome is DispatchOutcome.TRANSITIONED


EventLike = Union[Event, Mapping[str, Any], str]


class RuleInterpreter:
    """Holds the current state and context of one automaton instance.

    Events are dispatched synchronously. A :meth:`send` issued while a handler
    chain (or an observer callback) is still running is queued and processed,
    in order, once the current event is finished.
    """

    def __init__(
        self,
        definition: Union[RuleDefinition, CompiledAutomaton],
        *,
        config: Optional[InterpreterConfig] = None,
        effects: Optional[EffectRegistry] = None,
        observer: Optional[TransitionObserver] = None,
    ) -> None:
        if isinstance(definition, CompiledAutomaton):
            self._automaton = definition
        else:
            self._automaton = build_automaton(definition)
        self._config = config or InterpreterConfig()
        self._effects = effects or default_registry()
        self._observer = observer
        self._handle: Optional[ObserverHandle] = None
        self._context: Optional[RuntimeContext] = None
        self._queue: EventQueue = deque()
        self._dispatching = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def automaton(self) -> CompiledAutomaton:
        return self._automaton

    @property
    def config(self) -> InterpreterConfig:
        return self._config

    @property
    def started(self) -> bool:
        return self._context is not None

    @property
    def context(self) -> RuntimeContext:
        if self._context is None:
            raise RuntimeError("Interpreter has not been started")
        return self._context

    @property
    def state(self) -> MachineState:
        return self.context.current_state

    @property
    def done(self) -> bool:
        return self.started and self.state.is_terminal

    def start(self) -> ObserverHandle:
        """Reset the context to ``setup`` and begin accepting events."""

        definition = self._automaton.definition
        self._context = RuntimeContext(
            ledger=ResourceLedger(self._automaton.token_types),
            turn=1,
            current_state=self._automaton.initial_state,
            game_state=copy.deepcopy(definition.initial_state),
        )
        self._queue.clear()
        if self._handle is None:
            self._handle = ObserverHandle(self._observer)
        logger.debug("Started '%s' with tokens %s", definition.name, list(self._automaton.token_types))
        return self._handle

    def send(self, event: EventLike) -> DispatchResult:
        """Dispatch ``event`` against the current state."""

        incoming = Event.coerce(event)
        if self._dispatching:
            self._queue.append(incoming)
            return DispatchResult(DispatchOutcome.DEFERRED, incoming, self._current_value())
        self._dispatching = True
        try:
            result = self._dispatch(incoming)
            while self._queue:
                self._dispatch(self._queue.popleft())
        except Exception:
            self._queue.clear()
            raise
        finally:
            self._dispatching = False
        return result

    def available_events(self) -> Tuple[str, ...]:
        """Event labels the current state accepts."""

        if not self.started or self.done:
            return ()
        return tuple(self._automaton.transitions_from(self.state))

    def snapshot(self) -> ContextSnapshot:
        return self.context.snapshot()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def _current_value(self) -> str:
        return self._context.current_state.value if self._context is not None else ""

    def _dispatch(self, event: Event) -> DispatchResult:
        if self._context is None:
            logger.debug("Ignoring %s, interpreter not started", event.type)
            return DispatchResult(DispatchOutcome.IGNORED, event, "")
        context = self._context
        transition = self._automaton.transitions_from(context.current_state).get(event.type)
        if transition is None:
            logger.debug("Ignoring %s in state %s", event.type, context.current_state)
            return DispatchResult(DispatchOutcome.IGNORED, event, context.current_state.value)

        dispatch: Optional[Dispatch] = None
        if transition.entry is not None:
            dispatch = Dispatch(
                context=context,
                event=event,
                entry=transition.entry,
                effects=self._effects,
                observers=self._observers(),
                skip_effect_on_unpaid_cost=self._config.skip_effect_on_unpaid_cost,
            )
            try:
                run_chain(dispatch)
            except ConstraintBlockedError as exc:
                logger.info("%s blocked in state %s: %s", event.type, context.current_state, exc)
                return DispatchResult(
                    DispatchOutcome.BLOCKED,
                    event,
                    context.current_state.value,
                    constraint_status=ConstraintStatus.BLOCKED,
                )

        previous = context.current_state
        if transition.event is GameplayEvent.NEXT_TURN:
            context.turn += 1
        context.current_state = transition.target
        context.record(event, self._config.max_history)
        self._observers().notify_transition(
            TransitionNotice(
                state=context.current_state.value,
                previous_state=previous.value,
                event=event,
                context=context.snapshot(),
            )
        )
        return DispatchResult(
            DispatchOutcome.TRANSITIONED,
            event,
            context.current_state.value,
            cost_paid=dispatch.cost_paid if dispatch else None,
            effect_applied=dispatch.effect_applied if dispatch else False,
            constraint_status=dispatch.constraint_status if dispatch else None,
            effect_error=dispatch.effect_error if dispatch else None,
        )

    def _observers(self) -> ObserverHandle:
        if self._handle is None:
            self._handle = ObserverHandle(self._observer)
        return self._handle


__all__ = [
    "DispatchOutcome",
    "DispatchResult",
    "EventLike",
    "InterpreterConfig",
    "RuleInterpreter",
]
