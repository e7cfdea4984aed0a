"""Handler implementations bound to catalog events.

Each handler receives the :class:`Dispatch` describing the event currently
being processed. Handlers run in the order given by the catalog entry and
share the dispatch object, which is how ``consume_tokens`` tells
``apply_effect`` whether the cost was paid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from core.errors import ConstraintBlockedError, InsufficientResourcesError
from rules.effects import EffectRegistry
from rules.errors import EffectExecutionError
from rules.schema import Action, Constraint, Trigger

from .catalog import CatalogEntry, EventKind, HandlerId
from .context import Event, RuntimeContext
from .observer import ObserverHandle, RuleLogRecord

logger = logging.getLogger(__name__)


class ConstraintStatus(str, Enum):
    PASSED = "passed"
    BYPASSED = "bypassed"
    BLOCKED = "blocked"


@dataclass
class Dispatch:
    """Per-event scratch state shared by the handlers of one chain."""

    context: RuntimeContext
    event: Event
    entry: CatalogEntry
    effects: EffectRegistry
    observers: ObserverHandle
    skip_effect_on_unpaid_cost: bool = True
    cost_paid: Optional[bool] = None
    effect_applied: bool = False
    constraint_status: Optional[ConstraintStatus] = None
    effect_error: Optional[str] = None


Handler = Callable[[Dispatch], None]

HANDLERS: Dict[HandlerId, Handler] = {}


def _handler(handler_id: HandlerId) -> Callable[[Handler], Handler]:
    def decorator(func: Handler) -> Handler:
        if handler_id in HANDLERS:
            raise ValueError(f"Handler already registered for '{handler_id.value}'")
        HANDLERS[handler_id] = func
        return func

    return decorator


def _rule(dispatch: Dispatch, expected: type):
    rule = dispatch.entry.rule
    if not isinstance(rule, expected):
        raise TypeError(f"Event {dispatch.event.type} is bound to a {type(rule).__name__}, expected {expected.__name__}")
    return rule


@_handler(HandlerId.GRANT_TOKENS)
def grant_tokens(dispatch: Dispatch) -> None:
    trigger: Trigger = _rule(dispatch, Trigger)
    dispatch.context.ledger.grant_all(trigger.grants or None)


@_handler(HandlerId.CONSUME_TOKENS)
def consume_tokens(dispatch: Dispatch) -> None:
    action: Action = _rule(dispatch, Action)
    try:
        dispatch.context.ledger.consume(action.costs or None)
    except InsufficientResourcesError as exc:
        dispatch.cost_paid = False
        logger.info("Cost of action '%s' not paid: %s", action.name, exc)
        return
    dispatch.cost_paid = True


@_handler(HandlerId.APPLY_EFFECT)
def apply_effect(dispatch: Dispatch) -> None:
    action: Action = _rule(dispatch, Action)
    if dispatch.cost_paid is False and dispatch.skip_effect_on_unpaid_cost:
        logger.info("Skipping effect of action '%s', cost unpaid", action.name)
        return
    effect_id = action.effect or action.name
    try:
        handled = dispatch.effects.apply(effect_id, dispatch.context, dispatch.event.payload)
    except EffectExecutionError as exc:
        dispatch.effect_error = str(exc)
        logger.warning("Effect '%s' of action '%s' failed: %s", effect_id, action.name, exc)
        return
    if not handled:
        logger.debug("No handler registered for effect '%s', recorded only", effect_id)
    dispatch.context.applied_effects.append(effect_id)
    dispatch.effect_applied = True


@_handler(HandlerId.CHECK_CONSTRAINT)
def check_constraint(dispatch: Dispatch) -> None:
    constraint: Constraint = _rule(dispatch, Constraint)
    if not constraint.blocks(dispatch.context, dispatch.event):
        dispatch.constraint_status = ConstraintStatus.PASSED
        return
    if not constraint.bypass_cost:
        dispatch.constraint_status = ConstraintStatus.BLOCKED
        _log(dispatch, EventKind.CONSTRAINT, ConstraintStatus.BLOCKED.value)
        raise ConstraintBlockedError(constraint.name, constraint.message)
    try:
        dispatch.context.ledger.consume(constraint.bypass_cost)
    except InsufficientResourcesError as exc:
        dispatch.constraint_status = ConstraintStatus.BLOCKED
        _log(dispatch, EventKind.CONSTRAINT, ConstraintStatus.BLOCKED.value)
        raise ConstraintBlockedError(constraint.name, constraint.message) from exc
    dispatch.constraint_status = ConstraintStatus.BYPASSED


def _log(dispatch: Dispatch, kind: EventKind, detail: str) -> None:
    ledger = dispatch.context.ledger.snapshot()
    logger.debug("%s %s: %s tokens=%s", kind.value.title(), dispatch.event.type, detail, ledger)
    dispatch.observers.notify_rule_log(
        RuleLogRecord(kind=kind, event=dispatch.event, ledger=ledger, detail=detail)
    )


@_handler(HandlerId.LOG_TRIGGER)
def log_trigger(dispatch: Dispatch) -> None:
    _log(dispatch, EventKind.TRIGGER, "fired")


@_handler(HandlerId.LOG_ACTION)
def log_action(dispatch: Dispatch) -> None:
    if dispatch.effect_error is not None:
        detail = "effect failed"
    else:
        detail = "executed" if dispatch.effect_applied else "effect skipped"
    _log(dispatch, EventKind.ACTION, detail)


@_handler(HandlerId.LOG_CONSTRAINT)
def log_constraint(dispatch: Dispatch) -> None:
    status = dispatch.constraint_status.value if dispatch.constraint_status else "checked"
    _log(dispatch, EventKind.CONSTRAINT, status)


def run_chain(dispatch: Dispatch) -> None:
    """Run every handler bound to ``dispatch.entry`` in order."""

    for handler_id in dispatch.entry.handlers:
        HANDLERS[handler_id](dispatch)


__all__ = [
    "ConstraintStatus",
    "Dispatch",
    "HANDLERS",
    "apply_effect",
    "check_constraint",
    "consume_tokens",
    "grant_tokens",
    "log_action",
    "log_constraint",
    "log_trigger",
    "run_chain",
]
