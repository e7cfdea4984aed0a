"""Observer interface for transition and rule-log notifications.

The interpreter never writes anywhere itself. Whoever wants to visualise or
record a game subscribes to the handle returned by
:meth:`automaton.interpreter.RuleInterpreter.start`, or injects an observer at
construction time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol

from .catalog import EventKind
from .context import ContextSnapshot, Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionNotice:
    """Emitted after every processed transition."""

    state: str
    previous_state: str
    event: Event
    context: ContextSnapshot


@dataclass(frozen=True)
class RuleLogRecord:
    """Emitted by the ``log_*`` handlers while a chain runs."""

    kind: EventKind
    event: Event
    ledger: Dict[str, int]
    detail: str = ""


class TransitionObserver(Protocol):
    """What an injected observer must provide."""

    def on_transition(self, notice: TransitionNotice) -> None:  # pragma: no cover - protocol
        ...

    def on_rule_log(self, record: RuleLogRecord) -> None:  # pragma: no cover - protocol
        ...


class NullObserver:
    """Observer that ignores everything."""

    def on_transition(self, notice: TransitionNotice) -> None:
        del notice

    def on_rule_log(self, record: RuleLogRecord) -> None:
        del record


TransitionCallback = Callable[[TransitionNotice], None]
RuleLogCallback = Callable[[RuleLogRecord], None]


class ObserverHandle:
    """Fan-out point for notifications of one interpreter.

    ``subscribe`` returns a callable that removes the subscription again.
    """

    def __init__(self, observer: Optional[TransitionObserver] = None) -> None:
        self._observer: TransitionObserver = observer or NullObserver()
        self._transition_callbacks: List[TransitionCallback] = []
        self._log_callbacks: List[RuleLogCallback] = []

    def subscribe(self, callback: TransitionCallback) -> Callable[[], None]:
        self._transition_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._transition_callbacks:
                self._transition_callbacks.remove(callback)

        return unsubscribe

    def subscribe_logs(self, callback: RuleLogCallback) -> Callable[[], None]:
        self._log_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._log_callbacks:
                self._log_callbacks.remove(callback)

        return unsubscribe

    def notify_transition(self, notice: TransitionNotice) -> None:
        self._observer.on_transition(notice)
        for callback in list(self._transition_callbacks):
            callback(notice)

    def notify_rule_log(self, record: RuleLogRecord) -> None:
        self._observer.on_rule_log(record)
        for callback in list(self._log_callbacks):
            callback(record)


class LoggingObserver:
    """Observer writing notifications to a :mod:`logging` logger."""

    def __init__(self, target: Optional[logging.Logger] = None) -> None:
        self._logger = target or logger

    def on_transition(self, notice: TransitionNotice) -> None:
        self._logger.info(
            "State: %s -> %s via %s, tokens=%s",
            notice.previous_state,
            notice.state,
            notice.event.type,
            notice.context.ledger,
        )

    def on_rule_log(self, record: RuleLogRecord) -> None:
        self._logger.info("%s %s: %s tokens=%s", record.kind.value.title(), record.event.type, record.detail, record.ledger)


__all__ = [
    "LoggingObserver",
    "NullObserver",
    "ObserverHandle",
    "RuleLogRecord",
    "TransitionNotice",
    "TransitionObserver",
]
