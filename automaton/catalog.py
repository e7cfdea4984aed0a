"""Tagged event names, handler identifiers and the compiled event catalog."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional, Tuple, Union

from core.state_machine import GameplayEvent, MachineState
from rules.errors import MalformedRuleError
from rules.schema import Action, Constraint, Trigger

RuleEntry = Union[Trigger, Action, Constraint]

_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9]+")


class EventKind(str, Enum):
    """Categories of generated events, valued by their label prefix."""

    TRIGGER = "TRIGGER"
    ACTION = "ACTION"
    CONSTRAINT = "CONSTRAINT"
    SPEND = "SPEND"
    GAIN = "GAIN"


class HandlerId(str, Enum):
    """Identifiers of the handlers a catalog entry can be bound to."""

    GRANT_TOKENS = "grant_tokens"
    LOG_TRIGGER = "log_trigger"
    CONSUME_TOKENS = "consume_tokens"
    APPLY_EFFECT = "apply_effect"
    LOG_ACTION = "log_action"
    CHECK_CONSTRAINT = "check_constraint"
    LOG_CONSTRAINT = "log_constraint"


#: Handler chain bound to each rule category, run in order.
HANDLER_CHAINS: Mapping[EventKind, Tuple[HandlerId, ...]] = {
    EventKind.TRIGGER: (HandlerId.GRANT_TOKENS, HandlerId.LOG_TRIGGER),
    EventKind.ACTION: (HandlerId.CONSUME_TOKENS, HandlerId.APPLY_EFFECT, HandlerId.LOG_ACTION),
    EventKind.CONSTRAINT: (HandlerId.CHECK_CONSTRAINT, HandlerId.LOG_CONSTRAINT),
}


def normalize_identifier(source: str) -> str:
    """Uppercase ``source`` and collapse non-alphanumeric runs to ``_``."""

    normalized = _NON_IDENTIFIER.sub("_", source).strip("_").upper()
    if not normalized:
        raise MalformedRuleError(f"Name {source!r} does not contain any identifier characters")
    return normalized


@dataclass(frozen=True)
class EventName:
    """An event name tagged with the kind of rule entry that produced it."""

    kind: EventKind
    source: str

    @property
    def label(self) -> str:
        return f"{self.kind.value}_{normalize_identifier(self.source)}"

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class CatalogEntry:
    """A generated event bound to its rule entry and handler chain."""

    name: EventName
    rule: RuleEntry
    handlers: Tuple[HandlerId, ...]

    @property
    def label(self) -> str:
        return self.name.label

    @property
    def kind(self) -> EventKind:
        return self.name.kind


@dataclass(frozen=True)
class Transition:
    """Edge of the state graph.

    ``event`` is either a fixed :class:`GameplayEvent` or a generated
    :class:`EventName`. ``entry`` is set for catalog events only.
    """

    event: Union[GameplayEvent, EventName]
    target: MachineState
    entry: Optional[CatalogEntry] = None

    @property
    def label(self) -> str:
        return self.event.label


class EventCatalog(Mapping[str, CatalogEntry]):
    """Read-only mapping of event label to :class:`CatalogEntry`."""

    def __init__(self, entries: Mapping[str, CatalogEntry]) -> None:
        self._entries: Dict[str, CatalogEntry] = dict(entries)

    def __getitem__(self, label: str) -> CatalogEntry:
        return self._entries[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def of_kind(self, kind: EventKind) -> Tuple[CatalogEntry, ...]:
        return tuple(entry for entry in self._entries.values() if entry.kind is kind)

    def handler_chains(self) -> Dict[str, Tuple[str, ...]]:
        """Return ``label -> handler ids``, the plain form of the catalog."""

        return {
            label: tuple(handler.value for handler in entry.handlers)
            for label, entry in self._entries.items()
        }


__all__ = [
    "CatalogEntry",
    "EventCatalog",
    "EventKind",
    "EventName",
    "HANDLER_CHAINS",
    "HandlerId",
    "RuleEntry",
    "Transition",
    "normalize_identifier",
]
