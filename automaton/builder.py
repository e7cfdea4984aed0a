"""Compile a :class:`RuleDefinition` into a state graph and event catalog.

The build is deterministic: the same definition always yields the same states,
in the same order, with the same transitions. All event identifiers are
derived here, once, from validated rule names so that collisions are reported
before any event is dispatched.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from core.state_machine import BASE_TOPOLOGY, INITIAL_STATE, GameplayEvent, MachineState, Phase, TokenState
from rules.errors import EventNameCollisionError
from rules.schema import RuleDefinition

from .catalog import (
    HANDLER_CHAINS,
    CatalogEntry,
    EventCatalog,
    EventKind,
    EventName,
    RuleEntry,
    Transition,
)

logger = logging.getLogger(__name__)

StateGraph = Mapping[MachineState, Mapping[str, Transition]]

#: Hub state from which generated rule events are dispatched.
RULE_EVENT_SOURCE = Phase.MAIN
#: Where a passing (or bypassed) constraint leads.
CONSTRAINT_PASS_TARGET = Phase.EXECUTING


@dataclass(frozen=True)
class CompiledAutomaton:
    """Result of compiling a rule definition."""

    definition: RuleDefinition
    states: StateGraph
    catalog: EventCatalog
    token_types: Tuple[str, ...]
    initial_state: MachineState = INITIAL_STATE

    def transitions_from(self, state: MachineState) -> Mapping[str, Transition]:
        return self.states.get(state, MappingProxyType({}))

    def state_values(self) -> Tuple[str, ...]:
        return tuple(state.value for state in self.states)

    def token_states(self) -> Tuple[TokenState, ...]:
        return tuple(state for state in self.states if isinstance(state, TokenState))


def _rule_entries(definition: RuleDefinition) -> List[Tuple[EventKind, RuleEntry]]:
    entries: List[Tuple[EventKind, RuleEntry]] = []
    entries.extend((EventKind.TRIGGER, trigger) for trigger in definition.triggers)
    entries.extend((EventKind.ACTION, action) for action in definition.actions)
    entries.extend((EventKind.CONSTRAINT, constraint) for constraint in definition.constraints)
    return entries


def build_catalog(definition: RuleDefinition) -> EventCatalog:
    """Synthesize one catalog entry per trigger, action and constraint.

    Raises :class:`EventNameCollisionError` when two entries, or an entry and
    a fixed gameplay event, share a label.
    """

    sources: Dict[str, List[str]] = defaultdict(list)
    for event in GameplayEvent:
        sources[event.label].append(f"gameplay event {event.label}")

    entries: Dict[str, CatalogEntry] = {}
    for kind, rule in _rule_entries(definition):
        name = EventName(kind, rule.name)
        sources[name.label].append(f"{kind.value.lower()} '{rule.name}'")
        entries[name.label] = CatalogEntry(name=name, rule=rule, handlers=HANDLER_CHAINS[kind])

    for label, origins in sources.items():
        if len(origins) > 1:
            raise EventNameCollisionError(label, origins)
    return EventCatalog(entries)


def build_states(token_types: Tuple[str, ...], catalog: EventCatalog) -> StateGraph:
    """Assemble the fixed topology, token states and catalog transitions."""

    graph: Dict[MachineState, Dict[str, Transition]] = {}
    for phase, edges in BASE_TOPOLOGY.items():
        graph[phase] = {
            event.label: Transition(event=event, target=target) for event, target in edges.items()
        }

    for token in token_types:
        state = TokenState(token)
        spend = EventName(EventKind.SPEND, token)
        gain = EventName(EventKind.GAIN, token)
        graph[state] = {
            spend.label: Transition(event=spend, target=Phase.MAIN),
            gain.label: Transition(event=gain, target=Phase.MAIN),
        }

    hub = graph[RULE_EVENT_SOURCE]
    for label, entry in catalog.items():
        target = CONSTRAINT_PASS_TARGET if entry.kind is EventKind.CONSTRAINT else RULE_EVENT_SOURCE
        hub[label] = Transition(event=entry.name, target=target, entry=entry)

    return MappingProxyType({state: MappingProxyType(edges) for state, edges in graph.items()})


def build_automaton(definition: RuleDefinition) -> CompiledAutomaton:
    """Compile ``definition`` into a :class:`CompiledAutomaton`."""

    catalog = build_catalog(definition)
    token_types = definition.token_types()
    states = build_states(token_types, catalog)
    logger.debug(
        "Compiled '%s': %d states, %d catalog events, tokens=%s",
        definition.name,
        len(states),
        len(catalog),
        list(token_types),
    )
    return CompiledAutomaton(
        definition=definition,
        states=states,
        catalog=catalog,
        token_types=token_types,
    )


__all__ = [
    "CONSTRAINT_PASS_TARGET",
    "CompiledAutomaton",
    "RULE_EVENT_SOURCE",
    "StateGraph",
    "build_automaton",
    "build_catalog",
    "build_states",
]
