"""Runtime context, events and snapshots shared by the interpreter."""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Mapping, Optional, Tuple, Union

from core.ledger import ResourceLedger
from core.state_machine import INITIAL_STATE, MachineState


@dataclass(frozen=True)
class Event:
    """An input event: a type label and an arbitrary payload."""

    type: str
    payload: Any = field(default_factory=dict)

    @classmethod
    def coerce(cls, raw: Union["Event", Mapping[str, Any], str]) -> "Event":
        """Accept an :class:`Event`, a ``{"type", "payload"}`` mapping or a bare type."""

        if isinstance(raw, Event):
            return raw
        if isinstance(raw, str):
            return cls(type=raw)
        if isinstance(raw, Mapping):
            event_type = raw.get("type")
            if not isinstance(event_type, str):
                raise TypeError("Event mapping requires a string 'type' field")
            payload = raw["payload"] if "payload" in raw else {}
            if isinstance(payload, Mapping):
                payload = dict(payload)
            return cls(type=event_type, payload=payload)
        raise TypeError(f"Cannot interpret {raw!r} as an event")

    def to_payload(self) -> Dict[str, Any]:
        payload = dict(self.payload) if isinstance(self.payload, Mapping) else self.payload
        return {"type": self.type, "payload": payload}


@dataclass
class RuntimeContext:
    """Mutable state of one running automaton."""

    ledger: ResourceLedger
    turn: int = 1
    current_state: MachineState = INITIAL_STATE
    move_history: List[Event] = field(default_factory=list)
    game_state: Dict[str, Any] = field(default_factory=dict)
    applied_effects: List[str] = field(default_factory=list)

    def record(self, event: Event, max_history: Optional[int] = None) -> None:
        self.move_history.append(event)
        if max_history is not None and len(self.move_history) > max_history:
            del self.move_history[: len(self.move_history) - max_history]

    def snapshot(self) -> "ContextSnapshot":
        return ContextSnapshot(
            state=self.current_state.value,
            turn=self.turn,
            ledger=self.ledger.snapshot(),
            move_history=tuple(self.move_history),
            game_state=copy.deepcopy(self.game_state),
            applied_effects=tuple(self.applied_effects),
        )


@dataclass(frozen=True)
class ContextSnapshot:
    """Detached, serialisation friendly copy of a :class:`RuntimeContext`."""

    state: str
    turn: int
    ledger: Dict[str, int]
    move_history: Tuple[Event, ...]
    game_state: Dict[str, Any]
    applied_effects: Tuple[str, ...]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "turn": self.turn,
            "ledger": dict(self.ledger),
            "move_history": [event.to_payload() for event in self.move_history],
            "game_state": self.game_state,
            "applied_effects": list(self.applied_effects),
        }

    def digest(self) -> str:
        """Return a SHA256 digest of the snapshot contents."""

        serialised = json.dumps(self.to_payload(), sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(serialised.encode("utf-8")).hexdigest()


EventQueue = Deque[Event]


__all__ = ["ContextSnapshot", "Event", "EventQueue", "RuntimeContext"]
