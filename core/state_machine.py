"""Fixed gameplay states and the skeleton topology every automaton starts from.

The gameplay flow is the same for every rule definition: a setup phase hands
over to ``main``, which fans out into selection, movement, validation,
execution and the win check before looping back. ``end`` is terminal.

Rule definitions extend this skeleton with one generated state per resource
token type (see :class:`TokenState`). Those states are reachable on their own
and only return to ``main``; they exist so token availability can be tracked
and visualised as first class states, not to gate the primary flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union


class Phase(str, Enum):
    """The fixed gameplay states."""

    SETUP = "setup"
    MAIN = "main"
    SELECTING = "selecting"
    MOVING = "moving"
    VALIDATING = "validating"
    EXECUTING = "executing"
    CHECKING_WIN = "checking_win"
    END = "end"

    @property
    def is_terminal(self) -> bool:
        return self is Phase.END

    def __str__(self) -> str:
        return self.value


class GameplayEvent(str, Enum):
    """Events wired into the fixed topology."""

    PLACE_PIECES = "PLACE_PIECES"
    START_GAME = "START_GAME"
    SELECT_PIECE = "SELECT_PIECE"
    MOVE_PIECE = "MOVE_PIECE"
    VALIDATE_MOVE = "VALIDATE_MOVE"
    EXECUTE_MOVE = "EXECUTE_MOVE"
    CHECK_WIN = "CHECK_WIN"
    NEXT_TURN = "NEXT_TURN"
    PIECE_SELECTED = "PIECE_SELECTED"
    CANCEL_SELECTION = "CANCEL_SELECTION"
    MOVE_VALID = "MOVE_VALID"
    MOVE_INVALID = "MOVE_INVALID"
    CONSTRAINTS_PASS = "CONSTRAINTS_PASS"
    CONSTRAINTS_FAIL = "CONSTRAINTS_FAIL"
    COIN_BYPASS = "COIN_BYPASS"
    MOVE_EXECUTED = "MOVE_EXECUTED"
    TRIGGER_FIRED = "TRIGGER_FIRED"
    ACTION_COST_PAID = "ACTION_COST_PAID"
    WIN_CONDITION_MET = "WIN_CONDITION_MET"
    NO_WIN = "NO_WIN"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class TokenState:
    """Generated ``<token>_available`` state for one resource token type."""

    token: str

    @property
    def value(self) -> str:
        return f"{self.token}_available"

    @property
    def is_terminal(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.value


MachineState = Union[Phase, TokenState]


def _freeze(topology: dict) -> Mapping[Phase, Mapping[GameplayEvent, Phase]]:
    return MappingProxyType({phase: MappingProxyType(edges) for phase, edges in topology.items()})


#: Transitions of the fixed gameplay skeleton.
BASE_TOPOLOGY: Mapping[Phase, Mapping[GameplayEvent, Phase]] = _freeze(
    {
        Phase.SETUP: {
            GameplayEvent.PLACE_PIECES: Phase.MAIN,
            GameplayEvent.START_GAME: Phase.MAIN,
        },
        Phase.MAIN: {
            GameplayEvent.SELECT_PIECE: Phase.SELECTING,
            GameplayEvent.MOVE_PIECE: Phase.MOVING,
            GameplayEvent.VALIDATE_MOVE: Phase.VALIDATING,
            GameplayEvent.EXECUTE_MOVE: Phase.EXECUTING,
            GameplayEvent.CHECK_WIN: Phase.CHECKING_WIN,
            GameplayEvent.NEXT_TURN: Phase.MAIN,
        },
        Phase.SELECTING: {
            GameplayEvent.PIECE_SELECTED: Phase.MOVING,
            GameplayEvent.CANCEL_SELECTION: Phase.MAIN,
        },
        Phase.MOVING: {
            GameplayEvent.MOVE_VALID: Phase.VALIDATING,
            GameplayEvent.MOVE_INVALID: Phase.MAIN,
        },
        Phase.VALIDATING: {
            GameplayEvent.CONSTRAINTS_PASS: Phase.EXECUTING,
            GameplayEvent.CONSTRAINTS_FAIL: Phase.MAIN,
            GameplayEvent.COIN_BYPASS: Phase.EXECUTING,
        },
        Phase.EXECUTING: {
            GameplayEvent.MOVE_EXECUTED: Phase.CHECKING_WIN,
            GameplayEvent.TRIGGER_FIRED: Phase.CHECKING_WIN,
            GameplayEvent.ACTION_COST_PAID: Phase.CHECKING_WIN,
        },
        Phase.CHECKING_WIN: {
            GameplayEvent.WIN_CONDITION_MET: Phase.END,
            GameplayEvent.NO_WIN: Phase.MAIN,
        },
        Phase.END: {},
    }
)

INITIAL_STATE = Phase.SETUP


__all__ = [
    "BASE_TOPOLOGY",
    "GameplayEvent",
    "INITIAL_STATE",
    "MachineState",
    "Phase",
    "TokenState",
]
