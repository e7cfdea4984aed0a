from pathlib import Path

import pytest

from automaton.context import RuntimeContext
from automaton.interpreter import DispatchOutcome, RuleInterpreter
from core.ledger import ResourceLedger
from rules.effects import EffectRegistry, default_registry, remove_piece, set_flag
from rules.errors import EffectExecutionError
from rules.loader import load_rule_definition

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


def make_context(**game_state) -> RuntimeContext:
    return RuntimeContext(ledger=ResourceLedger(["x_token"]), game_state=dict(game_state))


def test_default_registry_has_builtin_effects() -> None:
    registry = default_registry()
    assert sorted(registry) == ["remove_piece", "set_flag"]


def test_set_flag_sets_value_with_true_default() -> None:
    context = make_context()
    set_flag(context, {"flag": "king_has_moved"})
    set_flag(context, {"flag": "turns_left", "value": 3})
    assert context.game_state == {"king_has_moved": True, "turns_left": 3}


@pytest.mark.parametrize("payload", [{}, {"value": 1}, 0, ["flag"]])
def test_set_flag_rejects_payload_without_flag(payload) -> None:
    with pytest.raises(EffectExecutionError):
        set_flag(make_context(), payload)


def test_remove_piece_updates_roster() -> None:
    context = make_context(pieces={"black": ["king", "pawns"]})
    remove_piece(context, {"side": "black", "piece": "pawns"})
    assert context.game_state["pieces"]["black"] == ["king"]
    with pytest.raises(EffectExecutionError):
        remove_piece(context, {"side": "black", "piece": "pawns"})


def test_registry_wraps_handler_failures() -> None:
    registry = EffectRegistry()

    @registry.register("explode")
    def explode(context, payload) -> None:
        raise KeyError("fuse")

    with pytest.raises(EffectExecutionError, match="Effect 'explode' failed") as info:
        registry.apply("explode", make_context(), {})
    assert isinstance(info.value.__cause__, KeyError)
    assert registry.apply("unknown", make_context(), {}) is False


def test_chess_en_passant_removes_black_pawn() -> None:
    interpreter = RuleInterpreter(load_rule_definition(DATA_DIR / "chess_rules.json"))
    interpreter.start()
    interpreter.send("START_GAME")
    interpreter.send("TRIGGER_PIECE_MOVED")

    result = interpreter.send({"type": "ACTION_EN_PASSANT", "payload": {"side": "black", "piece": "pawns"}})

    assert result.outcome is DispatchOutcome.TRANSITIONED
    assert result.effect_applied
    assert "pawns" not in interpreter.context.game_state["pieces"]["black"]
    assert "pawns" in interpreter.context.game_state["pieces"]["white"]
    assert interpreter.context.applied_effects == ["remove_piece"]
