from pathlib import Path

import pytest

from automaton.builder import build_automaton
from automaton.handlers import ConstraintStatus
from automaton.interpreter import DispatchOutcome, InterpreterConfig, RuleInterpreter
from core.state_machine import Phase
from rules.errors import EventNameCollisionError
from rules.loader import load_rule_definition
from rules.schema import Action, Constraint, RuleDefinition, Trigger

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


def en_passant_rules() -> RuleDefinition:
    return RuleDefinition(
        name="EnPassant",
        triggers=[Trigger(event="piece_moved", grants="en_passant_token")],
        actions=[Action(name="en_passant", costs="en_passant_token", effect="remove_opponent_pawn")],
    )


def castling_rules() -> RuleDefinition:
    return RuleDefinition(
        name="Castling",
        triggers=[Trigger(event="king_first_move", grants="castle_token")],
        constraints=[
            Constraint(
                name="castling_constraint",
                condition=lambda context, event: True,
                bypass_cost="castle_token",
                message="Cannot castle",
            )
        ],
    )


def in_main(definition: RuleDefinition, **kwargs) -> RuleInterpreter:
    interpreter = RuleInterpreter(definition, **kwargs)
    interpreter.start()
    interpreter.send("PLACE_PIECES")
    assert interpreter.state is Phase.MAIN
    return interpreter


def test_en_passant_token_flow() -> None:
    interpreter = in_main(en_passant_rules())
    ledger = interpreter.context.ledger

    interpreter.send("TRIGGER_PIECE_MOVED")
    assert ledger["en_passant_token"] == 1

    first = interpreter.send("ACTION_EN_PASSANT")
    assert ledger["en_passant_token"] == 0
    assert first.cost_paid is True
    assert first.effect_applied is True
    assert interpreter.context.applied_effects == ["remove_opponent_pawn"]

    second = interpreter.send("ACTION_EN_PASSANT")
    assert second.outcome is DispatchOutcome.TRANSITIONED
    assert second.cost_paid is False
    assert second.effect_applied is False
    assert ledger["en_passant_token"] == 0
    assert interpreter.context.applied_effects == ["remove_opponent_pawn"]


def test_unpaid_action_runs_effect_when_not_short_circuiting() -> None:
    config = InterpreterConfig(skip_effect_on_unpaid_cost=False)
    interpreter = in_main(en_passant_rules(), config=config)

    result = interpreter.send("ACTION_EN_PASSANT")

    assert result.cost_paid is False
    assert result.effect_applied is True
    assert interpreter.context.ledger["en_passant_token"] == 0
    assert interpreter.context.applied_effects == ["remove_opponent_pawn"]


def test_blocked_constraint_stays_in_main_until_bypass_is_affordable() -> None:
    interpreter = in_main(castling_rules())
    ledger = interpreter.context.ledger
    history_before = list(interpreter.context.move_history)

    blocked = interpreter.send("CONSTRAINT_CASTLING_CONSTRAINT")
    assert blocked.outcome is DispatchOutcome.BLOCKED
    assert blocked.constraint_status is ConstraintStatus.BLOCKED
    assert interpreter.state is Phase.MAIN
    assert ledger["castle_token"] == 0
    assert interpreter.context.move_history == history_before

    interpreter.send("TRIGGER_KING_FIRST_MOVE")
    assert ledger["castle_token"] == 1

    bypassed = interpreter.send("CONSTRAINT_CASTLING_CONSTRAINT")
    assert bypassed.transitioned
    assert bypassed.constraint_status is ConstraintStatus.BYPASSED
    assert ledger["castle_token"] == 0
    assert interpreter.state is Phase.EXECUTING


def test_blocking_constraint_without_bypass_cost_never_passes() -> None:
    definition = RuleDefinition(name="Wall", constraints=[Constraint(name="wall", condition="true")])
    interpreter = in_main(definition)
    assert interpreter.send("CONSTRAINT_WALL").outcome is DispatchOutcome.BLOCKED
    assert interpreter.state is Phase.MAIN


def test_token_states_do_not_touch_the_ledger() -> None:
    automaton = build_automaton(castling_rules())
    assert "castle_token_available" in automaton.state_values()
    interpreter = in_main(castling_rules())
    interpreter.send("TRIGGER_KING_FIRST_MOVE")
    # Token states are not reachable from main, so their labels are ignored.
    assert interpreter.send("SPEND_CASTLE_TOKEN").outcome is DispatchOutcome.IGNORED
    assert interpreter.context.ledger["castle_token"] == 1


def test_case_collision_is_a_build_time_error() -> None:
    definition = RuleDefinition(name="Moves", actions=[Action(name="Move"), Action(name="move")])
    with pytest.raises(EventNameCollisionError):
        RuleInterpreter(definition)


def test_chess_sample_constraints_use_game_state() -> None:
    interpreter = in_main(load_rule_definition(DATA_DIR / "chess_rules.json"))
    ledger = interpreter.context.ledger

    passed = interpreter.send("CONSTRAINT_CASTLING_CONSTRAINT")
    assert passed.constraint_status is ConstraintStatus.PASSED
    assert ledger.snapshot() == {"en_passant_token": 0, "castle_token": 0, "queen_token": 0}

    for event_type in ("MOVE_EXECUTED", "NO_WIN"):
        interpreter.send(event_type)
    interpreter.context.game_state["queen_has_moved"] = True
    interpreter.send("TRIGGER_QUEEN_FIRST_MOVE")
    bypassed = interpreter.send("CONSTRAINT_QUEEN_SIDE_CASTLING_CONSTRAINT")
    assert bypassed.constraint_status is ConstraintStatus.BYPASSED
    assert ledger.snapshot() == {"en_passant_token": 0, "castle_token": 0, "queen_token": 0}
