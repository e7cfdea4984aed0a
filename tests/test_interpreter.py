from typing import List

import pytest

from automaton.catalog import EventKind
from automaton.context import Event
from automaton.interpreter import DispatchOutcome, InterpreterConfig, RuleInterpreter
from automaton.observer import RuleLogRecord, TransitionNotice
from core.state_machine import Phase
from rules.effects import EffectRegistry
from rules.schema import Action, Constraint, RuleDefinition, Trigger


def make_definition() -> RuleDefinition:
    return RuleDefinition(
        name="Mini",
        initial_state={"flags": {"ready": True}},
        triggers=[Trigger(event="tick", grants="x_token")],
        actions=[Action(name="spend", costs="x_token", effect="boost")],
        constraints=[Constraint(name="gate", condition="flags.ready == false")],
    )


def started(**kwargs) -> RuleInterpreter:
    interpreter = RuleInterpreter(make_definition(), **kwargs)
    interpreter.start()
    interpreter.send("START_GAME")
    return interpreter


def test_start_initialises_context() -> None:
    interpreter = RuleInterpreter(make_definition())
    interpreter.start()
    context = interpreter.context
    assert context.current_state is Phase.SETUP
    assert context.turn == 1
    assert context.ledger.snapshot() == {"x_token": 0}
    assert context.move_history == []
    assert context.game_state == {"flags": {"ready": True}}


def test_send_before_start_is_ignored() -> None:
    interpreter = RuleInterpreter(make_definition())
    result = interpreter.send("START_GAME")
    assert result.outcome is DispatchOutcome.IGNORED
    assert not interpreter.started


def test_unrecognized_event_leaves_state_and_context_unchanged() -> None:
    interpreter = started()
    interpreter.send("TRIGGER_TICK")
    before = interpreter.snapshot()

    for event_type in ("FLY_AWAY", "MOVE_VALID", "SPEND_X_TOKEN", "TRIGGER_TOCK"):
        result = interpreter.send({"type": event_type, "payload": {"anything": 1}})
        assert result.outcome is DispatchOutcome.IGNORED

    assert interpreter.snapshot() == before
    assert interpreter.snapshot().digest() == before.digest()


def test_fixed_flow_reaches_terminal_state() -> None:
    interpreter = started()
    for event_type in ("MOVE_PIECE", "MOVE_VALID", "CONSTRAINTS_PASS", "MOVE_EXECUTED", "WIN_CONDITION_MET"):
        assert interpreter.send(event_type).transitioned
    assert interpreter.state is Phase.END
    assert interpreter.done
    assert interpreter.available_events() == ()
    assert interpreter.send("NEXT_TURN").outcome is DispatchOutcome.IGNORED


def test_next_turn_increments_turn_counter() -> None:
    interpreter = started()
    interpreter.send("NEXT_TURN")
    interpreter.send("NEXT_TURN")
    assert interpreter.context.turn == 3
    assert interpreter.state is Phase.MAIN


def test_move_history_records_processed_events_and_respects_cap() -> None:
    interpreter = started(config=InterpreterConfig(max_history=2))
    interpreter.send("NEXT_TURN")
    interpreter.send("BOGUS")
    interpreter.send(Event("TRIGGER_TICK", {"source": "test"}))
    history = [event.type for event in interpreter.context.move_history]
    assert history == ["NEXT_TURN", "TRIGGER_TICK"]


def test_observer_handle_receives_transitions_until_unsubscribed() -> None:
    interpreter = RuleInterpreter(make_definition())
    handle = interpreter.start()
    notices: List[TransitionNotice] = []
    unsubscribe = handle.subscribe(notices.append)

    interpreter.send("START_GAME")
    interpreter.send("TRIGGER_TICK")
    unsubscribe()
    interpreter.send("NEXT_TURN")

    assert [(n.previous_state, n.state) for n in notices] == [("setup", "main"), ("main", "main")]
    assert notices[1].context.ledger == {"x_token": 1}
    assert notices[1].event.type == "TRIGGER_TICK"


def test_injected_observer_receives_rule_logs() -> None:
    class Recorder:
        def __init__(self) -> None:
            self.transitions: List[TransitionNotice] = []
            self.logs: List[RuleLogRecord] = []

        def on_transition(self, notice: TransitionNotice) -> None:
            self.transitions.append(notice)

        def on_rule_log(self, record: RuleLogRecord) -> None:
            self.logs.append(record)

    recorder = Recorder()
    interpreter = started(observer=recorder)
    interpreter.send("TRIGGER_TICK")
    interpreter.send("ACTION_SPEND")

    assert [record.detail for record in recorder.logs] == ["fired", "executed"]
    assert len(recorder.transitions) == 3


def test_registered_effect_receives_payload() -> None:
    effects = EffectRegistry()
    seen = []

    @effects.register("boost")
    def boost(context, payload) -> None:
        seen.append(payload)
        context.game_state["boosted"] = True

    interpreter = started(effects=effects)
    interpreter.send("TRIGGER_TICK")
    result = interpreter.send(Event("ACTION_SPEND", {"amount": 3}))

    assert result.effect_applied
    assert seen == [{"amount": 3}]
    assert interpreter.context.game_state["boosted"] is True
    assert interpreter.context.applied_effects == ["boost"]


def test_passing_constraint_moves_to_executing_without_cost() -> None:
    interpreter = started()
    result = interpreter.send("CONSTRAINT_GATE")
    assert result.transitioned
    assert result.constraint_status.value == "passed"
    assert interpreter.state is Phase.EXECUTING


def test_send_from_handler_is_deferred_until_chain_finishes() -> None:
    effects = EffectRegistry()
    order = []
    holder = {}

    @effects.register("boost")
    def boost(context, payload) -> None:
        result = holder["interpreter"].send("NEXT_TURN")
        order.append(("inner", result.outcome, context.turn))

    interpreter = started(effects=effects)
    holder["interpreter"] = interpreter
    interpreter.send("TRIGGER_TICK")
    outer = interpreter.send("ACTION_SPEND")
    order.append(("outer", outer.outcome, interpreter.context.turn))

    assert order == [
        ("inner", DispatchOutcome.DEFERRED, 1),
        ("outer", DispatchOutcome.TRANSITIONED, 2),
    ]
    assert [event.type for event in interpreter.context.move_history][-2:] == ["ACTION_SPEND", "NEXT_TURN"]


def test_restart_resets_context() -> None:
    interpreter = started()
    interpreter.send("TRIGGER_TICK")
    interpreter.start()
    assert interpreter.state is Phase.SETUP
    assert interpreter.context.ledger.snapshot() == {"x_token": 0}


def test_context_requires_start() -> None:
    with pytest.raises(RuntimeError):
        RuleInterpreter(make_definition()).context


def test_failing_effect_is_reported_without_escaping_send() -> None:
    definition = RuleDefinition(
        name="Flags",
        triggers=[Trigger(event="tick", grants="x_token")],
        actions=[Action(name="mark", costs="x_token", effect="set_flag")],
    )
    interpreter = RuleInterpreter(definition)
    handle = interpreter.start()
    records: List[RuleLogRecord] = []
    handle.subscribe_logs(records.append)
    interpreter.send("START_GAME")
    interpreter.send("TRIGGER_TICK")

    result = interpreter.send("ACTION_MARK")

    assert result.outcome is DispatchOutcome.TRANSITIONED
    assert result.cost_paid is True
    assert result.effect_applied is False
    assert "flag" in result.effect_error
    assert interpreter.context.ledger["x_token"] == 0
    assert interpreter.context.applied_effects == []
    assert interpreter.context.move_history[-1].type == "ACTION_MARK"
    assert records[-1].detail == "effect failed"


def test_error_during_dispatch_discards_deferred_events() -> None:
    holder = {}

    def exploding(context, event) -> bool:
        holder["interpreter"].send("NEXT_TURN")
        raise RuntimeError("broken predicate")

    definition = RuleDefinition(name="Fragile", constraints=[Constraint(name="fragile", condition=exploding)])
    interpreter = RuleInterpreter(definition)
    holder["interpreter"] = interpreter
    interpreter.start()
    interpreter.send("START_GAME")

    with pytest.raises(RuntimeError, match="broken predicate"):
        interpreter.send("CONSTRAINT_FRAGILE")

    assert interpreter.send("BOGUS").outcome is DispatchOutcome.IGNORED
    assert interpreter.context.turn == 1
    assert [event.type for event in interpreter.context.move_history] == ["START_GAME"]


def test_blocked_constraint_emits_rule_log() -> None:
    definition = RuleDefinition(
        name="Walls",
        constraints=[
            Constraint(name="wall", condition="true"),
            Constraint(name="toll", condition="true", bypass_cost="x_token"),
        ],
    )
    interpreter = RuleInterpreter(definition)
    handle = interpreter.start()
    records: List[RuleLogRecord] = []
    handle.subscribe_logs(records.append)
    interpreter.send("START_GAME")

    assert interpreter.send("CONSTRAINT_WALL").outcome is DispatchOutcome.BLOCKED
    assert interpreter.send("CONSTRAINT_TOLL").outcome is DispatchOutcome.BLOCKED

    assert [(record.event.type, record.detail) for record in records] == [
        ("CONSTRAINT_WALL", "blocked"),
        ("CONSTRAINT_TOLL", "blocked"),
    ]
    assert all(record.kind is EventKind.CONSTRAINT for record in records)


@pytest.mark.parametrize("payload", [0, [], "e2e4", None])
def test_event_keeps_non_mapping_payload_as_given(payload) -> None:
    event = Event.coerce({"type": "ACTION_SPEND", "payload": payload})
    assert event.payload == payload
    assert type(event.payload) is type(payload)
    assert event.to_payload() == {"type": "ACTION_SPEND", "payload": payload}


def test_event_without_payload_gets_empty_mapping() -> None:
    assert Event.coerce({"type": "NEXT_TURN"}).payload == {}
