"""Tests for the pure chain transition function."""

from dataclasses import replace

import pytest

from topov.chain import (
    Advance,
    ArmTimer,
    AwaitingGate,
    AwaitingRemoteData,
    Cancel,
    ChainSpec,
    Checkbox,
    CloseDialog,
    DialogStep,
    Discard,
    Expire,
    Flash,
    Idle,
    Note,
    PresentStep,
    Response,
    Selector,
    SendApply,
    SendRequest,
    SetField,
    StepPresented,
    Trigger,
    transition,
)
from topov.events import DevicePortApply, DevicePortsRequest, DevicePortsResponse, EventName
from topov.models import Cardinality, ChainContext, PortOption, SelectionContext


def _lines(_ctx, _options):
    return ["body"]


def _two_step_spec() -> ChainSpec:
    return ChainSpec(
        name="two",
        gate=frozenset({Cardinality.SINGLE}),
        seed=lambda sel: ChainContext({"device": sel.first}),
        response=EventName.DEVICE_PORTS_RESPONSE,
        absorb=lambda ctx, msg: (ctx, msg.items),
        apply=lambda ctx: DevicePortApply(str(ctx.get("device")), str(ctx.get("port"))),
        done=lambda ctx: f"done {ctx.get('port')}",
        steps=(
            DialogStep(title="Intro", content=_lines),
            DialogStep(
                title="Pick",
                content=_lines,
                fetch=lambda ctx, seq: DevicePortsRequest(str(ctx.get("device")), seq=seq),
                selector=Selector("port", "Port", required=True),
                checkboxes=(Checkbox("foo", "Foo"),),
            ),
        ),
    )


ONE = SelectionContext.of(["d1"])


def test_gate_rejection_returns_to_idle_silently():
    spec = _two_step_spec()
    result = transition(spec, Idle(), Trigger(SelectionContext.of(["a", "b"])))
    assert result.state == Idle()
    assert all(isinstance(e, Note) for e in result.effects)


def test_gate_rejection_ends_open_instance():
    spec = _two_step_spec()
    presented = transition(spec, Idle(), Trigger(ONE)).state
    result = transition(spec, presented, Trigger(SelectionContext()))
    assert result.state == Idle(seq=0)
    assert result.effects[0] == CloseDialog()

    awaiting = _awaiting(spec)
    result = transition(spec, awaiting, Trigger(SelectionContext()))
    assert result.state == Idle(seq=1, stale=("d1",))
    assert not any(isinstance(e, (CloseDialog, Flash)) for e in result.effects)


def test_trigger_presents_first_step():
    spec = _two_step_spec()
    result = transition(spec, Idle(), Trigger(ONE))
    assert result.state == StepPresented(seq=0, step=0, context=ChainContext({"device": "d1"}))
    assert [type(e) for e in result.effects] == [PresentStep]


def test_advance_into_fetching_step_sends_request_and_arms_timer():
    spec = _two_step_spec()
    state = transition(spec, Idle(), Trigger(ONE)).state
    result = transition(spec, state, Advance())

    assert isinstance(result.state, AwaitingRemoteData)
    assert result.state.seq == 1
    assert result.state.subject == "d1"
    assert result.effects == (
        CloseDialog(),
        SendRequest(DevicePortsRequest("d1", seq=1), 1),
        ArmTimer(1),
    )


def _awaiting(spec):
    state = transition(spec, Idle(), Trigger(ONE)).state
    return transition(spec, state, Advance()).state


def test_matching_response_presents_step_with_reset_fields():
    spec = _two_step_spec()
    state = _awaiting(spec)
    reply = DevicePortsResponse("d1", (PortOption("1"), PortOption("2")), seq=1)

    result = transition(spec, state, Response(reply))

    assert isinstance(result.state, StepPresented)
    assert result.state.options == (PortOption("1"), PortOption("2"))
    assert result.state.context.snapshot() == {"device": "d1", "port": None, "foo": False}
    assert isinstance(result.effects[0], PresentStep)


def test_response_with_old_seq_is_discarded():
    spec = _two_step_spec()
    state = _awaiting(spec)
    result = transition(spec, state, Response(DevicePortsResponse("d1", seq=0)))
    assert result.state is state
    assert isinstance(result.effects[0], Discard)


def test_response_without_seq_correlates_by_subject():
    spec = _two_step_spec()
    state = _awaiting(spec)

    other = transition(spec, state, Response(DevicePortsResponse("d9")))
    assert other.state is state

    same = transition(spec, state, Response(DevicePortsResponse("d1")))
    assert isinstance(same.state, StepPresented)


def test_response_when_idle_is_discarded():
    spec = _two_step_spec()
    result = transition(spec, Idle(), Response(DevicePortsResponse("d1", seq=0)))
    assert result.state == Idle()
    assert isinstance(result.effects[0], Discard)


def test_required_selector_blocks_advance():
    spec = _two_step_spec()
    state = transition(spec, _awaiting(spec), Response(DevicePortsResponse("d1", (PortOption("1"),), seq=1))).state

    result = transition(spec, state, Advance())
    assert result.state is state
    assert result.effects == (Flash("Select a port"),)


def test_last_step_advance_applies_and_goes_idle():
    spec = _two_step_spec()
    state = transition(spec, _awaiting(spec), Response(DevicePortsResponse("d1", (PortOption("1"),), seq=1))).state
    state = transition(spec, state, SetField("port", "1")).state

    result = transition(spec, state, Advance())

    assert result.state == Idle(seq=1)
    assert result.effects == (
        CloseDialog(),
        SendApply(DevicePortApply("d1", "1")),
        Flash("done 1"),
    )


def test_set_field_rejects_undeclared_fields():
    spec = _two_step_spec()
    state = transition(spec, Idle(), Trigger(ONE)).state
    result = transition(spec, state, SetField("port", "1"))
    assert result.state is state
    assert isinstance(result.effects[0], Note)


def test_set_field_ignored_outside_step():
    spec = _two_step_spec()
    assert transition(spec, Idle(), SetField("port", "1")).state == Idle()


def test_cancel_from_each_state():
    spec = _two_step_spec()
    presented = transition(spec, Idle(), Trigger(ONE)).state
    assert transition(spec, presented, Cancel()).effects == (CloseDialog(),)
    assert transition(spec, presented, Cancel()).state == Idle()

    gate = AwaitingGate(seq=2, selection=ONE)
    assert transition(spec, gate, Cancel()).state == Idle(seq=2)

    awaiting = _awaiting(spec)
    assert transition(spec, awaiting, Cancel()).state is awaiting

    assert transition(spec, Idle(), Cancel()).state == Idle()


def test_retrigger_while_awaiting_bumps_seq():
    spec = ChainSpec(
        name="fetching",
        seed=lambda sel: ChainContext({"device": sel.first}),
        steps=(
            DialogStep(
                title="Pick",
                content=_lines,
                fetch=lambda ctx, seq: DevicePortsRequest(str(ctx.get("device")), seq=seq),
            ),
        ),
    )
    first = transition(spec, Idle(), Trigger(ONE)).state
    second = transition(spec, first, Trigger(ONE))

    assert second.state.seq == first.seq + 1
    assert isinstance(second.effects[0], Note)

    assert second.state.stale == ("d1",)

    late = transition(spec, second.state, Response(DevicePortsResponse("d1", seq=first.seq)))
    assert isinstance(late.effects[0], Discard)
    assert late.state == replace(second.state, stale=())


def test_retrigger_while_presented_closes_old_dialog():
    spec = _two_step_spec()
    presented = transition(spec, Idle(), Trigger(ONE)).state
    result = transition(spec, presented, Trigger(SelectionContext.of(["d2"])))
    assert result.effects[0] == CloseDialog()
    assert result.state.context.get("device") == "d2"


def test_expire_only_for_pending_seq():
    spec = _two_step_spec()
    state = _awaiting(spec)

    assert transition(spec, state, Expire(seq=0)).state is state

    result = transition(spec, state, Expire(seq=1))
    assert result.state == Idle(seq=1, stale=("d1",))
    assert result.effects == (Flash("No response from peer"),)


def test_unknown_event_type_raises():
    with pytest.raises(TypeError):
        transition(_two_step_spec(), Idle(), object())  # type: ignore[arg-type]


def _fetching_spec() -> ChainSpec:
    return ChainSpec(
        name="fetching",
        seed=lambda sel: ChainContext({"device": sel.first}),
        response=EventName.DEVICE_PORTS_RESPONSE,
        absorb=lambda ctx, msg: (ctx, msg.items),
        steps=(
            DialogStep(
                title="Pick",
                content=_lines,
                fetch=lambda ctx, seq: DevicePortsRequest(str(ctx.get("device")), seq=seq),
            ),
        ),
    )


def test_seqless_reply_to_superseded_request_is_drained():
    spec = _fetching_spec()
    first = transition(spec, Idle(), Trigger(ONE)).state
    second = transition(spec, first, Trigger(ONE)).state

    old = transition(spec, second, Response(DevicePortsResponse("d1", (PortOption("stale"),))))

    assert isinstance(old.state, AwaitingRemoteData)
    assert old.state.seq == second.seq
    assert old.state.stale == ()
    assert isinstance(old.effects[0], Discard)

    fresh = transition(spec, old.state, Response(DevicePortsResponse("d1", (PortOption("p1"),))))
    assert isinstance(fresh.state, StepPresented)
    assert fresh.state.options == (PortOption("p1"),)


def test_seqless_reply_after_timeout_does_not_reach_next_instance():
    spec = _fetching_spec()
    awaiting = transition(spec, Idle(), Trigger(ONE)).state
    expired = transition(spec, awaiting, Expire(seq=awaiting.seq)).state
    again = transition(spec, expired, Trigger(ONE)).state
    assert again.stale == ("d1",)

    late = transition(spec, again, Response(DevicePortsResponse("d1")))
    assert isinstance(late.state, AwaitingRemoteData)
    assert late.state.stale == ()


def test_reply_drains_outstanding_subject_while_idle():
    state = Idle(seq=3, stale=("d1", "d1"))
    result = transition(_fetching_spec(), state, Response(DevicePortsResponse("d1")))
    assert result.state == Idle(seq=3, stale=("d1",))
    assert isinstance(result.effects[0], Discard)


def test_reply_with_current_seq_wins_over_outstanding_subject():
    spec = _fetching_spec()
    first = transition(spec, Idle(), Trigger(ONE)).state
    second = transition(spec, first, Trigger(ONE)).state

    result = transition(spec, second, Response(DevicePortsResponse("d1", seq=second.seq)))

    assert isinstance(result.state, StepPresented)
    assert result.state.stale == ("d1",)
