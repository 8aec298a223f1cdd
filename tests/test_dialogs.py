"""Tests for the shipped dialog chains driven by DialogSequencer."""

import logging

from topov.chain import AwaitingRemoteData, DialogSequencer, Idle, StepPresented
from topov.dialogs import LIST_DIALOG, PORT_CHAIN, SIMPLE_DIALOG
from topov.events import DevicePortApply, DevicePortsRequest, DevicePortsResponse, encode
from topov.models import PortOption, SelectionContext

from tests.helpers import ManualTimers, RecordingPresenter, RecordingTransport, loopback_with_peer

DEV1 = "of:0000000000000001"


def _port_chain(transport, timers=None, timeout=0.0):
    presenter = RecordingPresenter()
    flashes: list[str] = []
    seq = DialogSequencer(
        PORT_CHAIN, transport, presenter,
        flash=flashes.append, timers=timers, request_timeout=timeout,
    )
    transport.bind_handlers(seq.handlers)
    return seq, presenter, flashes


def test_port_chain_end_to_end_against_peer():
    transport, peer = loopback_with_peer()
    seq, presenter, flashes = _port_chain(transport)

    assert seq.trigger(SelectionContext.of([DEV1])) is True
    # The port request goes out before any dialog is shown.
    assert transport.sent == 1
    assert presenter.presented == []
    assert seq.busy

    transport.drain()

    step = presenter.last
    assert step.title == "Select port"
    assert [o.id for o in step.options] == ["1", "2", "3", "4"]
    assert step.values == {"device": DEV1, "port": None, "foo": False, "bar": False}
    assert [b.label for b in step.buttons] == ["Cancel", "OK"]

    step.on_change("port", "2")
    step.on_change("foo", True)
    presenter.press("OK")

    assert peer.applied == [DevicePortApply(DEV1, "2", foo=True, bar=False)]
    assert presenter.closed == 1
    assert flashes == [f"Requested op on {DEV1} port 2"]
    assert isinstance(seq.state, Idle)


def test_port_chain_requires_a_port():
    transport, peer = loopback_with_peer()
    seq, presenter, flashes = _port_chain(transport)
    seq.trigger(SelectionContext.of([DEV1]))
    transport.drain()

    presenter.press("OK")

    assert flashes == ["Select a port"]
    assert isinstance(seq.state, StepPresented)
    assert peer.applied == []
    assert presenter.closed == 0


def test_port_chain_resets_values_on_each_run():
    transport, _peer = loopback_with_peer()
    seq, presenter, _ = _port_chain(transport)

    seq.trigger(SelectionContext.of([DEV1]))
    transport.drain()
    presenter.last.on_change("port", "3")
    presenter.last.on_change("bar", True)
    presenter.press("OK")

    seq.trigger(SelectionContext.of([DEV1]))
    transport.drain()

    assert presenter.last.values == {"device": DEV1, "port": None, "foo": False, "bar": False}


def test_port_chain_gate_rejects_multi_selection():
    transport = RecordingTransport()
    seq, presenter, _ = _port_chain(transport)
    assert seq.trigger(SelectionContext.of(["a", "b"])) is False
    assert seq.trigger(SelectionContext()) is False
    assert transport.sent == []
    assert presenter.presented == []


def test_stale_reply_from_superseded_request_is_discarded(caplog):
    transport, _peer = loopback_with_peer()
    seq, presenter, _ = _port_chain(transport)

    seq.trigger(SelectionContext.of([DEV1]))
    seq.trigger(SelectionContext.of(["of:0000000000000002"]))
    assert transport.sent == 2

    with caplog.at_level(logging.INFO, logger="topov.chain"):
        transport.drain()

    assert len(presenter.presented) == 1
    assert presenter.last.values["device"] == "of:0000000000000002"
    assert "does not match request #2" in caplog.text


def test_reply_after_cancel_is_discarded():
    transport = RecordingTransport()
    seq, presenter, _ = _port_chain(transport)
    seq.trigger(SelectionContext.of([DEV1]))
    transport.deliver(DevicePortsResponse(DEV1, (PortOption("1"),), seq=1))
    presenter.press("Cancel")

    transport.deliver(DevicePortsResponse(DEV1, (PortOption("1"),), seq=1))

    assert isinstance(seq.state, Idle)
    assert len(presenter.presented) == 1
    assert presenter.closed == 1


def test_unanswered_request_times_out():
    transport, _peer = loopback_with_peer()
    timers = ManualTimers()
    seq, presenter, flashes = _port_chain(transport, timers=timers, timeout=10.0)

    seq.trigger(SelectionContext.of(["of:dead"]))
    transport.drain()
    assert isinstance(seq.state, AwaitingRemoteData)
    assert [delay for delay, _ in timers.armed] == [10.0]

    timers.fire_all()

    assert isinstance(seq.state, Idle)
    assert flashes == ["No response from peer"]
    assert presenter.presented == []


def test_timer_for_answered_request_is_harmless():
    transport, _peer = loopback_with_peer()
    timers = ManualTimers()
    seq, presenter, flashes = _port_chain(transport, timers=timers, timeout=5.0)

    seq.trigger(SelectionContext.of([DEV1]))
    transport.drain()
    timers.fire_all()

    assert isinstance(seq.state, StepPresented)
    assert flashes == []


def test_zero_timeout_arms_no_timer():
    transport = RecordingTransport()
    timers = ManualTimers()
    seq, _, _ = _port_chain(transport, timers=timers, timeout=0.0)
    seq.trigger(SelectionContext.of([DEV1]))
    assert timers.armed == []
    assert transport.sent == [DevicePortsRequest(DEV1, seq=1)]


def test_simple_dialog_lists_devices_and_flashes_on_ok():
    transport = RecordingTransport()
    presenter = RecordingPresenter()
    flashes: list[str] = []
    seq = DialogSequencer(SIMPLE_DIALOG, transport, presenter, flash=flashes.append)

    assert seq.trigger(SelectionContext.of(["a", "b"])) is True
    step = presenter.last
    assert step.title == "Process Devices"
    assert step.lines == ["Do something to these devices?", "a", "b"]

    presenter.press("OK")
    assert flashes == ["Processed: a, b"]
    assert transport.sent == []


def test_buttons_of_replaced_dialog_are_inert():
    transport = RecordingTransport()
    presenter = RecordingPresenter()
    flashes: list[str] = []
    seq = DialogSequencer(SIMPLE_DIALOG, transport, presenter, flash=flashes.append)

    seq.trigger(SelectionContext.of(["a"]))
    old = presenter.last
    seq.trigger(SelectionContext.of(["b"]))

    old.buttons[-1].callback()
    assert flashes == []

    presenter.press("OK")
    assert flashes == ["Processed: b"]


def test_list_dialog_has_single_gotcha_button():
    transport = RecordingTransport()
    presenter = RecordingPresenter()
    seq = DialogSequencer(LIST_DIALOG, transport, presenter)

    assert seq.trigger(SelectionContext()) is True
    step = presenter.last
    assert step.title == "A list of stuff"
    assert step.lines == ["(Selectable list to show here...)"]
    assert [(b.label, b.advances) for b in step.buttons] == [("Gotcha", True)]

    step.on_escape()
    assert isinstance(seq.state, Idle)
    assert presenter.closed == 1


def test_seqless_reply_from_earlier_run_does_not_advance_retrigger():
    transport = RecordingTransport()
    seq, presenter, _ = _port_chain(transport)

    seq.trigger(SelectionContext.of(["dev:1"]))
    seq.trigger(SelectionContext.of(["dev:1"]))
    transport.deliver(DevicePortsResponse("dev:1", (PortOption("stale"),)))

    assert isinstance(seq.state, AwaitingRemoteData)
    assert presenter.presented == []

    transport.deliver(DevicePortsResponse("dev:1", (PortOption("p1"),)))
    assert [o.id for o in presenter.last.options] == ["p1"]


def test_port_chain_apply_encodes_chosen_port_and_flags():
    transport = RecordingTransport()
    seq, presenter, _ = _port_chain(transport)

    seq.trigger(SelectionContext.of(["dev:1"]))
    transport.deliver(DevicePortsResponse("dev:1", (PortOption("p1"), PortOption("p2")), seq=1))
    presenter.last.on_change("port", "p2")
    presenter.last.on_change("foo", True)
    presenter.press("OK")

    assert encode(transport.sent[-1]) == (
        "uiRefTopovDevicePortFakeOp",
        {"device": "dev:1", "port": "p2", "foo": True, "bar": False},
    )


def test_close_ignores_later_events():
    transport = RecordingTransport()
    timers = ManualTimers()
    seq, presenter, flashes = _port_chain(transport, timers=timers, timeout=5.0)
    seq.trigger(SelectionContext.of([DEV1]))

    seq.close()
    timers.fire_all()
    seq.handle_response(DevicePortsResponse(DEV1, (PortOption("1"),), seq=1))
    seq.trigger(SelectionContext.of([DEV1]))

    assert isinstance(seq.state, Idle)
    assert flashes == []
    assert presenter.presented == []
    assert len(transport.sent) == 1


def test_dialogs_are_tagged_with_their_chain():
    transport = RecordingTransport()
    seq, presenter, _ = _port_chain(transport)
    seq.trigger(SelectionContext.of([DEV1]))
    transport.deliver(DevicePortsResponse(DEV1, (PortOption("1"),), seq=1))

    assert presenter.last.owner == "chain"

    presenter.press("Cancel")
    assert presenter.closed_owners == ["chain"]
