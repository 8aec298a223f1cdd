"""The overlay's dialog chains."""

from __future__ import annotations

import logging

from .chain import ChainSpec, Checkbox, DialogStep, Options, Selector
from .events import DevicePortApply, DevicePortsRequest, DevicePortsResponse, EventName, InboundMessage
from .models import Cardinality, ChainContext, SelectionContext

log = logging.getLogger(__name__)


# ── Device port chain ────────────────────────────────────────────────


def _port_seed(selection: SelectionContext) -> ChainContext:
    return ChainContext({"device": selection.first, "port": None, "foo": False, "bar": False})


def _port_request(context: ChainContext, seq: int) -> DevicePortsRequest:
    return DevicePortsRequest(id=str(context.get("device") or ""), seq=seq)


def _port_absorb(context: ChainContext, message: InboundMessage) -> tuple[ChainContext, Options]:
    if not isinstance(message, DevicePortsResponse):
        return context, ()
    return context, message.items


def _port_content(context: ChainContext, options: Options) -> list[str]:
    device = context.get("device") or "?"
    if not options:
        return [f"Device {device} reported no ports."]
    return [
        f"Device {device} has {len(options)} port(s).",
        "Choose a port and its options:",
    ]


def _port_apply(context: ChainContext) -> DevicePortApply:
    return DevicePortApply(
        device=str(context.get("device") or ""),
        port=str(context.get("port") or ""),
        foo=bool(context.get("foo")),
        bar=bool(context.get("bar")),
    )


def _port_done(context: ChainContext) -> str:
    return f"Requested op on {context.get('device')} port {context.get('port')}"


PORT_CHAIN = ChainSpec(
    name="chain",
    gate=frozenset({Cardinality.SINGLE}),
    seed=_port_seed,
    response=EventName.DEVICE_PORTS_RESPONSE,
    absorb=_port_absorb,
    apply=_port_apply,
    done=_port_done,
    steps=(
        DialogStep(
            title="Select port",
            content=_port_content,
            fetch=_port_request,
            selector=Selector("port", "Port", prompt="(no port)", required=True),
            checkboxes=(Checkbox("foo", "Foo"), Checkbox("bar", "Bar")),
        ),
    ),
)


# ── Simple device dialog ─────────────────────────────────────────────


def _devices_seed(selection: SelectionContext) -> ChainContext:
    return ChainContext({"devices": ", ".join(selection.ids)})


def _devices_content(context: ChainContext, _options: Options) -> list[str]:
    devices = str(context.get("devices") or "")
    return ["Do something to these devices?", *[d for d in devices.split(", ") if d]]


def _devices_done(context: ChainContext) -> str:
    log.debug("Dialog OK button pressed")
    return f"Processed: {context.get('devices')}"


SIMPLE_DIALOG = ChainSpec(
    name="simple",
    gate=frozenset({Cardinality.SINGLE, Cardinality.MULTI}),
    seed=_devices_seed,
    done=_devices_done,
    steps=(DialogStep(title="Process Devices", content=_devices_content),),
)


# ── Toolbar list dialog ──────────────────────────────────────────────


def _list_content(_context: ChainContext, _options: Options) -> list[str]:
    return ["(Selectable list to show here...)"]


LIST_DIALOG = ChainSpec(
    name="list",
    steps=(
        DialogStep(
            title="A list of stuff",
            content=_list_content,
            confirm="Gotcha",
            cancel=None,
        ),
    ),
)
