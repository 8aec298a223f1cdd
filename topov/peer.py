"""In-process topology peer: the server half of the overlay event surface."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from .errors import EventDecodeError
from .events import (
    Badge,
    DeviceHighlight,
    DevicePortApply,
    DevicePortsRequest,
    DevicePortsResponse,
    DisplayStart,
    DisplayStop,
    DisplayUpdate,
    Highlights,
    LinkHighlight,
    Message,
    from_envelope,
    to_envelope,
)
from .models import Device, Link, Port, PortOption, Topology

log = logging.getLogger(__name__)

_CRITICAL_EGRESS = 3


class PeerMode(Enum):
    IDLE = "idle"
    MOUSE = "mouse"
    LINK = "link"


def demo_topology() -> Topology:
    """Four switches in a ring with a diagonal, two hosts."""
    devices: dict[str, Device] = {}
    for n in range(1, 5):
        dev_id = f"of:{n:016x}"
        ports = [Port(number=p, speed=10_000 if p < 3 else 1_000, type="COPPER" if p < 4 else "FIBER")
                 for p in range(1, 5)]
        ports.append(Port(number=0xFFFFFFFE, speed=0, type="VIRTUAL", logical=True))
        devices[dev_id] = Device(id=dev_id, name=f"switch-{n}", ports=ports)

    ids = list(devices)
    links: list[Link] = []
    for i, src in enumerate(ids):
        dst = ids[(i + 1) % len(ids)]
        links.extend((Link(src, dst), Link(dst, src)))
    links.extend((Link(ids[0], ids[2]), Link(ids[2], ids[0])))

    hosts = {
        "00:00:00:00:00:01/None": ids[0],
        "00:00:00:00:00:02/None": ids[3],
    }
    return Topology(devices=devices, hosts=hosts, links=links)


def _bi_links(links: list[Link]) -> dict[str, Link]:
    """One entry per unordered device pair, first direction wins."""
    out: dict[str, Link] = {}
    for link in links:
        out.setdefault(link.key, link)
    return out


def egress_badge(count: int) -> Badge:
    if count > _CRITICAL_EGRESS:
        return Badge("error", count, f"Egress links: {count} (critical)")
    return Badge("warn", count, f"Egress links: {count} (problematic)")


class TopologyPeer:
    """Answers overlay requests from a topology inventory."""

    def __init__(self, topology: Topology | None = None) -> None:
        self.topology = topology or demo_topology()
        self._emit: Callable[[str], None] = lambda _envelope: None
        self.mode = PeerMode.IDLE
        self.element_of_note: Device | None = None
        self._link_set: list[Link] = []
        self._link_index = 0
        self.applied: list[DevicePortApply] = []

    def attach(self, emit: Callable[[str], None]) -> None:
        self._emit = emit

    def receive(self, envelope: str) -> None:
        try:
            message = from_envelope(envelope)
        except EventDecodeError as exc:
            log.warning("Peer dropping envelope: %s", exc)
            return
        self.handle(message)

    def handle(self, message: Message) -> None:
        if isinstance(message, DisplayStart):
            self._display_start(message.mode)
        elif isinstance(message, DisplayUpdate):
            self._display_update(message.id)
        elif isinstance(message, DisplayStop):
            log.debug("Stop Display")
            self._clear_state()
            self._send(Highlights())
        elif isinstance(message, DevicePortsRequest):
            self._send_ports(message)
        elif isinstance(message, DevicePortApply):
            self.applied.append(message)
            log.info("FAKE-op request device %s port %s", message.device, message.port)
            log.info("    options FOO=%s, BAR=%s", message.foo, message.bar)
        else:
            log.debug("Peer ignoring %s", message.EVENT.value)

    def tick(self) -> None:
        """Advance the link-mode highlight; no-op in other modes."""
        if self.mode is PeerMode.LINK:
            self._send_link_data()

    # ── Display mode ─────────────────────────────────────────────────

    def _display_start(self, mode: str) -> None:
        log.debug("Start Display: mode [%s]", mode)
        self._clear_state()
        self._send(Highlights())
        if mode == PeerMode.MOUSE.value:
            self.mode = PeerMode.MOUSE
            self._send_mouse_data()
        elif mode == PeerMode.LINK.value:
            self.mode = PeerMode.LINK
            self._link_set = list(self.topology.links)
            self._link_index = 0
            log.debug("initialized link set to %d", len(self._link_set))
            self._send_link_data()
        else:
            self.mode = PeerMode.IDLE

    def _display_update(self, element_id: str) -> None:
        log.debug("Update Display: id [%s]", element_id)
        if not element_id:
            self._send(Highlights())
            return
        self.element_of_note = self._lookup(element_id)
        if self.mode is PeerMode.MOUSE:
            self._send_mouse_data()
        elif self.mode is PeerMode.LINK:
            self._send_link_data()

    def _lookup(self, element_id: str) -> Device | None:
        if element_id in self.topology.hosts:
            # Hosts are recognized but carry no mouse-mode highlight.
            return None
        device = self.topology.devices.get(element_id)
        if device is None:
            log.warning("Unable to process ID [%s]", element_id)
        return device

    def _clear_state(self) -> None:
        self.mode = PeerMode.IDLE
        self.element_of_note = None
        self._link_set = []
        self._link_index = 0

    def _send_mouse_data(self) -> None:
        device = self.element_of_note
        if device is None:
            return
        egress = self.topology.egress_links(device.id)
        links = tuple(
            LinkHighlight(id=key, label="Yo!") for key in _bi_links(egress)
        )
        badge = egress_badge(len(egress))
        self._send(Highlights(devices=(DeviceHighlight(device.id, badge),), links=links))

    def _send_link_data(self) -> None:
        if not self._link_set:
            self._send(Highlights())
            return
        current = self._link_set[self._link_index].key
        log.debug("sending link data (index %d)", self._link_index)
        label = str(self._link_index)
        self._link_index = (self._link_index + 1) % len(self._link_set)
        links = tuple(
            LinkHighlight(id=key, label=label if key == current else "")
            for key in _bi_links(self._link_set)
        )
        self._send(Highlights(links=links))

    # ── Ports ────────────────────────────────────────────────────────

    def _send_ports(self, request: DevicePortsRequest) -> None:
        log.debug("Request ports for device [%s]", request.id)
        device = self.topology.devices.get(request.id)
        if device is None:
            log.warning("[port data] Unable to process ID [%s]", request.id)
            return
        items = tuple(
            PortOption(id=str(port.number), speed=port.speed, type=port.type)
            for port in device.ports
            if not port.logical
        )
        log.debug("Sending port data for device %s (#ports: %d)", device.id, len(items))
        self._send(DevicePortsResponse(id=request.id, items=items, seq=request.seq))

    def _send(self, message: Message) -> None:
        self._emit(to_envelope(message))
