"""Closed set of messages exchanged between the overlay and its peer.

Each message class carries its stable wire name; ``decode`` and
``from_envelope`` are the only places raw payloads are turned into messages.
Missing fields fall back to neutral values instead of failing, since the
overlay has no user-facing error surface for a malformed reply.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from .errors import EventDecodeError
from .models import PortOption

JsonDict = dict[str, Any]


class EventName(str, Enum):
    DISPLAY_START = "uiRefTopovDisplayStart"
    DISPLAY_UPDATE = "uiRefTopovDisplayUpdate"
    DISPLAY_STOP = "uiRefTopovDisplayStop"
    DEVICE_PORTS_REQUEST = "uiRefTopovDevicePortsReq"
    DEVICE_PORTS_RESPONSE = "uiRefTopovDevicePortsResp"
    DEVICE_PORT_APPLY = "uiRefTopovDevicePortFakeOp"
    HIGHLIGHTS = "showHighlights"


def _str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    return str(value)


def _bool(payload: Mapping[str, Any], key: str) -> bool:
    value = payload.get(key)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _seq(payload: Mapping[str, Any]) -> int | None:
    value = payload.get("seq")
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _records(payload: Mapping[str, Any], *keys: str) -> list[Mapping[str, Any]]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, Mapping)]
    return []


# ── Messages: overlay → peer ─────────────────────────────────────────


@dataclass(frozen=True)
class DisplayStart:
    EVENT: ClassVar[EventName] = EventName.DISPLAY_START
    mode: str

    def to_payload(self) -> JsonDict:
        return {"mode": self.mode}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DisplayStart:
        return cls(mode=_str(payload, "mode"))


@dataclass(frozen=True)
class DisplayUpdate:
    EVENT: ClassVar[EventName] = EventName.DISPLAY_UPDATE
    id: str = ""  # empty: pointer left the target

    def to_payload(self) -> JsonDict:
        return {"id": self.id}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DisplayUpdate:
        return cls(id=_str(payload, "id"))


@dataclass(frozen=True)
class DisplayStop:
    EVENT: ClassVar[EventName] = EventName.DISPLAY_STOP

    def to_payload(self) -> JsonDict:
        return {}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DisplayStop:
        return cls()


@dataclass(frozen=True)
class DevicePortsRequest:
    EVENT: ClassVar[EventName] = EventName.DEVICE_PORTS_REQUEST
    id: str
    seq: int | None = None

    def to_payload(self) -> JsonDict:
        payload: JsonDict = {"id": self.id}
        if self.seq is not None:
            payload["seq"] = self.seq
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DevicePortsRequest:
        return cls(id=_str(payload, "id"), seq=_seq(payload))


@dataclass(frozen=True)
class DevicePortApply:
    EVENT: ClassVar[EventName] = EventName.DEVICE_PORT_APPLY
    device: str
    port: str
    foo: bool = False
    bar: bool = False

    def to_payload(self) -> JsonDict:
        return {
            "device": self.device,
            "port": self.port,
            "foo": self.foo,
            "bar": self.bar,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DevicePortApply:
        return cls(
            device=_str(payload, "device"),
            port=_str(payload, "port"),
            foo=_bool(payload, "foo"),
            bar=_bool(payload, "bar"),
        )


# ── Messages: peer → overlay ─────────────────────────────────────────


@dataclass(frozen=True)
class DevicePortsResponse:
    EVENT: ClassVar[EventName] = EventName.DEVICE_PORTS_RESPONSE
    id: str
    items: tuple[PortOption, ...] = ()
    seq: int | None = None

    def to_payload(self) -> JsonDict:
        payload: JsonDict = {
            "id": self.id,
            "items": [
                {"id": item.id, "speed": item.speed, "type": item.type}
                for item in self.items
            ],
        }
        if self.seq is not None:
            payload["seq"] = self.seq
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DevicePortsResponse:
        items: list[PortOption] = []
        # Older peers name the list "ports".
        for record in _records(payload, "items", "ports"):
            item_id = _str(record, "id")
            if not item_id:
                continue
            try:
                speed = int(record.get("speed") or 0)
            except (TypeError, ValueError):
                speed = 0
            items.append(PortOption(id=item_id, speed=speed, type=_str(record, "type")))
        return cls(id=_str(payload, "id"), items=tuple(items), seq=_seq(payload))


@dataclass(frozen=True)
class Badge:
    status: str  # "warn" or "error"
    count: int
    message: str


@dataclass(frozen=True)
class DeviceHighlight:
    id: str
    badge: Badge | None = None


@dataclass(frozen=True)
class LinkHighlight:
    id: str
    label: str = ""


@dataclass(frozen=True)
class Highlights:
    EVENT: ClassVar[EventName] = EventName.HIGHLIGHTS
    devices: tuple[DeviceHighlight, ...] = ()
    links: tuple[LinkHighlight, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.devices and not self.links

    def to_payload(self) -> JsonDict:
        devices: list[JsonDict] = []
        for dev in self.devices:
            entry: JsonDict = {"id": dev.id}
            if dev.badge is not None:
                entry["badge"] = {
                    "status": dev.badge.status,
                    "count": dev.badge.count,
                    "message": dev.badge.message,
                }
            devices.append(entry)
        return {
            "devices": devices,
            "links": [{"id": link.id, "label": link.label} for link in self.links],
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Highlights:
        devices: list[DeviceHighlight] = []
        for record in _records(payload, "devices"):
            badge = None
            raw_badge = record.get("badge")
            if isinstance(raw_badge, Mapping):
                try:
                    count = int(raw_badge.get("count") or 0)
                except (TypeError, ValueError):
                    count = 0
                badge = Badge(
                    status=_str(raw_badge, "status") or "warn",
                    count=count,
                    message=_str(raw_badge, "message"),
                )
            devices.append(DeviceHighlight(id=_str(record, "id"), badge=badge))
        links = tuple(
            LinkHighlight(id=_str(record, "id"), label=_str(record, "label"))
            for record in _records(payload, "links")
        )
        return cls(devices=tuple(devices), links=links)


OutboundMessage = Union[
    DisplayStart, DisplayUpdate, DisplayStop, DevicePortsRequest, DevicePortApply,
]
InboundMessage = Union[DevicePortsResponse, Highlights]
Message = Union[OutboundMessage, InboundMessage]

_MESSAGE_TYPES: dict[EventName, type] = {
    cls.EVENT: cls
    for cls in (
        DisplayStart,
        DisplayUpdate,
        DisplayStop,
        DevicePortsRequest,
        DevicePortApply,
        DevicePortsResponse,
        Highlights,
    )
}


def encode(message: Message) -> tuple[str, JsonDict]:
    """Return ``(wire name, payload)`` for a message."""
    return message.EVENT.value, message.to_payload()


def decode(name: str, payload: object) -> Message:
    """Build a message from its wire name and raw payload."""
    try:
        event = EventName(name)
    except ValueError:
        raise EventDecodeError(f"unknown event {name!r}") from None
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise EventDecodeError(f"{name}: payload must be an object, got {type(payload).__name__}")
    return _MESSAGE_TYPES[event].from_payload(payload)


def to_envelope(message: Message) -> str:
    name, payload = encode(message)
    return json.dumps({"event": name, "payload": payload})


def from_envelope(text: str) -> Message:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EventDecodeError(f"envelope is not JSON: {exc}") from None
    if not isinstance(raw, dict):
        raise EventDecodeError("envelope must be an object")
    name = raw.get("event")
    if not isinstance(name, str):
        raise EventDecodeError("envelope is missing an event name")
    return decode(name, raw.get("payload"))
