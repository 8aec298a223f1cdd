"""Core data types."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

# None means no display mode is active.
DisplayMode = Optional[str]

# Field values a dialog control can write into a chain context.
FieldValue = Union[str, bool, None]


class Cardinality(str, Enum):
    EMPTY = "empty"
    SINGLE = "single"
    MULTI = "multi"


@dataclass(frozen=True)
class SelectionContext:
    """Read-only snapshot of selected entity ids, in selection order."""
    ids: tuple[str, ...] = ()

    @classmethod
    def of(cls, ids: Iterable[str]) -> SelectionContext:
        return cls(tuple(ids))

    @property
    def cardinality(self) -> Cardinality:
        if not self.ids:
            return Cardinality.EMPTY
        if len(self.ids) == 1:
            return Cardinality.SINGLE
        return Cardinality.MULTI

    @property
    def first(self) -> str:
        return self.ids[0] if self.ids else ""

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(frozen=True)
class ChainContext:
    """Values accumulated across the steps of one chain instance."""
    values: Mapping[str, FieldValue] = field(default_factory=dict)

    def get(self, name: str, default: FieldValue = None) -> FieldValue:
        return self.values.get(name, default)

    def with_values(self, **updates: FieldValue) -> ChainContext:
        merged = dict(self.values)
        merged.update(updates)
        return ChainContext(merged)

    def snapshot(self) -> dict[str, FieldValue]:
        return dict(self.values)


@dataclass(frozen=True)
class PortOption:
    """One selectable port offered by the peer."""
    id: str
    speed: int = 0
    type: str = ""

    @property
    def label(self) -> str:
        parts = [f"Port {self.id}"]
        if self.type:
            parts.append(self.type)
        if self.speed:
            parts.append(f"{self.speed} Mbps")
        return " · ".join(parts)


# ── Topology inventory (peer side) ───────────────────────────────────


@dataclass
class Port:
    number: int
    speed: int = 10_000
    type: str = "COPPER"
    logical: bool = False


@dataclass
class Device:
    id: str
    name: str = ""
    ports: list[Port] = field(default_factory=list)


@dataclass(frozen=True)
class Link:
    src: str
    dst: str

    @property
    def key(self) -> str:
        """Direction-independent key, so both halves share one highlight."""
        a, b = sorted((self.src, self.dst))
        return f"{a}~{b}"


@dataclass
class Topology:
    devices: dict[str, Device] = field(default_factory=dict)
    hosts: dict[str, str] = field(default_factory=dict)  # host id -> attached device id
    links: list[Link] = field(default_factory=list)

    def egress_links(self, device_id: str) -> list[Link]:
        return [link for link in self.links if link.src == device_id]
