"""Shared test helpers."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from topov.chain import PresentedStep
from topov.events import EventName, Highlights, OutboundMessage
from topov.peer import TopologyPeer
from topov.transport import Handler, LoopbackTransport


def capture_notify(app: Any, monkeypatch: Any) -> list[str]:
    """Patch app.notify and return collected messages."""
    notices: list[str] = []
    monkeypatch.setattr(app, "notify", lambda msg, timeout=3: notices.append(msg))
    return notices


class RecordingTransport:
    """Transport stub that records sends and lets tests push replies."""

    def __init__(self) -> None:
        self.sent: list[OutboundMessage] = []
        self.handlers: dict[EventName, Handler] = {}

    def send(self, message: OutboundMessage) -> None:
        self.sent.append(message)

    def bind_handlers(self, handlers: Mapping[EventName, Handler]) -> None:
        self.handlers.update(handlers)

    def unbind_handlers(self, handlers: Mapping[EventName, Handler]) -> None:
        for name, handler in handlers.items():
            if self.handlers.get(name) is handler:
                del self.handlers[name]

    def deliver(self, message: Any) -> None:
        self.handlers[message.EVENT](message)


class RecordingPresenter:
    def __init__(self) -> None:
        self.presented: list[PresentedStep] = []
        self.closed = 0
        self.closed_owners: list[str] = []

    @property
    def last(self) -> PresentedStep:
        return self.presented[-1]

    def present(self, step: PresentedStep) -> None:
        self.presented.append(step)

    def close(self, owner: str) -> None:
        self.closed += 1
        self.closed_owners.append(owner)

    def press(self, label: str) -> None:
        """Press the button labelled ``label`` on the latest dialog."""
        for button in self.last.buttons:
            if button.label == label:
                button.callback()
                return
        raise AssertionError(f"no button {label!r} in {[b.label for b in self.last.buttons]}")


class RecordingHost:
    def __init__(self) -> None:
        self.flashes: list[str] = []
        self.detail_buttons: list[list[str]] = []
        self.highlights: list[Highlights] = []

    def flash(self, text: str) -> None:
        self.flashes.append(text)

    def set_detail_buttons(self, names: list[str]) -> None:
        self.detail_buttons.append(list(names))

    def show_highlights(self, highlights: Highlights) -> None:
        self.highlights.append(highlights)


class ManualTimers:
    """Collects armed timers; tests fire them explicitly."""

    def __init__(self) -> None:
        self.armed: list[tuple[float, Callable[[], None]]] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> None:
        self.armed.append((delay, callback))

    def fire_all(self) -> None:
        armed, self.armed = self.armed, []
        for _delay, callback in armed:
            callback()


def loopback_with_peer(peer: TopologyPeer | None = None) -> tuple[LoopbackTransport, TopologyPeer]:
    peer = peer or TopologyPeer()
    transport = LoopbackTransport()
    transport.connect(peer)
    return transport, peer
