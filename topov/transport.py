"""Transport between the overlay and its remote peer.

Every message crosses the link as a JSON envelope, in both directions.
Replies are never delivered re-entrantly from ``send``: they go through a
scheduler (``App.call_later`` in the dashboard, an internal queue drained by
``drain()`` otherwise).
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Mapping
from typing import Protocol

from .errors import EventDecodeError
from .events import EventName, InboundMessage, OutboundMessage, from_envelope, to_envelope

log = logging.getLogger(__name__)

Handler = Callable[[InboundMessage], None]
Scheduler = Callable[[Callable[[], None]], object]


class Transport(Protocol):
    def send(self, message: OutboundMessage) -> None: ...

    def bind_handlers(self, handlers: Mapping[EventName, Handler]) -> None: ...

    def unbind_handlers(self, handlers: Mapping[EventName, Handler]) -> None: ...


class Peer(Protocol):
    """Remote side of the link: consumes envelopes, emits envelopes."""

    def receive(self, envelope: str) -> None: ...

    def attach(self, emit: Callable[[str], None]) -> None: ...


class LoopbackTransport:
    """In-process transport wired to a ``Peer``."""

    def __init__(self, schedule: Scheduler | None = None) -> None:
        self._handlers: dict[EventName, Handler] = {}
        self._peer: Peer | None = None
        self._queue: deque[Callable[[], None]] = deque()
        self._schedule: Scheduler = schedule or self._queue.append
        self.sent: int = 0
        self.dropped: int = 0

    def connect(self, peer: Peer) -> None:
        self._peer = peer
        peer.attach(self._post)

    def send(self, message: OutboundMessage) -> None:
        envelope = to_envelope(message)
        self.sent += 1
        if self._peer is None:
            log.warning("No peer connected; dropping %s", message.EVENT.value)
            self.dropped += 1
            return
        log.debug("→ %s", envelope)
        self._peer.receive(envelope)

    def bind_handlers(self, handlers: Mapping[EventName, Handler]) -> None:
        for name, handler in handlers.items():
            if name in self._handlers and self._handlers[name] is not handler:
                log.warning("Replacing handler for %s", name.value)
            self._handlers[name] = handler

    def unbind_handlers(self, handlers: Mapping[EventName, Handler]) -> None:
        for name, handler in handlers.items():
            if self._handlers.get(name) is handler:
                del self._handlers[name]

    def bound(self, name: EventName) -> bool:
        return name in self._handlers

    def drain(self) -> int:
        """Deliver queued replies; returns the number delivered."""
        count = 0
        while self._queue:
            self._queue.popleft()()
            count += 1
        return count

    def _post(self, envelope: str) -> None:
        self._schedule(lambda: self._deliver(envelope))

    def _deliver(self, envelope: str) -> None:
        try:
            message = from_envelope(envelope)
        except EventDecodeError as exc:
            log.warning("Dropping undecodable envelope: %s", exc)
            self.dropped += 1
            return
        log.debug("← %s", envelope)
        handler = self._handlers.get(message.EVENT)
        if handler is None:
            log.debug("No handler bound for %s", message.EVENT.value)
            self.dropped += 1
            return
        handler(message)  # type: ignore[arg-type]
