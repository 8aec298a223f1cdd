"""Exclusive display mode, mirrored to the peer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from .events import DisplayStart, DisplayStop, DisplayUpdate
from .models import DisplayMode
from .transport import Transport

log = logging.getLogger(__name__)

Flash = Callable[[str], None]


def target_id(target: object) -> str:
    """Extract an element id from a mouseover target (mapping, object or str)."""
    if target is None:
        return ""
    if isinstance(target, str):
        return target
    if isinstance(target, Mapping):
        value = target.get("id")
    else:
        value = getattr(target, "id", None)
    return "" if value is None else str(value)


class ModeController:
    """Owns the single current display mode.

    Starting a different mode supersedes the active one: only the new start
    notification is sent, the peer treats it as an implicit stop.
    """

    def __init__(self, transport: Transport, flash: Flash | None = None) -> None:
        self._transport = transport
        self._flash = flash or (lambda _msg: None)
        self._mode: DisplayMode = None

    @property
    def current_mode(self) -> DisplayMode:
        return self._mode

    @property
    def active(self) -> bool:
        return self._mode is not None

    def start_display(self, mode: str) -> bool:
        if self._mode == mode:
            log.debug("(in mode %s already)", mode)
            return False
        self._mode = mode
        self._transport.send(DisplayStart(mode=mode))
        self._flash(f"Starting display mode: {mode}")
        return True

    def update_display(self, target: object = None) -> None:
        if self._mode is None:
            return
        self._transport.send(DisplayUpdate(id=target_id(target)))

    def stop_display(self) -> bool:
        if self._mode is None:
            return False
        log.debug("Stopping display mode %s", self._mode)
        self._mode = None
        self._transport.send(DisplayStop())
        self._flash("Canceling display mode")
        return True

    def on_deactivate(self) -> None:
        self.stop_display()
