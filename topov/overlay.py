"""UI reference overlay: binds the interaction core to a host canvas.

The host supplies flash messages, detail-button registration, highlight
rendering, dialog presentation and (optionally) timers. Everything the
overlay owns is built on ``activate()`` and torn down on ``deactivate()``,
so no state leaks from one activation to the next.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .chain import ChainSpec, DialogSequencer, Presenter, Timers
from .config import OVERLAY_ID, OVERLAY_TOOLTIP
from .dialogs import LIST_DIALOG, PORT_CHAIN, SIMPLE_DIALOG
from .display import ModeController
from .dispatch import ActionDispatcher, DetailAction
from .events import EventName, Highlights, InboundMessage
from .models import Cardinality, SelectionContext
from .transport import Handler, Transport

log = logging.getLogger(__name__)


class Host(Protocol):
    def flash(self, text: str) -> None: ...

    def set_detail_buttons(self, names: list[str]) -> None: ...

    def show_highlights(self, highlights: Highlights) -> None: ...


@dataclass(frozen=True)
class KeyBinding:
    key: str
    tooltip: str
    glyph: str
    callback: Callable[[], object]


class UiRefOverlay:
    overlay_id = OVERLAY_ID
    tooltip = OVERLAY_TOOLTIP

    def __init__(
        self,
        transport: Transport,
        presenter: Presenter,
        host: Host,
        *,
        timers: Timers | None = None,
        request_timeout: float = 0.0,
        overlay_id: str | None = None,
    ) -> None:
        self._transport = transport
        self._presenter = presenter
        self._host = host
        self._timers = timers
        self._request_timeout = request_timeout
        if overlay_id:
            self.overlay_id = overlay_id

        self.mode: ModeController | None = None
        self.chain: DialogSequencer | None = None
        self.simple: DialogSequencer | None = None
        self.listing: DialogSequencer | None = None
        self.dispatcher: ActionDispatcher | None = None
        self._handlers: dict[EventName, Handler] = {}

    @property
    def active(self) -> bool:
        return self.mode is not None

    # ── Lifecycle ────────────────────────────────────────────────────

    def activate(self) -> None:
        if self.active:
            return
        flash = self._host.flash
        self.mode = ModeController(self._transport, flash)
        self.chain = self._sequencer(PORT_CHAIN)
        self.simple = self._sequencer(SIMPLE_DIALOG)
        self.listing = self._sequencer(LIST_DIALOG)
        self.dispatcher = ActionDispatcher(
            [
                DetailAction(
                    "simple", "A FOO action",
                    frozenset({Cardinality.SINGLE, Cardinality.MULTI}),
                    self.simple.trigger,
                ),
                DetailAction(
                    "chain", "A BAR action",
                    frozenset({Cardinality.SINGLE}),
                    self.chain.trigger,
                ),
            ],
            expose=self._host.set_detail_buttons,
        )
        self._handlers = {EventName.HIGHLIGHTS: self._on_highlights}
        self._handlers.update(self.chain.handlers)
        self._transport.bind_handlers(self._handlers)
        log.debug("UI Ref topology overlay ACTIVATED")

    def deactivate(self) -> None:
        if self.mode is None:
            return
        self.mode.on_deactivate()
        for sequencer in (self.chain, self.simple, self.listing):
            if sequencer is not None:
                sequencer.close()
        self._transport.unbind_handlers(self._handlers)
        self._handlers = {}
        self.mode = None
        self.chain = self.simple = self.listing = None
        self.dispatcher = None
        log.debug("UI Ref topology overlay DEACTIVATED")

    def _sequencer(self, spec: ChainSpec) -> DialogSequencer:
        return DialogSequencer(
            spec,
            self._transport,
            self._presenter,
            flash=self._host.flash,
            timers=self._timers,
            request_timeout=self._request_timeout,
        )

    # ── Key bindings ─────────────────────────────────────────────────

    def key_bindings(self) -> list[KeyBinding]:
        """Bindings in display order; empty while inactive."""
        mode, listing = self.mode, self.listing
        if mode is None or listing is None:
            return []
        return [
            KeyBinding("0", "Cancel Display Mode", "xMark", mode.stop_display),
            KeyBinding("V", "Start Mouse Mode", "banner", lambda: mode.start_display("mouse")),
            KeyBinding("F", "Start Link Mode", "chain", lambda: mode.start_display("link")),
            KeyBinding("G", "Uses the G key", "crown", lambda: listing.trigger(self.selection)),
        ]

    def handle_key(self, token: str) -> bool:
        """Run the binding for ``token``; False when no binding matches."""
        wanted = token.upper()
        for binding in self.key_bindings():
            if binding.key == wanted:
                binding.callback()
                return True
        return False

    def invoke(self, name: str) -> bool:
        if self.dispatcher is None:
            return False
        return self.dispatcher.invoke(name)

    # ── Hooks ────────────────────────────────────────────────────────

    @property
    def selection(self) -> SelectionContext:
        if self.dispatcher is None:
            return SelectionContext()
        return self.dispatcher.selection

    def escape(self) -> bool:
        """Returns True when the escape key was consumed."""
        if self.mode is None:
            return False
        return self.mode.stop_display()

    def empty(self) -> None:
        self._selection_changed(Cardinality.EMPTY, SelectionContext())

    def single(self, selection: SelectionContext) -> None:
        self._selection_changed(Cardinality.SINGLE, selection)

    def multi(self, selection: SelectionContext) -> None:
        self._selection_changed(Cardinality.MULTI, selection)

    def selection_changed(self, selection: SelectionContext) -> None:
        """Route a fresh selection to the matching cardinality hook."""
        kind = selection.cardinality
        if kind is Cardinality.EMPTY:
            self.empty()
        elif kind is Cardinality.SINGLE:
            self.single(selection)
        else:
            self.multi(selection)

    def mouseover(self, target: object) -> None:
        log.debug("mouseover: %s", target)
        if self.mode is not None:
            self.mode.update_display(target)

    def mouseout(self) -> None:
        log.debug("mouseout")
        if self.mode is not None:
            self.mode.update_display()

    def _selection_changed(self, kind: Cardinality, selection: SelectionContext) -> None:
        if self.dispatcher is None:
            return
        self.dispatcher.on_selection(kind, selection)

    def _on_highlights(self, message: InboundMessage) -> None:
        if isinstance(message, Highlights):
            self._host.show_highlights(message)
