"""Topov TUI dashboard: host canvas for the UI reference overlay."""

from __future__ import annotations

import argparse
import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Label, Static

from ..chain import PresentedStep
from ..events import Highlights
from ..models import SelectionContext
from ..overlay import UiRefOverlay
from ..peer import TopologyPeer
from ..logging_setup import configure
from ..settings import Settings, load_settings
from ..transport import LoopbackTransport
from .screens import HelpScreen, StepDialogScreen
from .widgets import HighlightPanel, TopovDataTable
from .css import APP_CSS

log = logging.getLogger(__name__)

_DETAIL_BUTTON_PREFIX = "detail-"


class TopovApp(App):
    TITLE = "topov"
    DEFAULT_CSS = APP_CSS
    BINDINGS = [
        Binding("v", "overlay_key('V')", "Mouse mode"),
        Binding("f", "overlay_key('F')", "Link mode"),
        Binding("0", "overlay_key('0')", "Stop mode"),
        Binding("g", "overlay_key('G')", "List"),
        Binding("s", "detail_action('simple')", "Process"),
        Binding("c", "detail_action('chain')", "Ports"),
        Binding("space", "toggle_select", "Select", show=False),
        Binding("escape", "escape", "Cancel", show=False),
        Binding("question_mark", "show_help", "?", key_display="?"),
        Binding("f10", "quit", "Quit"),
    ]

    def __init__(
        self,
        settings: Settings | None = None,
        peer: TopologyPeer | None = None,
    ) -> None:
        super().__init__()
        self.settings = settings or load_settings()
        self.peer = peer or TopologyPeer()
        self.transport = LoopbackTransport(schedule=self.call_later)
        self.transport.connect(self.peer)
        self.overlay = UiRefOverlay(
            self.transport,
            self,
            self,
            timers=self.set_timer,
            request_timeout=self.settings.chain.request_timeout,
            overlay_id=self.settings.overlay_id,
        )
        self._selected: list[str] = []
        self.detail_buttons: list[str] = []
        self.last_highlights = Highlights()

    def compose(self) -> ComposeResult:
        yield Container(
            Vertical(
                Horizontal(
                    Label("✦ UI Ref Overlay", id="title-text"),
                    Static("", id="mode-indicator"),
                    id="title-bar",
                ),
                TopovDataTable(id="device-table", cursor_type="row"),
                Static("", id="selection-line"),
                Horizontal(
                    Button("Process", id=f"{_DETAIL_BUTTON_PREFIX}simple", classes="hidden"),
                    Button("Ports", id=f"{_DETAIL_BUTTON_PREFIX}chain", classes="hidden"),
                    id="detail-buttons",
                ),
                HighlightPanel("", id="highlights"),
            )
        )

    def on_mount(self) -> None:
        table = self.query_one("#device-table", DataTable)
        table.add_column("", key="sel", width=1)
        table.add_columns("Device", "Name", "Ports")
        for device in self.peer.topology.devices.values():
            ports = sum(1 for port in device.ports if not port.logical)
            table.add_row("", device.id, device.name, str(ports), key=device.id)
        table.focus()

        self.overlay.activate()
        self.overlay.empty()
        self.set_interval(self.settings.peer.link_period, self.peer.tick)
        self._refresh_status()
        log.info("dashboard ready: %d devices", len(self.peer.topology.devices))

    def on_unmount(self) -> None:
        self.overlay.deactivate()

    # ── Host: flash / detail buttons / highlights ─────────────────────

    def flash(self, text: str) -> None:
        self.notify(text, timeout=2)
        self._refresh_status()

    def set_detail_buttons(self, names: list[str]) -> None:
        self.detail_buttons = list(names)
        self._render_detail_buttons()

    def show_highlights(self, highlights: Highlights) -> None:
        self.last_highlights = highlights
        self.query_one("#highlights", HighlightPanel).show(highlights)

    def _render_detail_buttons(self) -> None:
        for button in self.query("#detail-buttons Button").results(Button):
            name = (button.id or "")[len(_DETAIL_BUTTON_PREFIX):]
            button.set_class(name not in self.detail_buttons, "hidden")

    def _refresh_status(self) -> None:
        mode = self.overlay.mode.current_mode if self.overlay.mode else None
        self.query_one("#mode-indicator", Static).update(
            f"mode: {mode}" if mode else "mode: none"
        )
        selected = ", ".join(self._selected) if self._selected else "nothing selected"
        self.query_one("#selection-line", Static).update(f"Selection: {selected}")

    # ── Presenter ─────────────────────────────────────────────────────

    def present(self, step: PresentedStep) -> None:
        self.push_screen(StepDialogScreen(step))

    def close(self, owner: str) -> None:
        dialogs = [
            screen for screen in self.screen_stack[1:]
            if isinstance(screen, StepDialogScreen)
            and screen.step.owner == owner
            and not screen.orphaned
        ]
        if not dialogs:
            return
        if dialogs[-1] is not self.screen_stack[-1]:
            dialogs[-1].orphaned = True
            return
        self.pop_screen()
        while len(self.screen_stack) > 1:
            top = self.screen_stack[-1]
            if not (isinstance(top, StepDialogScreen) and top.orphaned):
                break
            self.pop_screen()

    # ── Selection ─────────────────────────────────────────────────────

    @property
    def selected_devices(self) -> SelectionContext:
        return SelectionContext.of(self._selected)

    def toggle_selected(self, device_id: str) -> None:
        if device_id in self._selected:
            self._selected.remove(device_id)
        else:
            self._selected.append(device_id)
        self._selection_changed()

    def clear_selection(self) -> None:
        if not self._selected:
            return
        self._selected.clear()
        self._selection_changed()

    def _selection_changed(self) -> None:
        self.overlay.selection_changed(self.selected_devices)
        self._mark_selected_rows()
        self._refresh_status()

    def _mark_selected_rows(self) -> None:
        table = self.query_one("#device-table", DataTable)
        for device_id in self.peer.topology.devices:
            marker = "●" if device_id in self._selected else ""
            table.update_cell(device_id, "sel", marker)

    def _cursor_device(self) -> str | None:
        table = self.query_one("#device-table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return None if row_key.value is None else str(row_key.value)

    # ── Events & actions ──────────────────────────────────────────────

    def _has_modal_open(self) -> bool:
        return len(self.screen_stack) > 1

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        key = event.row_key.value if event.row_key is not None else None
        if key is None:
            self.overlay.mouseout()
        else:
            self.overlay.mouseover({"id": str(key)})

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith(_DETAIL_BUTTON_PREFIX):
            self.action_detail_action(button_id[len(_DETAIL_BUTTON_PREFIX):])
            event.stop()

    def action_overlay_key(self, token: str) -> None:
        if self._has_modal_open():
            return
        self.overlay.handle_key(token)
        self._refresh_status()

    def action_detail_action(self, name: str) -> None:
        if self._has_modal_open():
            return
        if not self.overlay.invoke(name):
            self.notify(f"'{name}' is not available for this selection", timeout=2)

    def action_toggle_select(self) -> None:
        if self._has_modal_open():
            return
        device_id = self._cursor_device()
        if device_id is not None:
            self.toggle_selected(device_id)

    def action_escape(self) -> None:
        if self._has_modal_open():
            return
        if not self.overlay.escape():
            self.clear_selection()
        self._refresh_status()

    def action_show_help(self) -> None:
        if self._has_modal_open():
            return
        self.push_screen(HelpScreen())


def cmd_dashboard(args: argparse.Namespace | None = None) -> None:
    settings = load_settings()
    level = getattr(args, "log_level", None) or settings.log_level
    runtime = configure(level, console=False)
    log.info("logging to %s", runtime.file_path)
    app = TopovApp(settings=settings)
    app.run()


__all__: list[str] = ["TopovApp", "cmd_dashboard"]
