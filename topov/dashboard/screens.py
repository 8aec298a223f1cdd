"""Modal screens: chain step dialog, help."""

from __future__ import annotations

from typing import TYPE_CHECKING

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Label, Select

from ..chain import PresentedStep
from .css import HELP_CSS, STEP_DIALOG_CSS

if TYPE_CHECKING:
    from .app import TopovApp


_CHECK_PREFIX = "step-check-"
_BUTTON_PREFIX = "step-btn-"


class _TopovScreenMixin:
    """Mixin providing typed access to the TopovApp instance."""

    @property
    def topov(self) -> TopovApp:
        return self.app  # type: ignore[return-value, attr-defined]


# ── Chain step ────────────────────────────────────────────────────────

class StepDialogScreen(_TopovScreenMixin, ModalScreen):
    """One dialog step. Closing is driven by the sequencer, not the buttons."""
    CSS = STEP_DIALOG_CSS
    BINDINGS = [Binding("escape", "cancel", "Cancel", show=False)]

    def __init__(self, step: PresentedStep) -> None:
        super().__init__()
        self.step = step
        # Set when the owning chain closed this dialog while another covered it.
        self.orphaned = False

    def compose(self) -> ComposeResult:
        step = self.step
        with Vertical(id="step-dialog"):
            yield Label(step.title, classes="step-title")
            for line in step.lines:
                yield Label(line)
            if step.selector is not None:
                yield Label(f"{step.selector.label}:")
                yield Select(
                    [(option.label, option.id) for option in step.options],
                    prompt=step.selector.prompt,
                    id="step-select",
                )
            for box in step.checkboxes:
                yield Checkbox(
                    box.label,
                    value=bool(step.values.get(box.field)),
                    id=f"{_CHECK_PREFIX}{box.field}",
                )
            with Horizontal(id="step-buttons"):
                for index, button in enumerate(step.buttons):
                    yield Button(
                        button.label,
                        variant="primary" if button.advances else "default",
                        id=f"{_BUTTON_PREFIX}{index}",
                    )

    def on_mount(self) -> None:
        if self.step.selector is not None:
            self.query_one("#step-select", Select).focus()
            return
        self.query_one(f"#{_BUTTON_PREFIX}{len(self.step.buttons) - 1}", Button).focus()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "step-select" or self.step.selector is None:
            return
        value = None if event.value is Select.BLANK else str(event.value)
        self.step.on_change(self.step.selector.field, value)

    def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        checkbox_id = event.checkbox.id or ""
        if not checkbox_id.startswith(_CHECK_PREFIX):
            return
        self.step.on_change(checkbox_id[len(_CHECK_PREFIX):], bool(event.value))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith(_BUTTON_PREFIX):
            index = int(button_id[len(_BUTTON_PREFIX):])
            if 0 <= index < len(self.step.buttons):
                self.step.buttons[index].callback()
        event.stop()

    def action_cancel(self) -> None:
        self.step.on_escape()


# ── Help ──────────────────────────────────────────────────────────────

_HELP_BINDINGS: list[tuple[str, str]] = [
    ("", "─── Display Modes ───"),
    ("v", "Start mouse mode (hover a device to highlight its egress links)"),
    ("f", "Start link mode (cycles link highlights)"),
    ("0", "Cancel display mode"),
    ("Esc", "Cancel display mode, otherwise clear the selection"),
    ("", "─── Selection & Actions ───"),
    ("space", "Toggle selection of the device under the cursor"),
    ("s", "Process selected devices (one or more)"),
    ("c", "Choose a port on the selected device (exactly one)"),
    ("g", "Show the list dialog"),
    ("", "─── General ───"),
    ("?", "This help"),
    ("F10", "Quit"),
]


class HelpScreen(ModalScreen):
    CSS = HELP_CSS
    BINDINGS = [Binding("escape", "dismiss", "Close", show=False)]

    def compose(self) -> ComposeResult:
        with Vertical(id="help-dialog"):
            yield Label("✦ UI Ref Overlay — Keybindings", classes="help-title")
            for key, desc in _HELP_BINDINGS:
                if not key:
                    yield Label(desc, classes="help-section")
                    continue
                with Horizontal(classes="help-row"):
                    yield Label(key, classes="help-key")
                    yield Label(desc, classes="help-desc")
            yield Label("Esc closes", classes="help-footer")
