"""Custom widgets: TopovDataTable, HighlightPanel."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import DataTable, Static

from ..events import Highlights

_BADGE_STYLES = {
    "error": "bold #ff3366",
    "warn": "bold #ffaa00",
}


def render_highlights(highlights: Highlights) -> Text:
    """Render a highlight message as one line per device badge or link."""
    if highlights.empty:
        return Text("No highlights", style="#666666")
    text = Text()
    for dev in highlights.devices:
        text.append("● ", style="#00d7d7")
        text.append(dev.id, style="bold")
        if dev.badge is not None:
            style = _BADGE_STYLES.get(dev.badge.status, "bold")
            text.append(f"  [{dev.badge.count}] ", style=style)
            text.append(dev.badge.message)
        text.append("\n")
    for link in highlights.links:
        text.append("─ ", style="#00d7d7")
        text.append(link.id)
        if link.label:
            text.append(f"  {link.label}", style="bold #ffaa00")
        text.append("\n")
    text.rstrip()
    return text


class TopovDataTable(DataTable):
    """DataTable subclass that overrides the cursor styling."""
    DEFAULT_CSS = """
    TopovDataTable > .datatable--cursor {
        background: #cccccc;
        color: auto;
        text-style: none;
    }
    TopovDataTable:focus > .datatable--cursor {
        background: #cccccc;
        color: auto;
        text-style: none;
    }
    """


class HighlightPanel(Static):
    """Shows the latest highlight message from the peer."""

    def show(self, highlights: Highlights) -> None:
        self.update(render_highlights(highlights))
