"""Panes for view tabs (editor, dashboards, other URL-addressable views)."""

from __future__ import annotations

from textual.containers import Vertical
from textual.widgets import Button, Static

from ..core.tabs import ViewTab
from .tabs import ICONS


class EmbeddedView(Vertical):
    """Placeholder pane for an external view; the view itself opens in a browser."""

    DEFAULT_CSS = """
    EmbeddedView {
        align: center middle;
        padding: 1 2;
    }
    EmbeddedView .view-title {
        text-style: bold;
        color: $primary;
        width: auto;
    }
    EmbeddedView .view-url {
        color: $text-muted;
        width: auto;
        margin: 1 0;
    }
    """

    def __init__(self, tab: ViewTab) -> None:
        super().__init__(classes="session-pane view-pane")
        self.tab_id = tab.id
        self.view_title = tab.title
        self.url = tab.url
        self.icon = tab.icon

    def compose(self):
        yield Static(
            f"{ICONS[self.icon]}  {self.view_title}", classes="view-title", markup=False
        )
        yield Static(self.url, classes="view-url", markup=False)
        yield Button("Open in browser", classes="view-open")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.app.open_url(self.url)


class ViewPaneSurface:
    """Show/hide adapter the view session drives."""

    def __init__(self, pane: EmbeddedView) -> None:
        self.pane = pane

    def show(self) -> None:
        self.pane.add_class("active")

    def hide(self) -> None:
        self.pane.remove_class("active")
