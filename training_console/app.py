"""Main training console application."""

from __future__ import annotations

import asyncio

from textual import events, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widget import Widget

from .core.api import ContentClient, RemoteCallFailure
from .core.commands import Action, FocusContext, KeyDispatcher
from .core.connection import Connector, websocket_connector
from .core.orchestrator import TabOrchestrator
from .core.scheduler import Scheduler
from .core.tabs import TabRegistry, TabsResponse, TerminalTab, ViewTab
from .log import logger
from .preferences import Preferences, clamp_instructions_width, load_preferences
from .theme import CONSOLE_THEME
from .widgets.instructions import InstructionsPane
from .widgets.tabs import TabBar, TabTitleInput
from .widgets.terminal import TerminalDisplay, TerminalSurface
from .widgets.views import EmbeddedView, ViewPaneSurface

WIDTH_STEP = 5

_CONSOLE_CSS = """\
Screen {
    background: $background;
}

#main {
    height: 1fr;
}

#instructions {
    height: 1fr;
    border-right: solid $panel;
    background: $surface;
}

#scenario-header {
    height: auto;
    padding: 0 1;
    border-bottom: solid $panel;
}

#scenario-title {
    text-style: bold;
    color: $primary;
}

#scenario-description {
    color: $text-muted;
}

#instructions-scroll {
    height: 1fr;
    padding: 0 1;
}

#snippets {
    height: auto;
}

.snippet {
    height: auto;
    margin: 0 0 1 0;
}

.snippet-preview {
    width: 1fr;
    color: $text-muted;
    padding: 1 1 0 0;
}

.snippet Button {
    min-width: 8;
}

#check-result {
    height: auto;
    padding: 0 1;
    margin: 0 1;
}

#check-result.success {
    color: $success;
    border-left: thick $success;
}

#check-result.error {
    color: $error;
    border-left: thick $error;
}

#step-nav {
    height: auto;
    padding: 0 1;
    border-top: solid $panel;
}

#step-progress {
    width: 1fr;
    content-align: center middle;
    height: 3;
    color: $text-muted;
}

#workspace {
    width: 1fr;
    height: 1fr;
}

TabBar {
    height: 1;
    background: $panel;
}

.tab-item {
    width: auto;
    height: 1;
    padding: 0 1;
    color: $text-muted;
}

.tab-item.tab-active {
    background: $background;
    color: $foreground;
    text-style: bold;
}

.tab-status {
    width: 2;
}

.tab-title {
    width: auto;
}

.tab-title-input {
    width: 20;
    height: 1;
    border: none;
    padding: 0;
}

.tab-close {
    width: 2;
    padding: 0 0 0 1;
    color: $text-disabled;
}

.tab-close:hover {
    color: $error;
}

.tab-add {
    width: 3;
    content-align: center middle;
    color: $accent;
}

#sessions {
    height: 1fr;
}

.session-pane {
    display: none;
    height: 1fr;
}

.session-pane.active {
    display: block;
}
"""


class TrainingConsoleApp(App):
    """Split-pane console: step instructions on the left, live sessions on the right."""

    CSS = _CONSOLE_CSS
    TITLE = "Training Console"

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=True, priority=True),
        Binding("f2", "rename_tab", "Rename", show=False),
        Binding("alt+right", "widen_instructions", "Widen", show=False, priority=True),
        Binding("alt+left", "narrow_instructions", "Narrow", show=False, priority=True),
    ]

    def __init__(
        self,
        prefs: Preferences | None = None,
        *,
        client: ContentClient | None = None,
        connector: Connector | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        super().__init__()
        self._prefs = prefs or load_preferences()
        self.client = client or ContentClient(
            self._prefs.server.api_base, timeout=self._prefs.server.timeout
        )
        self.dispatcher = KeyDispatcher(self._prefs.keys)
        self.instructions_width = self._prefs.layout.instructions_width
        self.orchestrator = TabOrchestrator(
            self,
            terminal_url=self._prefs.server.terminal_url,
            connector=connector
            or websocket_connector(self._prefs.terminal.open_timeout),
            scheduler=scheduler,
            reconnect_delay=self._prefs.terminal.reconnect_delay,
            fit_delay=self._prefs.terminal.fit_delay,
        )
        self._panes: dict[str, Widget] = {}

    # ── Layout ──────────────────────────────────────────────────

    def compose(self) -> ComposeResult:
        with Horizontal(id="main"):
            yield InstructionsPane(self.client, id="instructions")
            with Vertical(id="workspace"):
                yield TabBar(id="tab-bar")
                yield Container(id="sessions")

    async def on_mount(self) -> None:
        self.register_theme(CONSOLE_THEME)
        self.theme = CONSOLE_THEME.name
        self._apply_instructions_width()
        self._load_content()

    @work(exclusive=True, group="load")
    async def _load_content(self) -> None:
        """Fetch scenario, steps and tab configuration concurrently."""
        scenario, steps, tabs = await asyncio.gather(
            self.client.fetch_scenario(),
            self.client.fetch_steps(),
            self.client.fetch_tabs(),
            return_exceptions=True,
        )
        if not isinstance(tabs, TabsResponse):
            tabs = TabsResponse()
        # Sessions come up even when the scenario itself is unavailable
        self.orchestrator.bootstrap(tabs)

        pane = self.query_one(InstructionsPane)
        for result in (scenario, steps):
            if isinstance(result, BaseException):
                logger.error("failed to load scenario: %s", result)
                message = (
                    str(result) if isinstance(result, RemoteCallFailure) else repr(result)
                )
                await pane.show_load_failure(message)
                return
        pane.show_scenario(scenario, steps)
        if steps:
            await pane.load_step(1)

    async def action_quit(self) -> None:
        """Close every terminal connection and the HTTP client, then exit."""
        self.orchestrator.shutdown()
        await self.client.aclose()
        self.exit()

    # ── ConsoleView ─────────────────────────────────────────────

    def mount_terminal(self, tab: TerminalTab) -> TerminalSurface:
        display = TerminalDisplay()

        def send_input(data: str) -> None:
            if tab.session is not None:
                tab.session.feed_input(data)

        display.send_input = send_input
        display.key_filter = self._terminal_key
        pane = Container(display, classes="session-pane terminal-pane")
        self._mount_pane(tab.id, pane)
        return TerminalSurface(pane, display)

    def mount_view(self, tab: ViewTab) -> ViewPaneSurface:
        pane = EmbeddedView(tab)
        self._mount_pane(tab.id, pane)
        return ViewPaneSurface(pane)

    def unmount(self, tab_id: str) -> None:
        pane = self._panes.pop(tab_id, None)
        if pane is not None:
            pane.remove()

    def tabs_changed(self, registry: TabRegistry) -> None:
        try:
            bar = self.query_one(TabBar)
        except NoMatches:
            return
        bar.sync(registry, self.orchestrator.terminal_enabled)

    def _mount_pane(self, tab_id: str, pane: Widget) -> None:
        self._panes[tab_id] = pane
        self.query_one("#sessions", Container).mount(pane)

    # ── Keyboard ────────────────────────────────────────────────

    def _focus_context(self) -> FocusContext:
        if isinstance(self.focused, TabTitleInput):
            return FocusContext.RENAME
        if isinstance(self.focused, TerminalDisplay):
            return FocusContext.TERMINAL
        return FocusContext.OTHER

    def _terminal_key(self, key: str) -> bool:
        """Console shortcuts that take priority over the shell."""
        action = self.dispatcher.resolve(key, FocusContext.TERMINAL)
        if action is None:
            return False
        self.perform(action)
        return True

    def on_key(self, event: events.Key) -> None:
        action = self.dispatcher.resolve(event.key, self._focus_context())
        if action is None:
            return
        event.stop()
        event.prevent_default()
        self.perform(action)

    def perform(self, action: Action) -> bool:
        pane = self.query_one(InstructionsPane)
        if action is Action.STEP_BACK:
            return pane.navigate(-1)
        if action is Action.STEP_FORWARD:
            return pane.navigate(1)
        if action is Action.CHECK:
            return pane.request_check()
        return self.orchestrator.perform(action)

    # ── Tab bar ─────────────────────────────────────────────────

    def on_tab_bar_selected(self, event: TabBar.Selected) -> None:
        self.orchestrator.switch_to(event.tab_id)

    def on_tab_bar_close_requested(self, event: TabBar.CloseRequested) -> None:
        if not self.orchestrator.close_terminal(event.tab_id):
            self.notify("The last terminal cannot be closed", severity="warning")

    def on_tab_bar_add_requested(self, _event: TabBar.AddRequested) -> None:
        self.orchestrator.add_terminal()

    def on_tab_bar_rename_requested(self, event: TabBar.RenameRequested) -> None:
        self.orchestrator.begin_rename(event.tab_id)

    def on_tab_bar_rename_edited(self, event: TabBar.RenameEdited) -> None:
        self.orchestrator.update_rename(event.text)

    def on_tab_bar_rename_finished(self, event: TabBar.RenameFinished) -> None:
        if self.orchestrator.registry.editing_tab_id is None:
            return
        if event.save:
            self.orchestrator.commit_rename()
        else:
            self.orchestrator.cancel_rename()
        terminal = self.orchestrator.active_terminal()
        if terminal is not None and terminal.session is not None:
            terminal.session.focus()

    def on_instructions_pane_run_snippet(
        self, event: InstructionsPane.RunSnippet
    ) -> None:
        if not self.orchestrator.run_in_active_terminal(event.text):
            self.notify("No connected terminal to run this in", severity="warning")

    def on_terminal_display_released(self, _event: TerminalDisplay.Released) -> None:
        self.notify("Terminal released. Click it to type again.", timeout=2)

    # ── Layout actions ──────────────────────────────────────────

    def on_resize(self, _event: events.Resize) -> None:
        self.orchestrator.fit_active()

    def action_rename_tab(self) -> None:
        active = self.orchestrator.active_terminal()
        if active is not None:
            self.orchestrator.begin_rename(active.id)

    def action_widen_instructions(self) -> None:
        self._set_instructions_width(self.instructions_width + WIDTH_STEP)

    def action_narrow_instructions(self) -> None:
        self._set_instructions_width(self.instructions_width - WIDTH_STEP)

    def _set_instructions_width(self, percent: int) -> None:
        width = clamp_instructions_width(percent)
        if width == self.instructions_width:
            return
        self.instructions_width = width
        self._apply_instructions_width()
        self.orchestrator.fit_active()

    def _apply_instructions_width(self) -> None:
        self.query_one(InstructionsPane).styles.width = f"{self.instructions_width}%"


# ── Entry Point ─────────────────────────────────────────────────────


def run_app(prefs: Preferences | None = None) -> None:
    """Run the training console."""
    app = TrainingConsoleApp(prefs)
    app.run()
