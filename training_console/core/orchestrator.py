"""Tab orchestrator: creates, switches, renames and tears down sessions.

The orchestrator holds no widgets.  It talks to the presentation layer
through :class:`ConsoleView`, which mounts surfaces and redraws the tab
strip whenever the registry changes.
"""

from __future__ import annotations

from typing import Protocol, cast

from ..log import logger
from .commands import Action
from .connection import ConnectionManager, Connector
from .scheduler import LoopScheduler, Scheduler
from .sessions import DisplaySurface, TerminalSession, ViewSession, ViewSurface
from .switcher import SessionSwitcher
from .tabs import (
    ConnectionState,
    TabConfig,
    TabKind,
    TabRegistry,
    TabsResponse,
    TerminalTab,
    ViewTab,
)


class ConsoleView(Protocol):
    """Presentation hooks the orchestrator drives."""

    def mount_terminal(self, tab: TerminalTab) -> DisplaySurface: ...

    def mount_view(self, tab: ViewTab) -> ViewSurface: ...

    def unmount(self, tab_id: str) -> None: ...

    def tabs_changed(self, registry: TabRegistry) -> None: ...


class TabOrchestrator:
    """Owns the tab registry and every session hanging off it."""

    def __init__(
        self,
        view: ConsoleView,
        *,
        terminal_url: str,
        connector: Connector,
        scheduler: Scheduler | None = None,
        reconnect_delay: float = 2.0,
        fit_delay: float = 0.01,
        registry: TabRegistry | None = None,
    ) -> None:
        self.view = view
        self.terminal_url = terminal_url
        self.connector = connector
        self.scheduler = scheduler or LoopScheduler()
        self.reconnect_delay = reconnect_delay
        self.fit_delay = fit_delay
        self.registry = registry or TabRegistry()
        self.switcher = SessionSwitcher(self.registry, on_switch=self._switched)
        self.terminal_enabled = True

    # -- setup -----------------------------------------------------------

    def bootstrap(self, tabs: TabsResponse) -> None:
        """Create the configured view tabs, then the first terminal."""
        self.terminal_enabled = tabs.terminal_enabled
        for config in tabs.tabs:
            self.add_view(config)
        if self.terminal_enabled:
            self.add_terminal()
        elif self.registry.views():
            self.switcher.switch_to(self.registry.views()[0].id)
        self._refresh()

    def add_view(self, config: TabConfig) -> str | None:
        try:
            tab_id = self.registry.create(TabKind.VIEW, config)
        except ValueError as error:
            logger.warning("skipping view tab %r: %s", config.id, error)
            return None
        tab = cast(ViewTab, self.registry.get(tab_id))
        tab.session = ViewSession(tab_id, tab.url, self.view.mount_view(tab))
        tab.session.hide()
        self._refresh()
        return tab_id

    def add_terminal(self, title: str | None = None) -> str | None:
        """Open a new terminal tab, connect it and bring it to the front."""
        if not self.terminal_enabled:
            logger.debug("terminals are disabled, not adding one")
            return None
        config = TabConfig(id="", name=title or "", url=self.terminal_url)
        tab_id = self.registry.create(TabKind.TERMINAL, config)
        tab = cast(TerminalTab, self.registry.get(tab_id))

        surface = self.view.mount_terminal(tab)
        connection = ConnectionManager(
            tab_id,
            self.terminal_url,
            connector=self.connector,
            scheduler=self.scheduler,
            is_alive=self.registry.__contains__,
            reconnect_delay=self.reconnect_delay,
            on_state=self._state_changed,
        )
        tab.session = TerminalSession(
            tab_id,
            connection,
            surface,
            scheduler=self.scheduler,
            fit_delay=self.fit_delay,
        )
        connection.connect()
        self.switcher.switch_to(tab_id)
        return tab_id

    # -- teardown --------------------------------------------------------

    def close_terminal(self, tab_id: str) -> bool:
        """Close a terminal tab; the last terminal is never closed."""
        tab = self.registry.get(tab_id)
        if not isinstance(tab, TerminalTab) or not self.registry.removable(tab_id):
            return False

        terminals = self.registry.terminals()
        index = terminals.index(tab)
        was_active = self.registry.is_active(tab_id)

        if tab.session is not None:
            tab.session.close()
        self.view.unmount(tab_id)
        self.registry.remove(tab_id)

        if was_active:
            remaining = self.registry.terminals()
            self.switcher.switch_to(remaining[min(index, len(remaining) - 1)].id)
        self._refresh()
        return True

    def close_active(self) -> bool:
        active = self.registry.active
        if not isinstance(active, TerminalTab):
            return False
        return self.close_terminal(active.id)

    def shutdown(self) -> None:
        """Close every connection (process exit)."""
        for tab in self.registry.terminals():
            if tab.session is not None:
                tab.session.close()

    # -- navigation ------------------------------------------------------

    def switch_to(self, tab_id: str) -> bool:
        return self.switcher.switch_to(tab_id)

    def cycle(self, step: int) -> bool:
        return self.switcher.cycle(step)

    def perform(self, action: Action) -> bool:
        """Run a tab-level keyboard action; other actions are not ours."""
        if action is Action.NEW_TERMINAL:
            return self.add_terminal() is not None
        if action is Action.CLOSE_TERMINAL:
            return self.close_active()
        if action is Action.NEXT_TAB:
            return self.cycle(1)
        if action is Action.PREVIOUS_TAB:
            return self.cycle(-1)
        return False

    def active_terminal(self) -> TerminalTab | None:
        active = self.registry.active
        return active if isinstance(active, TerminalTab) else None

    def fit_active(self) -> None:
        """Re-fit the foreground terminal after its container changed size."""
        tab = self.active_terminal()
        if tab is not None and tab.session is not None:
            tab.session.schedule_fit()

    def run_in_active_terminal(self, text: str) -> bool:
        """Type a command into the foreground terminal and press enter."""
        tab = self.active_terminal()
        if tab is None or tab.session is None:
            return False
        if tab.state is not ConnectionState.CONNECTED:
            return False
        if not tab.session.feed_input(text.strip() + "\n"):
            return False
        tab.session.focus()
        return True

    # -- rename ----------------------------------------------------------

    def begin_rename(self, tab_id: str) -> bool:
        started = self.registry.begin_rename(tab_id)
        self._refresh()
        return started

    def update_rename(self, text: str) -> None:
        self.registry.update_rename(text)

    def commit_rename(self) -> str | None:
        tab_id = self.registry.commit_rename()
        self._refresh()
        return tab_id

    def cancel_rename(self) -> str | None:
        tab_id = self.registry.cancel_rename()
        self._refresh()
        return tab_id

    def rename(self, tab_id: str, title: str) -> bool:
        renamed = self.registry.rename(tab_id, title)
        self._refresh()
        return renamed

    # -- observers -------------------------------------------------------

    def _state_changed(self, tab_id: str, state: ConnectionState) -> None:
        tab = self.registry.get(tab_id)
        if not isinstance(tab, TerminalTab):
            return
        tab.state = state
        if state is ConnectionState.CONNECTED and self.registry.is_active(tab_id):
            if tab.session is not None and self.registry.editing_tab_id is None:
                tab.session.focus()
        self._refresh()

    def _switched(self, tab_id: str) -> None:
        self._refresh()

    def _refresh(self) -> None:
        self.view.tabs_changed(self.registry)
