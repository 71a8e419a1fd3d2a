"""Tab data model and the tab registry."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..log import logger

if TYPE_CHECKING:
    from .sessions import TerminalSession, ViewSession


class TabKind(enum.Enum):
    TERMINAL = "terminal"
    VIEW = "view"


class ConnectionState(enum.Enum):
    """Connection status of a terminal tab (also its status-dot style)."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class TabIcon(enum.Enum):
    """Presentation hint for view tabs."""

    CODE = "code"
    TERMINAL = "terminal"
    BOOK = "book"
    CHART = "chart"
    GLOBE = "globe"
    DATABASE = "database"
    SETTINGS = "settings"
    DESKTOP = "desktop"

    @classmethod
    def parse(cls, value: str | None) -> TabIcon:
        """Map a configured icon name to an icon, defaulting to globe."""
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.GLOBE


@dataclass
class TabConfig:
    """One configured view tab as served by ``/api/tabs``."""

    id: str
    name: str
    url: str
    icon: str = "globe"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TabConfig:
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            url=str(data.get("url", "")),
            icon=str(data.get("icon") or "globe"),
        )


@dataclass
class TabsResponse:
    """Parsed ``/api/tabs`` payload."""

    tabs: list[TabConfig] = field(default_factory=list)
    terminal_enabled: bool = True

    @classmethod
    def parse(cls, payload: Any) -> TabsResponse:
        """Accept both the object form and the legacy bare-list form."""
        if isinstance(payload, list):
            return cls(tabs=[TabConfig.from_dict(t) for t in payload if isinstance(t, dict)])
        if not isinstance(payload, dict):
            return cls()
        tabs = payload.get("tabs") or []
        return cls(
            tabs=[TabConfig.from_dict(t) for t in tabs if isinstance(t, dict)],
            terminal_enabled=payload.get("terminalEnabled") is not False,
        )


@dataclass
class TabEntry:
    """State common to every tab.  Whether a tab is active is owned by the registry."""

    id: str
    kind: TabKind
    title: str


@dataclass
class TerminalTab(TabEntry):
    state: ConnectionState = ConnectionState.CONNECTING
    session: TerminalSession | None = None


@dataclass
class ViewTab(TabEntry):
    url: str = ""
    icon: TabIcon = TabIcon.GLOBE
    session: ViewSession | None = None


class TabRegistry:
    """Ordered collection of tabs plus the active pointer and rename state.

    Insertion order is display order and keyboard cycle order.  Only the
    session switcher calls :meth:`activate`.
    """

    def __init__(self) -> None:
        self._tabs: dict[str, TabEntry] = {}
        self._issued: set[str] = set()
        self._terminal_counter = 0
        self._active_id: str | None = None
        # Rename in progress
        self.editing_tab_id: str | None = None
        self._rename_draft = ""

    # -- queries ---------------------------------------------------------

    def __contains__(self, tab_id: object) -> bool:
        return tab_id in self._tabs

    def __len__(self) -> int:
        return len(self._tabs)

    def get(self, tab_id: str | None) -> TabEntry | None:
        if tab_id is None:
            return None
        return self._tabs.get(tab_id)

    def list(self) -> list[TabEntry]:
        return list(self._tabs.values())

    def terminals(self) -> list[TerminalTab]:
        return [t for t in self._tabs.values() if isinstance(t, TerminalTab)]

    def views(self) -> list[ViewTab]:
        return [t for t in self._tabs.values() if isinstance(t, ViewTab)]

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def active(self) -> TabEntry | None:
        return self.get(self._active_id)

    def is_active(self, tab_id: str) -> bool:
        return tab_id is not None and tab_id == self._active_id

    def index_of(self, tab_id: str | None) -> int:
        ids = list(self._tabs)
        return ids.index(tab_id) if tab_id in self._tabs else -1

    def neighbour(self, tab_id: str | None, step: int) -> str | None:
        """Id *step* places away from *tab_id* in cycle order, wrapping around.

        With no current tab, stepping forward lands on the first tab and
        stepping back on the last.
        """
        ids = list(self._tabs)
        if not ids:
            return None
        index = self.index_of(tab_id)
        if index == -1:
            return ids[0] if step >= 0 else ids[-1]
        return ids[(index + step) % len(ids)]

    # -- mutation --------------------------------------------------------

    def create(self, kind: TabKind, config: TabConfig | None = None) -> str:
        """Add a tab and return its id.

        Terminal ids come from a monotonically increasing counter; view ids
        are derived from the configured id.
        """
        if kind is TabKind.TERMINAL:
            self._terminal_counter += 1
            tab_id = f"term-{self._terminal_counter}"
            title = (config.name if config and config.name else "") or (
                f"Terminal {self._terminal_counter}"
            )
            entry: TabEntry = TerminalTab(id=tab_id, kind=kind, title=title)
        else:
            if config is None:
                raise ValueError("view tabs need a TabConfig")
            tab_id = f"view-{config.id}"
            if tab_id in self._issued:
                raise ValueError(f"duplicate tab id: {tab_id}")
            entry = ViewTab(
                id=tab_id,
                kind=kind,
                title=config.name or config.id,
                url=config.url,
                icon=TabIcon.parse(config.icon),
            )
        self._issued.add(tab_id)
        self._tabs[tab_id] = entry
        return tab_id

    def removable(self, tab_id: str) -> bool:
        entry = self._tabs.get(tab_id)
        return isinstance(entry, TerminalTab) and len(self.terminals()) > 1

    def remove(self, tab_id: str) -> bool:
        """Remove a terminal tab.

        Refused (returns False) for unknown ids, view tabs and the last
        remaining terminal.
        """
        if not self.removable(tab_id):
            logger.debug("refusing to remove tab %s", tab_id)
            return False
        if self.editing_tab_id == tab_id:
            self._clear_rename()
        del self._tabs[tab_id]
        if self._active_id == tab_id:
            self._active_id = None
        return True

    def activate(self, tab_id: str) -> None:
        if tab_id not in self._tabs:
            return
        self._active_id = tab_id

    # -- rename ----------------------------------------------------------

    @property
    def rename_draft(self) -> str:
        return self._rename_draft

    def begin_rename(self, tab_id: str) -> bool:
        """Enter edit mode for a terminal tab title.

        Another tab still in edit mode is committed first, so at most one
        title is ever being edited.
        """
        entry = self._tabs.get(tab_id)
        if not isinstance(entry, TerminalTab):
            return False
        if self.editing_tab_id == tab_id:
            return True
        if self.editing_tab_id is not None:
            self.commit_rename()
        self.editing_tab_id = tab_id
        self._rename_draft = entry.title
        return True

    def update_rename(self, text: str) -> None:
        if self.editing_tab_id is not None:
            self._rename_draft = text

    def commit_rename(self) -> str | None:
        """Apply the draft if it is non-blank; return the edited tab id."""
        tab_id = self.editing_tab_id
        if tab_id is None:
            return None
        entry = self._tabs.get(tab_id)
        title = self._rename_draft.strip()
        if entry is not None and title:
            entry.title = title
        self._clear_rename()
        return tab_id

    def cancel_rename(self) -> str | None:
        """Drop the draft; the title was never touched while editing."""
        tab_id = self.editing_tab_id
        self._clear_rename()
        return tab_id

    def rename(self, tab_id: str, title: str) -> bool:
        """One-shot rename; blank titles leave the current title in place."""
        if not self.begin_rename(tab_id):
            return False
        self.update_rename(title)
        self.commit_rename()
        return True

    def _clear_rename(self) -> None:
        self.editing_tab_id = None
        self._rename_draft = ""
