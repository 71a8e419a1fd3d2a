"""Tab strip widgets for the training console."""

from __future__ import annotations

from textual import events
from textual.containers import Horizontal
from textual.message import Message
from textual.widgets import Input, Static

from ..core.tabs import TabEntry, TabIcon, TabRegistry, TerminalTab, ViewTab
from ..theme import STATUS_COLORS

ICONS: dict[TabIcon, str] = {
    TabIcon.CODE: "</>",
    TabIcon.TERMINAL: ">_",
    TabIcon.BOOK: "≡",
    TabIcon.CHART: "↗",
    TabIcon.GLOBE: "◍",
    TabIcon.DATABASE: "⛁",
    TabIcon.SETTINGS: "⚙",
    TabIcon.DESKTOP: "▭",
}


class TabBar(Horizontal):
    """Horizontal strip of session tabs with a trailing "+" button."""

    class Selected(Message):
        def __init__(self, tab_id: str) -> None:
            self.tab_id = tab_id
            super().__init__()

    class CloseRequested(Message):
        def __init__(self, tab_id: str) -> None:
            self.tab_id = tab_id
            super().__init__()

    class RenameRequested(Message):
        def __init__(self, tab_id: str) -> None:
            self.tab_id = tab_id
            super().__init__()

    class RenameEdited(Message):
        def __init__(self, text: str) -> None:
            self.text = text
            super().__init__()

    class RenameFinished(Message):
        """The edit field was confirmed or lost focus (save=True) or cancelled."""

        def __init__(self, save: bool) -> None:
            self.save = save
            super().__init__()

    class AddRequested(Message):
        pass

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._items: dict[str, TabItem] = {}

    @property
    def tab_ids(self) -> list[str]:
        return list(self._items)

    def item(self, tab_id: str) -> TabItem | None:
        return self._items.get(tab_id)

    def compose(self):
        yield AddTabButton("+", id="btn-add-tab", classes="tab-add")

    def sync(self, registry: TabRegistry, terminal_enabled: bool = True) -> None:
        """Bring the strip in line with the registry without rebuilding it."""
        for tab_id in [t for t in self._items if t not in registry]:
            self._items.pop(tab_id).remove()

        add_button = self.query_one("#btn-add-tab", AddTabButton)
        add_button.display = terminal_enabled

        for tab in registry.list():
            item = self._items.get(tab.id)
            if item is None:
                item = self._items[tab.id] = TabItem(tab)
                self.mount(item, before=add_button)
            item.update_from(
                tab,
                active=registry.is_active(tab.id),
                editing=registry.editing_tab_id == tab.id,
                draft=registry.rename_draft,
            )


class AddTabButton(Static):
    def on_click(self, event: events.Click) -> None:
        event.stop()
        self.post_message(TabBar.AddRequested())


class TabLabel(Static):
    """Clickable title: click to switch, double-click to rename."""

    def __init__(self, tab_id: str, **kwargs) -> None:
        super().__init__("", markup=False, **kwargs)
        self.tab_id = tab_id

    def on_click(self, event: events.Click) -> None:
        event.stop()
        if getattr(event, "chain", 1) >= 2:
            self.post_message(TabBar.RenameRequested(self.tab_id))
        else:
            self.post_message(TabBar.Selected(self.tab_id))


class TabClose(Static):
    def __init__(self, tab_id: str, **kwargs) -> None:
        super().__init__("×", **kwargs)
        self.tab_id = tab_id

    def on_click(self, event: events.Click) -> None:
        event.stop()
        self.post_message(TabBar.CloseRequested(self.tab_id))


class TabTitleInput(Input):
    """In-place title editor: Enter or blur saves, Escape cancels."""

    def on_input_changed(self, event: Input.Changed) -> None:
        event.stop()
        self.post_message(TabBar.RenameEdited(event.value))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.post_message(TabBar.RenameFinished(save=True))

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            event.stop()
            event.prevent_default()
            self.post_message(TabBar.RenameFinished(save=False))

    def on_blur(self, _event: events.Blur) -> None:
        self.post_message(TabBar.RenameFinished(save=True))

    def on_click(self, event: events.Click) -> None:
        event.stop()


class TabItem(Horizontal):
    """One tab: status dot, optional icon, title (or edit field), close button."""

    def __init__(self, tab: TabEntry) -> None:
        super().__init__(classes="tab-item")
        self.tab_id = tab.id
        self.is_terminal = isinstance(tab, TerminalTab)
        self.editor: TabTitleInput | None = None
        self._pending: tuple[TabEntry, bool, bool, str] | None = None
        self._ready = False

    def compose(self):
        yield Static("●", classes="tab-status")
        yield TabLabel(self.tab_id, classes="tab-title")
        if self.is_terminal:
            yield TabClose(self.tab_id, classes="tab-close")

    def on_mount(self) -> None:
        self._ready = True
        if self._pending is not None:
            self._apply(*self._pending)

    def update_from(
        self, tab: TabEntry, *, active: bool, editing: bool, draft: str
    ) -> None:
        # Children only exist once the item has been composed
        self._pending = (tab, active, editing, draft)
        if self._ready:
            self._apply(tab, active, editing, draft)

    def _apply(self, tab: TabEntry, active: bool, editing: bool, draft: str) -> None:
        self.set_class(active, "tab-active")
        status = self.query_one(".tab-status", Static)
        if isinstance(tab, TerminalTab):
            status.styles.color = STATUS_COLORS[tab.state.value]
            status.tooltip = tab.state.value
        else:
            status.styles.color = STATUS_COLORS["connected"]

        label = self.query_one(TabLabel)
        if isinstance(tab, ViewTab):
            label.update(f"{ICONS[tab.icon]} {tab.title}")
        else:
            label.update(tab.title)

        if editing and self.editor is None:
            label.display = False
            self.editor = TabTitleInput(value=draft, classes="tab-title-input")
            self.mount(self.editor, after=label)
            self.editor.focus()
        elif not editing and self.editor is not None:
            self.editor.remove()
            self.editor = None
            label.display = True
