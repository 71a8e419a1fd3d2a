"""Single place that decides which session is in the foreground."""

from __future__ import annotations

from collections.abc import Callable

from .tabs import TabEntry, TabRegistry, TerminalTab, ViewTab


class SessionSwitcher:
    """Keeps exactly one terminal or view session visible."""

    def __init__(
        self,
        registry: TabRegistry,
        on_switch: Callable[[str], None] | None = None,
    ) -> None:
        self.registry = registry
        self.on_switch = on_switch

    def switch_to(self, tab_id: str | None) -> bool:
        """Bring *tab_id* to the foreground.  Unknown ids are ignored."""
        target = self.registry.get(tab_id)
        if target is None:
            return False

        for entry in self.registry.list():
            if entry.id != target.id:
                _hide(entry)
        self.registry.activate(target.id)
        _show(target)

        if isinstance(target, TerminalTab) and target.session is not None:
            # Don't steal focus from a tab title being edited
            target.session.schedule_fit(
                focus=lambda: self.registry.editing_tab_id is None
            )

        if self.on_switch is not None:
            self.on_switch(target.id)
        return True

    def cycle(self, step: int) -> bool:
        """Move forward (step > 0) or back through the tabs, wrapping around."""
        tab_id = self.registry.neighbour(self.registry.active_id, step)
        if tab_id is None:
            return False
        return self.switch_to(tab_id)


def _hide(entry: TabEntry) -> None:
    if isinstance(entry, (TerminalTab, ViewTab)) and entry.session is not None:
        entry.session.hide()


def _show(entry: TabEntry) -> None:
    if isinstance(entry, (TerminalTab, ViewTab)) and entry.session is not None:
        entry.session.show()
