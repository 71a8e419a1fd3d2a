"""Keyboard command dispatch.

Bindings are configuration; the precedence order and the focus rules are
not.  When one key is bound to several actions the earlier action in
``PRECEDENCE`` wins.
"""

from __future__ import annotations

import enum

from ..preferences import KeyPreferences


class Action(enum.Enum):
    NEW_TERMINAL = "new_terminal"
    CLOSE_TERMINAL = "close_terminal"
    NEXT_TAB = "next_tab"
    PREVIOUS_TAB = "previous_tab"
    STEP_BACK = "step_back"
    STEP_FORWARD = "step_forward"
    CHECK = "check"


class FocusContext(enum.Enum):
    """Where keyboard focus currently sits."""

    TERMINAL = "terminal"  # inside a terminal display surface
    RENAME = "rename"  # the tab-title edit field
    OTHER = "other"


PRECEDENCE: tuple[Action, ...] = (
    Action.NEW_TERMINAL,
    Action.CLOSE_TERMINAL,
    Action.NEXT_TAB,
    Action.PREVIOUS_TAB,
    Action.STEP_BACK,
    Action.STEP_FORWARD,
    Action.CHECK,
)

# Document-level actions that must never fire while typing in a shell
DOCUMENT_ACTIONS = frozenset({Action.STEP_BACK, Action.STEP_FORWARD, Action.CHECK})


class KeyDispatcher:
    """Maps a key press in a focus context to at most one console action."""

    def __init__(self, bindings: KeyPreferences | None = None) -> None:
        bindings = bindings or KeyPreferences()
        self._keys: dict[Action, frozenset[str]] = {
            action: frozenset(k.lower() for k in getattr(bindings, action.value))
            for action in Action
        }

    def keys_for(self, action: Action) -> frozenset[str]:
        return self._keys[action]

    def resolve(self, key: str, focus: FocusContext = FocusContext.OTHER) -> Action | None:
        if focus is FocusContext.RENAME:
            return None
        key = key.lower()
        for action in PRECEDENCE:
            if key not in self._keys[action]:
                continue
            if focus is FocusContext.TERMINAL and action in DOCUMENT_ACTIONS:
                return None
            return action
        return None
