"""Tests for keyboard dispatch precedence and focus suppression."""

from __future__ import annotations

from training_console.core.commands import Action, FocusContext, KeyDispatcher
from training_console.preferences import KeyPreferences


class TestDefaults:
    def test_tab_shortcuts(self):
        d = KeyDispatcher()
        assert d.resolve("ctrl+shift+t") is Action.NEW_TERMINAL
        assert d.resolve("ctrl+shift+w") is Action.CLOSE_TERMINAL
        assert d.resolve("ctrl+tab") is Action.NEXT_TAB
        assert d.resolve("ctrl+shift+tab") is Action.PREVIOUS_TAB

    def test_document_shortcuts(self):
        d = KeyDispatcher()
        assert d.resolve("left") is Action.STEP_BACK
        assert d.resolve("right") is Action.STEP_FORWARD
        assert d.resolve("ctrl+enter") is Action.CHECK

    def test_unbound_key(self):
        assert KeyDispatcher().resolve("a") is None

    def test_case_insensitive(self):
        assert KeyDispatcher().resolve("Ctrl+Shift+T") is Action.NEW_TERMINAL


class TestFocus:
    def test_terminal_focus_suppresses_document_actions(self):
        d = KeyDispatcher()
        assert d.resolve("left", FocusContext.TERMINAL) is None
        assert d.resolve("ctrl+enter", FocusContext.TERMINAL) is None

    def test_terminal_focus_keeps_tab_actions(self):
        d = KeyDispatcher()
        assert d.resolve("ctrl+shift+t", FocusContext.TERMINAL) is Action.NEW_TERMINAL
        assert d.resolve("ctrl+tab", FocusContext.TERMINAL) is Action.NEXT_TAB

    def test_rename_focus_suppresses_everything(self):
        d = KeyDispatcher()
        for key in ["ctrl+shift+t", "ctrl+shift+w", "ctrl+tab", "left", "ctrl+enter"]:
            assert d.resolve(key, FocusContext.RENAME) is None


class TestPrecedence:
    def test_new_terminal_beats_check_on_shared_key(self):
        keys = KeyPreferences(new_terminal=["f5"], check=["f5"])
        assert KeyDispatcher(keys).resolve("f5") is Action.NEW_TERMINAL

    def test_close_beats_cycle(self):
        keys = KeyPreferences(close_terminal=["f8"], next_tab=["f8"])
        assert KeyDispatcher(keys).resolve("f8") is Action.CLOSE_TERMINAL

    def test_shared_key_in_terminal_is_not_redirected(self):
        # The document action wins on precedence and is then suppressed
        keys = KeyPreferences(step_forward=["f9"], check=["f9"])
        assert KeyDispatcher(keys).resolve("f9", FocusContext.TERMINAL) is None

    def test_keys_for(self):
        keys = KeyPreferences(check=["F5"])
        assert KeyDispatcher(keys).keys_for(Action.CHECK) == frozenset({"f5"})
