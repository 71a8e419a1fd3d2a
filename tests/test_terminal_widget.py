"""Tests for the pyte-backed terminal display and its surface adapter."""

from __future__ import annotations

import pytest
from textual.app import App, ComposeResult
from textual.containers import Container

from training_console.theme import TERMINAL_PALETTE
from training_console.widgets.terminal import (
    TerminalDisplay,
    TerminalSurface,
    palette_color,
)


class TestPaletteColor:
    def test_default_passthrough(self):
        assert palette_color("default") == "default"

    def test_named_color(self):
        assert palette_color("red") == TERMINAL_PALETTE["red"]

    def test_brown_is_yellow(self):
        assert palette_color("brown") == TERMINAL_PALETTE["yellow"]

    def test_hex(self):
        assert palette_color("ff8800") == "#ff8800"

    def test_unknown_passthrough(self):
        assert palette_color("chartreuse") == "chartreuse"


class TestDisplay:
    def test_write_interprets_escapes(self):
        display = TerminalDisplay()
        display.write("\x1b[31mhello\x1b[0m\r\nworld")
        lines = display.screen_text
        assert lines[0].startswith("hello")
        assert lines[1].startswith("world")

    def test_fit_without_size(self):
        assert TerminalDisplay().fit() is None

    def test_release_ignores_writes(self):
        display = TerminalDisplay()
        display.release()
        display.write("late")
        assert not any("late" in line for line in display.screen_text)
        assert display.send_input is None


class TestSurface:
    def test_show_hide_toggle_active_class(self):
        pane = Container()
        surface = TerminalSurface(pane, TerminalDisplay())
        surface.show()
        assert pane.has_class("active")
        surface.hide()
        assert not pane.has_class("active")

    def test_dispose_releases_display(self):
        display = TerminalDisplay()
        TerminalSurface(Container(), display).dispose()
        assert display.released is True


class _TerminalApp(App):
    def __init__(self) -> None:
        super().__init__()
        self.sent: list[str] = []
        self.filtered: list[str] = []

    def compose(self) -> ComposeResult:
        display = TerminalDisplay(id="term")
        display.send_input = self.sent.append
        display.key_filter = self._filter
        yield display

    def _filter(self, key: str) -> bool:
        if key == "f7":
            self.filtered.append(key)
            return True
        return False

    def on_mount(self) -> None:
        self.query_one("#term").focus()


class TestKeys:
    @pytest.mark.asyncio
    async def test_keystrokes_forwarded(self):
        app = _TerminalApp()
        async with app.run_test(size=(80, 24)) as pilot:
            await pilot.press("l", "s", "enter", "up")
            assert app.sent == ["l", "s", "\r", "\x1bOA"]

    @pytest.mark.asyncio
    async def test_filtered_keys_not_forwarded(self):
        app = _TerminalApp()
        async with app.run_test(size=(80, 24)) as pilot:
            await pilot.press("f7")
            assert app.filtered == ["f7"]
            assert app.sent == []

    @pytest.mark.asyncio
    async def test_fit_matches_widget_size(self):
        app = _TerminalApp()
        async with app.run_test(size=(80, 24)) as pilot:
            await pilot.pause()
            display = app.query_one("#term", TerminalDisplay)
            assert display.fit() == (24, 80)
