"""Terminal display widget for the training console.

Rendering is adapted from textual-terminal (MIT/LGPL-3.0) by mitosch
(https://github.com/mitosch/textual-terminal).  There is no local PTY
here: bytes come from a remote shell over a WebSocket and keystrokes go
back the same way.
"""

from __future__ import annotations

import re
from collections.abc import Callable

import pyte
from pyte.screens import Char
from rich.color import ColorParseError
from rich.style import Style
from rich.text import Text
from textual import events, log
from textual.containers import Container
from textual.message import Message
from textual.widget import Widget

from ..theme import TERMINAL_PALETTE


# Textual key names -> bytes a VT100/xterm application expects
KEY_SEQUENCES = {
    "enter": "\r",
    "tab": "\t",
    "backspace": "\x7f",
    "escape": "\x1b",
    "up": "\x1bOA",
    "down": "\x1bOB",
    "right": "\x1bOC",
    "left": "\x1bOD",
    "home": "\x1bOH",
    "end": "\x1b[F",
    "delete": "\x1b[3~",
    "pageup": "\x1b[5~",
    "pagedown": "\x1b[6~",
    "shift+tab": "\x1b[Z",
    "f1": "\x1bOP",
    "f2": "\x1bOQ",
    "f3": "\x1bOR",
    "f4": "\x1bOS",
    "f5": "\x1b[15~",
    "f6": "\x1b[17~",
    "f7": "\x1b[18~",
    "f8": "\x1b[19~",
    "f9": "\x1b[20~",
    "f10": "\x1b[21~",
    "f11": "\x1b[23~",
    "f12": "\x1b[24~",
}


class _TerminalPyteScreen(pyte.Screen):
    """Overrides pyte.Screen to handle TERM=xterm edge cases."""

    def set_margins(self, *args, **kwargs):
        kwargs.pop("private", None)
        return super().set_margins(*args, **kwargs)


class _TerminalRenderable:
    """Rich renderable for the terminal screen buffer."""

    def __init__(self, lines: list[Text]) -> None:
        self.lines = lines

    def __rich_console__(self, _console, _options):
        for line in self.lines:
            yield line


class TerminalDisplay(Widget, can_focus=True):
    """Screen buffer fed by a remote shell; forwards keystrokes to ``send_input``."""

    DEFAULT_CSS = """
    TerminalDisplay {
        background: $background;
        height: 1fr;
        width: 1fr;
    }
    """

    class Released(Message):
        """Posted when the user releases focus with Ctrl+F1."""

        def __init__(self, terminal: TerminalDisplay) -> None:
            self.terminal = terminal
            super().__init__()

    def __init__(
        self,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        self.ncol = 80
        self.nrow = 24
        self.send_input: Callable[[str], object] | None = None
        # Returns True when the key was consumed as a console shortcut
        self.key_filter: Callable[[str], bool] | None = None
        self.released = False

        self._screen = _TerminalPyteScreen(self.ncol, self.nrow)
        self._stream = pyte.Stream(self._screen)
        self._renderable = _TerminalRenderable([Text()])

        super().__init__(name=name, id=id, classes=classes)

    # -- surface API -----------------------------------------------------

    def write(self, text: str) -> None:
        """Feed raw shell output (escape sequences included) into the screen."""
        if self.released:
            return
        try:
            self._stream.feed(text)
        except TypeError as error:
            log.warning("could not feed:", error)
        self._render_screen()

    def fit(self) -> tuple[int, int] | None:
        """Match the screen geometry to the widget's current size."""
        if self.released:
            return None
        cols, rows = self.size.width, self.size.height
        if cols <= 0 or rows <= 0:
            return None
        if (rows, cols) != (self.nrow, self.ncol):
            self.nrow, self.ncol = rows, cols
            self._screen.resize(rows, cols)
            self._render_screen()
        return rows, cols

    def release(self) -> None:
        """Drop the screen buffer; later writes are ignored."""
        self.released = True
        self.send_input = None
        self.key_filter = None
        self._renderable = _TerminalRenderable([Text()])

    @property
    def screen_text(self) -> list[str]:
        """Plain text of every screen row."""
        return list(self._screen.display)

    # -- textual ---------------------------------------------------------

    def render(self):
        return self._renderable

    async def on_key(self, event: events.Key) -> None:
        if self.key_filter is not None and self.key_filter(event.key):
            event.stop()
            event.prevent_default()
            return

        # Ctrl+F1 releases focus back to the app
        if event.key == "ctrl+f1":
            self.post_message(self.Released(self))
            self.app.set_focus(None)
            return

        event.stop()
        event.prevent_default()
        sequence = KEY_SEQUENCES.get(event.key) or event.character
        if sequence and self.send_input is not None:
            self.send_input(sequence)

    def on_resize(self, _event: events.Resize) -> None:
        self.fit()

    def _render_screen(self) -> None:
        """Rebuild the Rich lines from the pyte buffer, one span per style run."""
        screen = self._screen
        cursor = (screen.cursor.x, screen.cursor.y)
        lines: list[Text] = []
        for y in range(screen.lines):
            row = screen.buffer[y]
            text = Text()
            run_start = 0
            run_key = _style_key(row[0])
            for x in range(1, screen.columns + 1):
                key = _style_key(row[x]) if x < screen.columns else None
                if key == run_key:
                    continue
                chunk = "".join(row[i].data for i in range(run_start, x))
                text.append(chunk, _run_style(row[run_start]))
                run_start, run_key = x, key
            if cursor[1] == y and cursor[0] < screen.columns:
                text.stylize("reverse", cursor[0], cursor[0] + 1)
            lines.append(text)

        self._renderable = _TerminalRenderable(lines)
        self.refresh()


def _style_key(char: Char) -> tuple:
    return (
        char.fg,
        char.bg,
        char.bold,
        char.italics,
        char.underscore,
        char.strikethrough,
        char.reverse,
    )


def _run_style(char: Char) -> Style | None:
    """Rich style for a pyte cell; None for plain default text."""
    fg = palette_color(char.fg)
    bg = palette_color(char.bg)
    try:
        style = Style(
            color=None if fg == "default" else fg,
            bgcolor=None if bg == "default" else bg,
            bold=char.bold or None,
            italic=char.italics or None,
            underline=char.underscore or None,
            strike=char.strikethrough or None,
            reverse=char.reverse or None,
        )
    except ColorParseError as error:
        log.warning("unusable terminal colour:", error)
        return None
    return style or None


def palette_color(color: str) -> str:
    """Map a pyte color name onto the console palette (or a hex code)."""
    if color == "default":
        return color
    if color == "brown":
        color = "yellow"
    if color in TERMINAL_PALETTE:
        return TERMINAL_PALETTE[color]
    if re.fullmatch("[0-9a-f]{6}", color, re.IGNORECASE):
        return f"#{color}"
    return color


class TerminalSurface:
    """Display surface for one terminal tab: a pane plus its display widget."""

    def __init__(self, pane: Container, display: TerminalDisplay) -> None:
        self.pane = pane
        self.display = display

    def write(self, text: str) -> None:
        self.display.write(text)

    def fit(self) -> tuple[int, int] | None:
        return self.display.fit()

    def focus(self) -> None:
        if not self.display.released:
            self.display.focus()

    def show(self) -> None:
        self.pane.add_class("active")

    def hide(self) -> None:
        self.pane.remove_class("active")

    def dispose(self) -> None:
        self.display.release()
