"""Theme definitions for the training console.

The Textual theme controls the base UI colors ($background, $surface,
$primary, ...) used by the CSS string in app.py.  TERMINAL_PALETTE maps
the ANSI color names pyte reports onto the same night palette for
terminal output.
"""

from textual.theme import Theme

CONSOLE_THEME = Theme(
    name="console-night",
    primary="#7aa2f7",
    secondary="#bb9af7",
    accent="#7dcfff",
    foreground="#c0caf5",
    background="#1a1b26",
    surface="#1f2335",
    panel="#24283b",
    success="#9ece6a",
    warning="#e0af68",
    error="#f7768e",
    dark=True,
)

TERMINAL_PALETTE: dict[str, str] = {
    "black": "#414868",
    "red": "#f7768e",
    "green": "#9ece6a",
    "yellow": "#e0af68",
    "blue": "#7aa2f7",
    "magenta": "#bb9af7",
    "cyan": "#7dcfff",
    "white": "#c0caf5",
    "brightblack": "#414868",
    "brightred": "#f7768e",
    "brightgreen": "#9ece6a",
    "brightyellow": "#e0af68",
    "brightblue": "#7aa2f7",
    "brightmagenta": "#bb9af7",
    "brightcyan": "#7dcfff",
    "brightwhite": "#c0caf5",
}

# Tab status dot colors, keyed by ConnectionState value
STATUS_COLORS: dict[str, str] = {
    "connecting": "#e0af68",
    "connected": "#9ece6a",
    "disconnected": "#565f89",
    "error": "#f7768e",
}
