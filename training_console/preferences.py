"""User preferences for the training console.

Loads settings from ~/.training-console/preferences.yaml.
Falls back to sensible defaults if the file doesn't exist or is invalid.
Creates a default file on first run so users can discover and edit it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

import yaml

from .log import logger

PREFS_PATH = Path.home() / ".training-console" / "preferences.yaml"

MIN_INSTRUCTIONS_WIDTH = 20
MAX_INSTRUCTIONS_WIDTH = 50

_DEFAULT_YAML = """\
# Training Console Preferences
# Delete this file to reset to defaults.

server:
  url: "http://localhost:8080"   # content server (scenario, steps, tabs)
  terminal_path: "/ws/terminal"  # terminal WebSocket path on the same host
  timeout: 10.0                  # HTTP request timeout in seconds

terminal:
  reconnect_delay: 2.0           # seconds to wait before reconnecting
  fit_delay: 0.01                # layout settle delay before fit/focus
  open_timeout: 10.0             # WebSocket handshake timeout

layout:
  instructions_width: 40         # percent of the window, 20..50

keys:
  new_terminal: ["ctrl+shift+t", "f7"]
  close_terminal: ["ctrl+shift+w", "f8"]
  next_tab: ["ctrl+tab", "ctrl+pagedown"]
  previous_tab: ["ctrl+shift+tab", "ctrl+pageup"]
  step_back: ["left"]
  step_forward: ["right"]
  check: ["ctrl+enter", "f5"]
"""


@dataclass
class ServerPreferences:
    """Where the content server lives."""

    url: str = "http://localhost:8080"
    terminal_path: str = "/ws/terminal"
    timeout: float = 10.0

    @property
    def api_base(self) -> str:
        return self.url.rstrip("/") + "/api"

    @property
    def terminal_url(self) -> str:
        """WebSocket URL of the terminal endpoint (http->ws, https->wss)."""
        parts = urlsplit(self.url)
        scheme = "wss" if parts.scheme in ("https", "wss") else "ws"
        path = "/" + self.terminal_path.lstrip("/")
        return urlunsplit((scheme, parts.netloc, path, "", ""))


@dataclass
class TerminalPreferences:
    """Connection and layout timing for terminal tabs."""

    reconnect_delay: float = 2.0
    fit_delay: float = 0.01
    open_timeout: float = 10.0


@dataclass
class LayoutPreferences:
    instructions_width: int = 40


@dataclass
class KeyPreferences:
    """Key bindings per console action (Textual key names)."""

    new_terminal: list[str] = field(default_factory=lambda: ["ctrl+shift+t", "f7"])
    close_terminal: list[str] = field(
        default_factory=lambda: ["ctrl+shift+w", "f8"]
    )
    next_tab: list[str] = field(default_factory=lambda: ["ctrl+tab", "ctrl+pagedown"])
    previous_tab: list[str] = field(
        default_factory=lambda: ["ctrl+shift+tab", "ctrl+pageup"]
    )
    step_back: list[str] = field(default_factory=lambda: ["left"])
    step_forward: list[str] = field(default_factory=lambda: ["right"])
    check: list[str] = field(default_factory=lambda: ["ctrl+enter", "f5"])


@dataclass
class Preferences:
    """Top-level console preferences."""

    server: ServerPreferences = field(default_factory=ServerPreferences)
    terminal: TerminalPreferences = field(default_factory=TerminalPreferences)
    layout: LayoutPreferences = field(default_factory=LayoutPreferences)
    keys: KeyPreferences = field(default_factory=KeyPreferences)


def clamp_instructions_width(percent: int) -> int:
    """Keep the instructions pane between 20% and 50% of the window."""
    return max(MIN_INSTRUCTIONS_WIDTH, min(MAX_INSTRUCTIONS_WIDTH, int(percent)))


def _apply_section(target: object, data: object) -> None:
    """Copy known keys from a YAML mapping onto a preferences dataclass."""
    if not isinstance(data, dict):
        return
    for f in fields(target):  # type: ignore[arg-type]
        if f.name not in data:
            continue
        value = data[f.name]
        current = getattr(target, f.name)
        if isinstance(current, list):
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list):
                continue
            setattr(target, f.name, [str(v) for v in value])
        elif isinstance(current, bool):
            setattr(target, f.name, bool(value))
        elif isinstance(current, (int, float)):
            setattr(target, f.name, type(current)(value))
        else:
            setattr(target, f.name, str(value))


def load_preferences(path: Path | None = None) -> Preferences:
    """Load preferences from YAML file.

    Falls back to sensible defaults if the file doesn't exist or is invalid.
    Creates a default preferences file on first run.
    """
    path = path or PREFS_PATH
    prefs = Preferences()

    if path.exists():
        try:
            data = yaml.safe_load(path.read_text()) or {}
            if isinstance(data, dict):
                _apply_section(prefs.server, data.get("server"))
                _apply_section(prefs.terminal, data.get("terminal"))
                _apply_section(prefs.layout, data.get("layout"))
                _apply_section(prefs.keys, data.get("keys"))
        except (OSError, yaml.YAMLError, TypeError, ValueError):
            logger.warning("invalid preferences file %s, using defaults", path)
            return Preferences()
    else:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(_DEFAULT_YAML)
        except OSError:
            logger.debug("could not write default preferences to %s", path)

    prefs.layout.instructions_width = clamp_instructions_width(
        prefs.layout.instructions_width
    )
    return prefs
