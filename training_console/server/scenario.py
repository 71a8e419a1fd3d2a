"""Scenario directory loading for the content server.

A scenario directory holds::

    scenario.yaml             name, description, difficulty, estimatedTime
    tabs.yaml                 optional: terminal.enabled, customTabs
    01-intro-content.md       step content (ordered by the numeric prefix)
    01-intro-check.sh         optional check script for the same step
"""

from __future__ import annotations

import logging
import os
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONTENT_RE = re.compile(r"^(\d+)-(.+)-content\.md$")
CHECK_RE = re.compile(r"^(\d+)-(.+)-check\.sh$")

DEFAULT_CHECK_COMMAND = "bash -c"


class ScenarioError(Exception):
    """A scenario file is missing or unreadable; carries the HTTP status to report."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


@dataclass
class ServerSettings:
    """Content server settings, normally taken from the environment."""

    scenario_path: Path = Path("/scenarios")
    port: int = 8080
    editor_enabled: bool = False
    check_command: list[str] = field(
        default_factory=lambda: shlex.split(DEFAULT_CHECK_COMMAND)
    )
    check_timeout: float = 60.0

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> ServerSettings:
        env = os.environ if environ is None else environ
        return cls(
            scenario_path=Path(env.get("SCENARIO_PATH") or "/scenarios"),
            port=int(env.get("PORT") or 8080),
            editor_enabled=_env_flag(env.get("EDITOR_ENABLED")),
            check_command=shlex.split(env.get("CHECK_COMMAND") or DEFAULT_CHECK_COMMAND),
            check_timeout=float(env.get("CHECK_TIMEOUT") or 60.0),
        )


@dataclass
class StepInfo:
    name: str
    title: str
    order: int
    content: str = ""
    check: str = ""

    @property
    def has_check(self) -> bool:
        return bool(self.check)


@dataclass
class CustomTab:
    id: str
    name: str
    url: str
    icon: str = ""


@dataclass
class TabsFile:
    """Parsed ``tabs.yaml``."""

    terminal_enabled: bool = True
    custom_tabs: list[CustomTab] = field(default_factory=list)


def format_title(name: str) -> str:
    """``getting-started`` -> ``Getting Started``."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split("-"))


def load_steps(scenario_path: Path) -> list[StepInfo]:
    """Collect step files, ordered by prefix; steps without content are dropped."""
    try:
        entries = sorted(scenario_path.iterdir())
    except OSError as error:
        logger.warning("failed to load steps from %s: %s", scenario_path, error)
        return []

    steps: dict[str, StepInfo] = {}
    for entry in entries:
        if not entry.is_file():
            continue
        match = CONTENT_RE.match(entry.name)
        attr = "content"
        if match is None:
            match = CHECK_RE.match(entry.name)
            attr = "check"
        if match is None:
            continue
        try:
            text = entry.read_text(encoding="utf-8")
        except OSError:
            logger.warning("could not read %s", entry)
            continue

        name = f"{match.group(1)}-{match.group(2)}"
        step = steps.get(name)
        if step is None:
            step = steps[name] = StepInfo(
                name=name,
                title=format_title(match.group(2)),
                order=int(match.group(1)),
            )
        setattr(step, attr, text)

    ordered = [s for s in steps.values() if s.content]
    ordered.sort(key=lambda s: s.order)
    return ordered


def load_scenario(scenario_path: Path, total_steps: int) -> dict[str, Any]:
    """Scenario metadata as served by ``/api/scenario``."""
    try:
        text = (scenario_path / "scenario.yaml").read_text(encoding="utf-8")
    except OSError as error:
        raise ScenarioError(404, "scenario.yaml not found") from error
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as error:
        raise ScenarioError(500, "failed to parse scenario.yaml") from error
    if not isinstance(data, dict):
        raise ScenarioError(500, "failed to parse scenario.yaml")

    return {
        "name": str(data.get("name") or ""),
        "description": str(data.get("description") or ""),
        "difficulty": str(data.get("difficulty") or ""),
        "estimatedTime": str(data.get("estimatedTime") or ""),
        "totalSteps": total_steps,
    }


def load_tabs_config(scenario_path: Path) -> TabsFile:
    """Read ``tabs.yaml``; missing or invalid files mean "terminal only"."""
    path = scenario_path / "tabs.yaml"
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as error:
        logger.info("no usable tabs config (%s), terminal only", error)
        return TabsFile()
    if not isinstance(data, dict):
        return TabsFile()

    terminal = data.get("terminal")
    enabled = True
    if isinstance(terminal, dict) and "enabled" in terminal:
        enabled = bool(terminal["enabled"])

    custom: list[CustomTab] = []
    for item in data.get("customTabs") or []:
        if not isinstance(item, dict) or not item.get("id"):
            continue
        custom.append(
            CustomTab(
                id=str(item["id"]),
                name=str(item.get("name") or item["id"]),
                url=str(item.get("url") or ""),
                icon=str(item.get("icon") or ""),
            )
        )
    logger.info(
        "loaded tabs config: terminal.enabled=%s, customTabs=%d", enabled, len(custom)
    )
    return TabsFile(terminal_enabled=enabled, custom_tabs=custom)


def build_tabs(
    settings: ServerSettings, tabs: TabsFile, host: str, scheme: str
) -> dict[str, Any]:
    """The ``/api/tabs`` payload; relative URLs become absolute on *host*."""

    def absolute(url: str) -> str:
        if host and url.startswith("/"):
            return f"{scheme}://{host}{url}"
        return url

    entries: list[dict[str, Any]] = []
    if settings.editor_enabled:
        entries.append(
            {"id": "editor", "name": "Editor", "icon": "code", "url": absolute("/editor/")}
        )
    for tab in tabs.custom_tabs:
        entries.append(
            {"id": tab.id, "name": tab.name, "icon": tab.icon, "url": absolute(tab.url)}
        )
    return {"tabs": entries, "terminalEnabled": tabs.terminal_enabled}
