"""Instructions pane: scenario header, step Markdown, navigation and check."""

from __future__ import annotations

import re
from dataclasses import dataclass

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.message import Message
from textual.widgets import Button, Markdown, Static

from ..core.api import ContentClient, RemoteCallFailure, Scenario, Step
from ..log import logger

FENCE_RE = re.compile(
    r"^[ \t]*```[ \t]*([\w+-]*)[^\n]*\n(.*?)^[ \t]*```", re.MULTILINE | re.DOTALL
)
SHELL_LANGUAGES = frozenset({"", "bash", "shell", "sh"})
COPIED_LABEL_SECONDS = 1.5


@dataclass
class Snippet:
    """A fenced code block from step content."""

    code: str
    language: str = ""

    @property
    def runnable(self) -> bool:
        return self.language.lower() in SHELL_LANGUAGES


def extract_snippets(markdown: str) -> list[Snippet]:
    """Fenced code blocks in document order."""
    return [
        Snippet(code=match.group(2).rstrip("\n"), language=match.group(1))
        for match in FENCE_RE.finditer(markdown)
    ]


class SnippetButton(Button):
    def __init__(self, label: str, snippet: Snippet, action: str, **kwargs) -> None:
        super().__init__(label, **kwargs)
        self.snippet = snippet
        self.snippet_action = action


class InstructionsPane(Vertical):
    """Left-hand pane showing the current step of the scenario."""

    class RunSnippet(Message):
        """A shell snippet should be typed into the active terminal."""

        def __init__(self, text: str) -> None:
            self.text = text
            super().__init__()

    def __init__(self, client: ContentClient | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.client = client
        self.scenario: Scenario | None = None
        self.steps: list[Step] = []
        self.current_step = 0
        self.current: Step | None = None
        self.checking = False

    def compose(self) -> ComposeResult:
        with Vertical(id="scenario-header"):
            yield Static("Loading...", id="scenario-title")
            yield Static("", id="scenario-description")
        with VerticalScroll(id="instructions-scroll"):
            yield Markdown("", id="step-content")
            yield Vertical(id="snippets")
        yield Static("", id="check-result", markup=False)
        with Horizontal(id="step-nav"):
            yield Button("← Prev", id="btn-prev", disabled=True)
            yield Static("", id="step-progress")
            yield Button("Check", id="btn-check", variant="success")
            yield Button("Next →", id="btn-next", disabled=True)

    def on_mount(self) -> None:
        self.query_one("#btn-check", Button).display = False
        self.query_one("#check-result", Static).display = False

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    # -- content ---------------------------------------------------------

    def show_scenario(self, scenario: Scenario, steps: list[Step]) -> None:
        self.scenario = scenario
        self.steps = steps
        self.query_one("#scenario-title", Static).update(scenario.name)
        self.query_one("#scenario-description", Static).update(scenario.description)
        self._update_navigation()

    async def show_load_failure(self, message: str) -> None:
        self.query_one("#scenario-title", Static).update("")
        await self.query_one("#step-content", Markdown).update(
            f"## Failed to load scenario\n\n{message}"
        )

    async def load_step(self, number: int) -> bool:
        """Fetch and render one step; on failure the error replaces the content."""
        if self.client is None:
            return False
        content = self.query_one("#step-content", Markdown)
        try:
            step = await self.client.fetch_step(number)
        except RemoteCallFailure as error:
            logger.warning("failed to load step %d: %s", number, error)
            await content.update(f"## Failed to load step\n\n{error}")
            return False

        self.current_step = number
        self.current = step
        await content.update(step.content)
        await self._show_snippets(extract_snippets(step.content))
        self._update_navigation()
        self._hide_check_result()
        self.query_one("#instructions-scroll", VerticalScroll).scroll_home(
            animate=False
        )
        return True

    def navigate(self, delta: int) -> bool:
        """Move to a neighbouring step; out-of-range moves are ignored."""
        target = self.current_step + delta
        if not 1 <= target <= self.total_steps:
            return False
        self.run_worker(self.load_step(target), exclusive=True, group="step")
        return True

    # -- check -----------------------------------------------------------

    def request_check(self) -> bool:
        if self.checking or self.current is None or not self.current.has_check:
            return False
        self.run_worker(self.check_current(), exclusive=True, group="check")
        return True

    async def check_current(self) -> None:
        if self.client is None:
            return
        button = self.query_one("#btn-check", Button)
        self.checking = True
        button.disabled = True
        try:
            result = await self.client.check_step(self.current_step)
        except RemoteCallFailure as error:
            self._show_check_result(False, f"Check failed: {error}")
        else:
            self._show_check_result(result.success, result.message)
        finally:
            self.checking = False
            button.disabled = False

    def _show_check_result(self, success: bool, message: str) -> None:
        result = self.query_one("#check-result", Static)
        result.update(message)
        result.set_class(success, "success")
        result.set_class(not success, "error")
        result.display = True

    def _hide_check_result(self) -> None:
        self.query_one("#check-result", Static).display = False

    # -- widgets ---------------------------------------------------------

    def _update_navigation(self) -> None:
        self.query_one("#btn-prev", Button).disabled = self.current_step <= 1
        self.query_one("#btn-next", Button).disabled = (
            self.current_step >= self.total_steps
        )
        self.query_one("#btn-check", Button).display = bool(
            self.current and self.current.has_check
        )
        progress = self.query_one("#step-progress", Static)
        if self.total_steps:
            progress.update(f"Step {self.current_step} / {self.total_steps}")

    async def _show_snippets(self, snippets: list[Snippet]) -> None:
        container = self.query_one("#snippets", Vertical)
        await container.remove_children()
        rows = []
        for snippet in snippets:
            lines = snippet.code.strip().splitlines()
            first_line = lines[0] if lines else ""
            buttons: list[Button] = [
                SnippetButton("Copy", snippet, "copy", classes="snippet-copy")
            ]
            if snippet.runnable:
                buttons.append(
                    SnippetButton("Run", snippet, "run", classes="snippet-run")
                )
            rows.append(
                Horizontal(
                    Static(f"$ {first_line}", classes="snippet-preview", markup=False),
                    *buttons,
                    classes="snippet",
                )
            )
        if rows:
            await container.mount_all(rows)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button = event.button
        event.stop()
        if isinstance(button, SnippetButton):
            if button.snippet_action == "run":
                self.post_message(self.RunSnippet(button.snippet.code))
            else:
                self.app.copy_to_clipboard(button.snippet.code)
                button.label = "Copied!"
                self.set_timer(
                    COPIED_LABEL_SECONDS, lambda: setattr(button, "label", "Copy")
                )
        elif button.id == "btn-prev":
            self.navigate(-1)
        elif button.id == "btn-next":
            self.navigate(1)
        elif button.id == "btn-check":
            self.request_check()
