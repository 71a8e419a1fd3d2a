"""Textual widgets for the training console."""

from .instructions import InstructionsPane, Snippet, extract_snippets
from .tabs import TabBar, TabItem, TabTitleInput
from .terminal import TerminalDisplay, TerminalSurface
from .views import EmbeddedView, ViewPaneSurface

__all__ = [
    "EmbeddedView",
    "InstructionsPane",
    "Snippet",
    "TabBar",
    "TabItem",
    "TabTitleInput",
    "TerminalDisplay",
    "TerminalSurface",
    "ViewPaneSurface",
    "extract_snippets",
]
