"""Toolkit-independent state layer: tabs, connections, sessions, commands."""

from .commands import Action, FocusContext, KeyDispatcher
from .connection import ConnectionManager, websocket_connector
from .orchestrator import ConsoleView, TabOrchestrator
from .scheduler import LoopScheduler, Scheduler
from .tabs import ConnectionState, TabConfig, TabKind, TabRegistry, TabsResponse

__all__ = [
    "Action",
    "ConnectionManager",
    "ConnectionState",
    "ConsoleView",
    "FocusContext",
    "KeyDispatcher",
    "LoopScheduler",
    "Scheduler",
    "TabConfig",
    "TabKind",
    "TabOrchestrator",
    "TabRegistry",
    "TabsResponse",
    "websocket_connector",
]
