"""Shared fakes for the training console test suite.

The core layer never touches widgets, sockets or the clock directly, so
the fakes here stand in for display surfaces, WebSocket streams and the
timer scheduler.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from training_console.core.orchestrator import TabOrchestrator
from training_console.core.tabs import TabRegistry, TerminalTab, ViewTab

TERMINAL_URL = "ws://console.test/ws/terminal"

_END = object()


async def settle(rounds: int = 10) -> None:
    """Let pending tasks (connect, read loop, writer) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# -- Scheduler ---------------------------------------------------------------


class ManualTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Clock that only moves when a test calls :meth:`advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.now = target


# -- Streams -----------------------------------------------------------------


class FakeStream:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: list[str | bytes] = []
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, message: str | bytes) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True

    def feed(self, message: str | bytes) -> None:
        self.incoming.put_nowait(message)

    def end(self) -> None:
        """Server closed the stream."""
        self.incoming.put_nowait(_END)

    def fail(self, error: BaseException) -> None:
        self.incoming.put_nowait(error)


class FakeConnector:
    """Connector that hands out FakeStreams, or raises ``fail_with``."""

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.streams: list[FakeStream] = []
        self.fail_with: BaseException | None = None

    async def __call__(self, url: str) -> FakeStream:
        self.urls.append(url)
        if self.fail_with is not None:
            raise self.fail_with
        stream = FakeStream()
        self.streams.append(stream)
        return stream

    @property
    def last(self) -> FakeStream:
        return self.streams[-1]


# -- Surfaces and view -------------------------------------------------------


class FakeSurface:
    def __init__(self, size: tuple[int, int] | None = (24, 80)) -> None:
        self.size = size
        self.written: list[str] = []
        self.fits = 0
        self.focus_count = 0
        self.visible = False
        self.disposed = False
        self.log: list[str] | None = None

    @property
    def text(self) -> str:
        return "".join(self.written)

    def write(self, text: str) -> None:
        self.written.append(text)

    def fit(self) -> tuple[int, int] | None:
        self.fits += 1
        return self.size

    def focus(self) -> None:
        self.focus_count += 1

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    def dispose(self) -> None:
        self.disposed = True
        if self.log is not None:
            self.log.append("dispose")


class FakeViewSurface:
    def __init__(self) -> None:
        self.visible = False

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False


class FakeView:
    """Records what the orchestrator asks the presentation layer to do."""

    def __init__(self) -> None:
        self.terminals: dict[str, FakeSurface] = {}
        self.views: dict[str, FakeViewSurface] = {}
        self.unmounted: list[str] = []
        self.refreshes = 0
        self.log: list[str] = []
        self.registry_at_unmount: list[bool] = []
        self.registry: TabRegistry | None = None

    def mount_terminal(self, tab: TerminalTab) -> FakeSurface:
        surface = FakeSurface()
        surface.log = self.log
        self.terminals[tab.id] = surface
        return surface

    def mount_view(self, tab: ViewTab) -> FakeViewSurface:
        surface = FakeViewSurface()
        self.views[tab.id] = surface
        return surface

    def unmount(self, tab_id: str) -> None:
        self.unmounted.append(tab_id)
        self.log.append("unmount")
        if self.registry is not None:
            self.registry_at_unmount.append(tab_id in self.registry)

    def tabs_changed(self, registry: TabRegistry) -> None:
        self.refreshes += 1


# -- Fixtures ----------------------------------------------------------------


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def view() -> FakeView:
    return FakeView()


@pytest.fixture
def orchestrator(view, connector, scheduler) -> TabOrchestrator:
    orch = TabOrchestrator(
        view,
        terminal_url=TERMINAL_URL,
        connector=connector,
        scheduler=scheduler,
    )
    view.registry = orch.registry
    return orch
