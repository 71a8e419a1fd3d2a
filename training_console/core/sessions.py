"""Terminal and view sessions: the per-tab objects behind each tab."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from .connection import ConnectionManager
from .scheduler import Scheduler, TimerHandle


class DisplaySurface(Protocol):
    """A terminal display: interprets escape sequences, knows its own geometry."""

    def write(self, text: str) -> None: ...

    def fit(self) -> tuple[int, int] | None:
        """Resize rows/cols to the container; None while it has no size."""
        ...

    def focus(self) -> None: ...

    def show(self) -> None: ...

    def hide(self) -> None: ...

    def dispose(self) -> None: ...


class ViewSurface(Protocol):
    """Container for an embedded view; hiding must keep its state."""

    def show(self) -> None: ...

    def hide(self) -> None: ...


class TerminalSession:
    """Pairs one connection with one display surface."""

    def __init__(
        self,
        tab_id: str,
        connection: ConnectionManager,
        surface: DisplaySurface,
        *,
        scheduler: Scheduler,
        fit_delay: float = 0.01,
    ) -> None:
        self.tab_id = tab_id
        self.connection = connection
        self.surface = surface
        self.fit_delay = fit_delay
        self.geometry: tuple[int, int] | None = None
        self._scheduler = scheduler
        self._pending_fit: TimerHandle | None = None
        self._closed = False
        connection.on_data = self.on_receive

    def feed_input(self, data: str | bytes) -> bool:
        """Forward a keystroke verbatim; False if it was dropped."""
        return self.connection.send(data)

    def on_receive(self, text: str) -> None:
        if self._closed:
            return
        self.surface.write(text)

    def fit(self) -> tuple[int, int] | None:
        if self._closed:
            return None
        geometry = self.surface.fit()
        if geometry is not None:
            self.geometry = geometry
        return geometry

    def schedule_fit(self, focus: bool | Callable[[], bool] = False) -> None:
        """Fit (and optionally focus) once layout has settled.

        Fitting a hidden surface measures a zero-size container, so callers
        go through this after making the surface visible.
        """
        if self._closed:
            return
        if self._pending_fit is not None:
            self._pending_fit.cancel()
        self._pending_fit = self._scheduler.call_later(
            self.fit_delay, lambda: self._settled(focus)
        )

    def _settled(self, focus: bool | Callable[[], bool]) -> None:
        self._pending_fit = None
        if self._closed:
            return
        self.fit()
        if focus() if callable(focus) else focus:
            self.surface.focus()

    def focus(self) -> None:
        if not self._closed:
            self.surface.focus()

    def show(self) -> None:
        if not self._closed:
            self.surface.show()

    def hide(self) -> None:
        if not self._closed:
            self.surface.hide()

    def close(self) -> None:
        """Close the connection, then release the display surface."""
        if self._closed:
            return
        self._closed = True
        if self._pending_fit is not None:
            self._pending_fit.cancel()
            self._pending_fit = None
        self.connection.close()
        self.surface.dispose()


class ViewSession:
    """An embedded URL view; lives for the whole process."""

    def __init__(self, tab_id: str, url: str, surface: ViewSurface) -> None:
        self.tab_id = tab_id
        self.url = url
        self.surface = surface
        self.visible = False

    def show(self) -> None:
        self.visible = True
        self.surface.show()

    def hide(self) -> None:
        self.visible = False
        self.surface.hide()
