"""WebSocket connection lifecycle for one terminal tab.

State machine::

    CONNECTING -> CONNECTED -> DISCONNECTED -> (delay) -> CONNECTING -> ...
    CONNECTING -> ERROR          (first handshake fails, no automatic retry)
    CONNECTING -> DISCONNECTED   (a reconnect handshake fails, retried again)

Keystrokes are only forwarded while CONNECTED; anything typed in another
state is dropped rather than queued for later.
"""

from __future__ import annotations

import asyncio
import codecs
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..log import logger
from .scheduler import Scheduler, TimerHandle
from .tabs import ConnectionState

RECONNECT_NOTICE = "\r\n\x1b[31mConnection closed. Reconnecting...\x1b[0m\r\n"

# Errors that mean the handshake never completed (InvalidHandshake, InvalidURI
# and InvalidProxy are all WebSocketException subclasses)
HANDSHAKE_ERRORS = (OSError, WebSocketException, asyncio.TimeoutError)


class ByteStream(Protocol):
    """The subset of a websockets client connection the manager relies on."""

    def __aiter__(self) -> Any: ...

    async def send(self, message: str | bytes) -> None: ...

    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[ByteStream]]


def websocket_connector(open_timeout: float = 10.0) -> Connector:
    """Build a connector that opens a real WebSocket."""

    async def _connect(url: str) -> ByteStream:
        return await ws_connect(url, open_timeout=open_timeout)

    return _connect


class ConnectionManager:
    """Owns the byte-stream connection of a single terminal tab."""

    def __init__(
        self,
        tab_id: str,
        url: str,
        *,
        connector: Connector,
        scheduler: Scheduler,
        is_alive: Callable[[str], bool],
        reconnect_delay: float = 2.0,
        on_state: Callable[[str, ConnectionState], None] | None = None,
        on_data: Callable[[str], None] | None = None,
    ) -> None:
        self.tab_id = tab_id
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.state = ConnectionState.CONNECTING
        self.on_state = on_state
        self.on_data = on_data

        self._connector = connector
        self._scheduler = scheduler
        self._is_alive = is_alive
        self._epoch = 0
        self._closed = False
        self._connected_once = False
        self._task: asyncio.Task | None = None
        self._stream: ByteStream | None = None
        self._outbox: asyncio.Queue | None = None
        self._retry: TimerHandle | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def epoch(self) -> int:
        """Incremented on every connection attempt."""
        return self._epoch

    # -- lifecycle -------------------------------------------------------

    def connect(self) -> None:
        """Start a new connection attempt."""
        if self._closed:
            return
        self._epoch += 1
        self._retry = None
        self._decoder.reset()
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.ensure_future(self._run(self._epoch))

    def close(self) -> None:
        """Tear the connection down for good; late events are ignored.

        The socket close itself is scheduled on the loop and the read loop
        is cancelled; neither is awaited here.
        """
        if self._closed:
            return
        self._closed = True
        if self._stream is not None:
            asyncio.ensure_future(self._stream.close())
            self._stream = None
        if self._retry is not None:
            self._retry.cancel()
            self._retry = None
        self._outbox = None
        if self._task is not None:
            self._task.cancel()
            self._task = None
        logger.info("terminal %s connection closed", self.tab_id)

    def send(self, data: str | bytes) -> bool:
        """Queue keystrokes for the stream.  Returns False if they were dropped."""
        if self.state is not ConnectionState.CONNECTED or self._outbox is None:
            return False
        self._outbox.put_nowait(data)
        return True

    # -- stream events ---------------------------------------------------

    def on_open(self, epoch: int, stream: ByteStream) -> None:
        if self._stale(epoch):
            return
        self._stream = stream
        self._outbox = asyncio.Queue()
        self._connected_once = True
        self._set_state(ConnectionState.CONNECTED)
        logger.info("terminal %s connected to %s", self.tab_id, self.url)

    def on_message(self, epoch: int, message: str | bytes) -> None:
        if self._stale(epoch):
            return
        if isinstance(message, bytes):
            text = self._decoder.decode(message)
        else:
            text = message
        if text and self.on_data is not None:
            self.on_data(text)

    def on_close(self, epoch: int) -> None:
        """The stream ended after having connected."""
        if self._stale(epoch):
            return
        self._stream = None
        self._outbox = None
        self._set_state(ConnectionState.DISCONNECTED)
        if not self._is_alive(self.tab_id):
            return
        if self.on_data is not None:
            self.on_data(RECONNECT_NOTICE)
        self._schedule_reconnect(epoch)

    def on_error(self, epoch: int, error: BaseException) -> None:
        """The handshake failed.

        A tab that never connected stays in ERROR.  Once it has been
        connected, a failed reconnect is another disconnect and the retry
        loop keeps going.
        """
        if self._stale(epoch):
            return
        logger.warning(
            "terminal %s could not connect to %s: %s", self.tab_id, self.url, error
        )
        if not self._connected_once:
            self._set_state(ConnectionState.ERROR)
            return
        self._set_state(ConnectionState.DISCONNECTED)
        if self._is_alive(self.tab_id):
            self._schedule_reconnect(epoch)

    # -- internals -------------------------------------------------------

    def _stale(self, epoch: int) -> bool:
        return self._closed or epoch != self._epoch

    def _schedule_reconnect(self, epoch: int) -> None:
        self._retry = self._scheduler.call_later(
            self.reconnect_delay, lambda: self._reconnect(epoch)
        )

    def _reconnect(self, epoch: int) -> None:
        # The owning tab may have been closed while we were waiting
        if self._stale(epoch) or not self._is_alive(self.tab_id):
            return
        logger.info("terminal %s reconnecting", self.tab_id)
        self.connect()

    def _set_state(self, state: ConnectionState) -> None:
        self.state = state
        if self.on_state is not None:
            self.on_state(self.tab_id, state)

    async def _run(self, epoch: int) -> None:
        try:
            stream = await self._connector(self.url)
        except HANDSHAKE_ERRORS as error:
            self.on_error(epoch, error)
            return

        if self._stale(epoch):
            await stream.close()
            return

        self.on_open(epoch, stream)
        writer = asyncio.ensure_future(self._write(stream, self._outbox))
        try:
            async for message in stream:
                self.on_message(epoch, message)
        except ConnectionClosed as closed:
            logger.info("terminal %s stream dropped: %s", self.tab_id, closed)
        finally:
            writer.cancel()
            await stream.close()
        self.on_close(epoch)

    async def _write(self, stream: ByteStream, outbox: asyncio.Queue | None) -> None:
        """Send queued keystrokes in the order they were typed."""
        if outbox is None:
            return
        while True:
            data = await outbox.get()
            try:
                await stream.send(data)
            except ConnectionClosed:
                return
