"""Tests for ConnectionManager: state machine, reconnect, ordering, decoding."""

from __future__ import annotations

import pytest
from websockets.exceptions import ConnectionClosedError, InvalidProxy, InvalidURI

from conftest import TERMINAL_URL, settle
from training_console.core.connection import RECONNECT_NOTICE, ConnectionManager
from training_console.core.tabs import ConnectionState

CONNECTING = ConnectionState.CONNECTING
CONNECTED = ConnectionState.CONNECTED
DISCONNECTED = ConnectionState.DISCONNECTED
ERROR = ConnectionState.ERROR


class Harness:
    def __init__(self, connector, scheduler) -> None:
        self.alive = True
        self.states: list[ConnectionState] = []
        self.data: list[str] = []
        self.manager = ConnectionManager(
            "term-1",
            TERMINAL_URL,
            connector=connector,
            scheduler=scheduler,
            is_alive=lambda _tab_id: self.alive,
            reconnect_delay=2.0,
            on_state=lambda _tab_id, state: self.states.append(state),
            on_data=self.data.append,
        )

    @property
    def output(self) -> str:
        return "".join(self.data)


@pytest.fixture
def harness(connector, scheduler) -> Harness:
    return Harness(connector, scheduler)


class TestConnect:
    @pytest.mark.asyncio
    async def test_connecting_then_connected(self, harness, connector):
        harness.manager.connect()
        assert harness.manager.state is CONNECTING
        await settle()
        assert harness.states == [CONNECTING, CONNECTED]
        assert connector.urls == [TERMINAL_URL]

    @pytest.mark.asyncio
    async def test_handshake_failure_is_error_without_retry(
        self, harness, connector, scheduler
    ):
        connector.fail_with = OSError("connection refused")
        harness.manager.connect()
        await settle()
        assert harness.states == [CONNECTING, ERROR]
        assert scheduler.pending == []

    @pytest.mark.asyncio
    async def test_invalid_uri_is_error(self, harness, connector):
        connector.fail_with = InvalidURI("nope://", "bad scheme")
        harness.manager.connect()
        await settle()
        assert harness.manager.state is ERROR

    @pytest.mark.asyncio
    async def test_proxy_error_is_error(self, harness, connector, scheduler):
        connector.fail_with = InvalidProxy(
            "ftp://proxy.invalid:21", "scheme ftp isn't supported"
        )
        harness.manager.connect()
        await settle()
        assert harness.states == [CONNECTING, ERROR]
        assert scheduler.pending == []


class TestInbound:
    @pytest.mark.asyncio
    async def test_text_delivered_in_order(self, harness, connector):
        harness.manager.connect()
        await settle()
        connector.last.feed("$ ")
        connector.last.feed("ls\r\n")
        await settle()
        assert harness.data == ["$ ", "ls\r\n"]

    @pytest.mark.asyncio
    async def test_multibyte_split_across_binary_messages(self, harness, connector):
        harness.manager.connect()
        await settle()
        encoded = "café ✓".encode()
        connector.last.feed(encoded[:4])
        connector.last.feed(encoded[4:])
        await settle()
        assert harness.output == "café ✓"

    @pytest.mark.asyncio
    async def test_stale_epoch_ignored(self, harness):
        harness.manager.connect()
        await settle()
        harness.manager.on_message(harness.manager.epoch - 1, "late")
        assert harness.data == []

    @pytest.mark.asyncio
    async def test_messages_after_close_ignored(self, harness):
        harness.manager.connect()
        await settle()
        harness.manager.close()
        harness.manager.on_message(harness.manager.epoch, "late")
        assert harness.data == []


class TestOutbound:
    @pytest.mark.asyncio
    async def test_dropped_while_connecting(self, harness):
        harness.manager.connect()
        assert harness.manager.send("x") is False

    @pytest.mark.asyncio
    async def test_fifo_while_connected(self, harness, connector):
        harness.manager.connect()
        await settle()
        for key in ["l", "s", "\r"]:
            assert harness.manager.send(key) is True
        await settle()
        assert connector.last.sent == ["l", "s", "\r"]

    @pytest.mark.asyncio
    async def test_dropped_while_disconnected(self, harness, connector):
        harness.manager.connect()
        await settle()
        connector.last.end()
        await settle()
        assert harness.manager.send("x") is False


class TestReconnect:
    @pytest.mark.asyncio
    async def test_close_writes_notice_and_retries_after_delay(
        self, harness, connector, scheduler
    ):
        harness.manager.connect()
        await settle()
        connector.last.end()
        await settle()

        assert harness.manager.state is DISCONNECTED
        assert RECONNECT_NOTICE in harness.output
        assert "Connection closed. Reconnecting..." in RECONNECT_NOTICE
        assert connector.last.closed is True

        scheduler.advance(1.9)
        assert len(connector.urls) == 1
        scheduler.advance(0.1)
        assert harness.manager.state is CONNECTING
        await settle()
        assert harness.manager.state is CONNECTED
        assert len(connector.urls) == 2
        assert harness.states == [
            CONNECTING,
            CONNECTED,
            DISCONNECTED,
            CONNECTING,
            CONNECTED,
        ]

    @pytest.mark.asyncio
    async def test_dropped_stream_counts_as_disconnect(self, harness, connector):
        harness.manager.connect()
        await settle()
        connector.last.fail(ConnectionClosedError(None, None))
        await settle()
        assert harness.manager.state is DISCONNECTED

    @pytest.mark.asyncio
    async def test_close_cancels_pending_reconnect(
        self, harness, connector, scheduler
    ):
        harness.manager.connect()
        await settle()
        connector.last.end()
        await settle()
        harness.manager.close()
        assert scheduler.pending == []
        scheduler.advance(5)
        await settle()
        assert len(connector.urls) == 1

    @pytest.mark.asyncio
    async def test_no_reconnect_once_tab_is_gone(self, harness, connector, scheduler):
        harness.manager.connect()
        await settle()
        connector.last.end()
        await settle()
        harness.alive = False
        scheduler.advance(2)
        await settle()
        assert len(connector.urls) == 1
        assert harness.manager.state is DISCONNECTED

    @pytest.mark.asyncio
    async def test_connect_after_close_is_noop(self, harness, connector):
        harness.manager.close()
        harness.manager.connect()
        await settle()
        assert connector.urls == []

    @pytest.mark.asyncio
    async def test_failed_reconnect_keeps_retrying(
        self, harness, connector, scheduler
    ):
        harness.manager.connect()
        await settle()
        connector.last.end()
        await settle()

        connector.fail_with = OSError("connection refused")
        for _ in range(3):
            scheduler.advance(2)
            await settle()
            assert harness.manager.state is DISCONNECTED
            assert len(scheduler.pending) == 1
        assert len(connector.urls) == 4
        assert ERROR not in harness.states
        # Only the real disconnect writes the notice
        assert harness.output.count("Reconnecting...") == 1

        connector.fail_with = None
        scheduler.advance(2)
        await settle()
        assert harness.manager.state is CONNECTED
        assert len(connector.urls) == 5

    @pytest.mark.asyncio
    async def test_failed_reconnect_stops_once_tab_is_gone(
        self, harness, connector, scheduler
    ):
        harness.manager.connect()
        await settle()
        connector.last.end()
        await settle()
        connector.fail_with = OSError("connection refused")
        scheduler.advance(2)
        await settle()
        harness.alive = False
        scheduler.advance(2)
        await settle()
        assert len(connector.urls) == 2
        assert scheduler.pending == []


class TestClose:
    @pytest.mark.asyncio
    async def test_close_shuts_the_stream(self, harness, connector):
        harness.manager.connect()
        await settle()
        harness.manager.close()
        await settle()
        assert connector.last.closed is True
        assert harness.manager.send("x") is False
