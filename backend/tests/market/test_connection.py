"""Tests for TradernetStream with a fake websocket app."""

import asyncio
import functools
import json
import logging
import threading

import pytest

from helpers import quote_frame
from tickerboard.market.connection import TradernetStream
from tickerboard.market.errors import TransportError
from tickerboard.market.interface import ConnectionState

logger = logging.getLogger(__name__)


class _FakeWebSocketApp:
    """Stands in for websocket.WebSocketApp.

    run_forever() opens, replays ``script`` (frames, or exceptions to report
    through on_error) and then blocks until close() unless ``server_close``.
    ``after_close`` frames are still sent once close() is requested, as a
    real socket may have them buffered. Callback exceptions are logged and
    swallowed, as websocket-client does.
    """

    def __init__(
        self,
        url,
        *,
        on_open=None,
        on_message=None,
        on_error=None,
        on_close=None,
        script=(),
        server_close=False,
        connect=True,
        after_close=(),
    ):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.script = list(script)
        self.server_close = server_close
        self.connect = connect
        self.after_close = list(after_close)
        self.sent_messages = []
        self.callback_errors = []
        self.closed = threading.Event()
        instances.append(self)

    def _callback(self, callback, *args):
        try:
            callback(self, *args)
        except Exception as e:
            self.callback_errors.append(e)
            logger.error("error from callback %s: %s", callback, e)

    def send(self, payload):
        self.sent_messages.append(payload)

    def run_forever(self):
        if not self.connect:
            self._callback(self.on_error, ConnectionRefusedError("refused"))
            self._callback(self.on_close, None, None)
            return
        self._callback(self.on_open)
        for item in self.script:
            if isinstance(item, Exception):
                self._callback(self.on_error, item)
                self._callback(self.on_close, None, None)
                return
            self._callback(self.on_message, item)
        if not self.server_close:
            self.closed.wait(timeout=5)
        for item in self.after_close:
            self._callback(self.on_message, item)
        self._callback(self.on_close, 1000, "bye")

    def close(self):
        self.closed.set()


instances: list[_FakeWebSocketApp] = []


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll until predicate() is true; callbacks hop threads so they land asynchronously."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def _stream(received, errors, **fake_kwargs) -> TradernetStream:
    instances.clear()
    return TradernetStream(
        on_update=received.append,
        on_error=errors.append,
        url="wss://example.test",
        websocket_app_factory=functools.partial(_FakeWebSocketApp, **fake_kwargs),
        close_timeout=2.0,
    )


@pytest.mark.asyncio
class TestTradernetStream:
    """State machine, subscription and frame delivery."""

    async def test_subscribes_once_on_connect(self):
        received, errors = [], []
        stream = _stream(received, errors)
        await stream.open(["SBER", "GAZP"])

        await _wait_for(lambda: stream.state is ConnectionState.CONNECTED)
        ws = instances[0]
        assert ws.url == "wss://example.test"
        assert [json.loads(m) for m in ws.sent_messages] == [["realtimeQuotes", ["SBER", "GAZP"]]]
        assert stream.get_tickers() == ["SBER", "GAZP"]

        await stream.close()
        assert stream.state is ConnectionState.DISCONNECTED

    async def test_open_starts_in_connecting(self):
        received, errors = [], []
        stream = _stream(received, errors)
        assert stream.state is ConnectionState.DISCONNECTED
        await stream.open(["SBER"])
        assert stream.state is ConnectionState.CONNECTING
        await stream.close()

    async def test_frames_parsed_and_forwarded_in_order(self):
        received, errors = [], []
        frames = [
            quote_frame("SBER", pcp=0.1),
            '["userData", {"login": "x"}]',
            "garbage",
            quote_frame("GAZP", pcp=-0.2),
            '["q", {"c": "AAA"}]',
            quote_frame("SBER", pcp=0.3),
        ]
        stream = _stream(received, errors, script=frames)
        await stream.open(["SBER", "GAZP"])

        await _wait_for(lambda: len(received) == 3)
        assert [(q.ticker, q.change_in_percent) for q in received] == [
            ("SBER", 0.1),
            ("GAZP", -0.2),
            ("SBER", 0.3),
        ]
        assert errors == []
        assert stream.state is ConnectionState.CONNECTED
        await stream.close()

    async def test_binary_frames_ignored(self):
        received, errors = [], []
        stream = _stream(received, errors, script=[quote_frame("SBER").encode(), quote_frame("GAZP")])
        await stream.open(["SBER", "GAZP"])

        await _wait_for(lambda: len(received) == 1)
        assert received[0].ticker == "GAZP"
        await stream.close()

    async def test_transport_error_fails_stream(self):
        received, errors = [], []
        stream = _stream(
            received,
            errors,
            script=[quote_frame("SBER"), OSError("connection reset"), quote_frame("GAZP")],
        )
        await stream.open(["SBER", "GAZP"])

        await _wait_for(lambda: stream.state is ConnectionState.FAILED)
        assert len(errors) == 1
        assert isinstance(errors[0], TransportError)
        assert "connection reset" in str(errors[0])
        assert [q.ticker for q in received] == ["SBER"]
        assert instances[0].callback_errors == []

        await stream.close()
        assert stream.state is ConnectionState.DISCONNECTED
        assert len(errors) == 1

    async def test_connect_failure_reported_once(self):
        received, errors = [], []
        stream = _stream(received, errors, connect=False)
        await stream.open(["SBER"])

        await _wait_for(lambda: stream.state is ConnectionState.FAILED)
        await asyncio.sleep(0.05)
        assert len(errors) == 1
        assert instances[0].sent_messages == []
        await stream.close()

    async def test_server_close_disconnects(self):
        received, errors = [], []
        stream = _stream(received, errors, script=[quote_frame("SBER")], server_close=True)
        await stream.open(["SBER"])

        await _wait_for(lambda: stream.state is ConnectionState.DISCONNECTED and received)
        assert errors == []
        await stream.close()

    async def test_close_is_idempotent(self):
        received, errors = [], []
        stream = _stream(received, errors)
        await stream.close()
        await stream.open(["SBER"])
        await stream.close()
        await stream.close()  # Should not raise
        assert stream.state is ConnectionState.DISCONNECTED
        assert instances[0].closed.is_set()

    async def test_no_delivery_after_close(self):
        received, errors = [], []
        stream = _stream(received, errors)
        await stream.open(["SBER"])
        await _wait_for(lambda: stream.state is ConnectionState.CONNECTED)
        ws = instances[0]
        await stream.close()

        ws.on_message(ws, quote_frame("SBER"))
        await asyncio.sleep(0.05)
        assert received == []

    async def test_open_twice_raises(self):
        received, errors = [], []
        stream = _stream(received, errors)
        await stream.open(["SBER"])
        with pytest.raises(RuntimeError):
            await stream.open(["SBER"])
        await stream.close()

    async def test_reopen_after_close(self):
        received, errors = [], []
        stream = _stream(received, errors, script=[quote_frame("SBER")])
        await stream.open(["SBER"])
        await _wait_for(lambda: len(received) == 1)
        await stream.close()

        await stream.open(["SBER"])
        await _wait_for(lambda: len(received) == 2)
        assert len(instances) == 2
        await stream.close()

    async def test_error_reported_on_loop_thread(self):
        received, threads = [], []
        loop_thread = threading.get_ident()
        stream = _stream(received, [], connect=False)
        stream._on_error = lambda error: threads.append((threading.get_ident(), error))
        await stream.open(["SBER"])

        await _wait_for(lambda: stream.state is ConnectionState.FAILED)
        assert [t for t, _ in threads] == [loop_thread]
        assert isinstance(threads[0][1], TransportError)
        assert "refused" in str(threads[0][1])
        assert instances[0].callback_errors == []
        await stream.close()

    async def test_frames_buffered_during_close_are_dropped(self):
        received, errors = [], []
        stream = _stream(received, errors, after_close=[quote_frame("SBER"), quote_frame("GAZP")])
        await stream.open(["SBER", "GAZP"])
        await _wait_for(lambda: stream.state is ConnectionState.CONNECTED)

        await stream.close()
        await asyncio.sleep(0.05)
        assert received == []
        assert errors == []
        assert stream.state is ConnectionState.DISCONNECTED

    async def test_previous_socket_ignored_after_reopen(self):
        received, errors = [], []
        stream = _stream(received, errors)
        await stream.open(["SBER"])
        await _wait_for(lambda: stream.state is ConnectionState.CONNECTED)
        old_ws = instances[0]
        await stream.close()

        await stream.open(["SBER"])
        await _wait_for(lambda: stream.state is ConnectionState.CONNECTED)
        old_ws.on_message(old_ws, quote_frame("SBER"))
        old_ws.on_error(old_ws, OSError("stale"))
        old_ws.on_close(old_ws, 1000, "late")
        await asyncio.sleep(0.05)

        assert received == []
        assert errors == []
        assert stream.state is ConnectionState.CONNECTED
        await stream.close()
