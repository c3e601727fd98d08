"""Tradernet websocket stream for realtime quotes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from websocket import WebSocketApp

from .errors import TransportError
from .interface import ConnectionState, ErrorCallback, QuoteSource, UpdateCallback
from .parser import encode_subscription

logger = logging.getLogger(__name__)

DEFAULT_WS_URL = "wss://wss.tradernet.com"


class TradernetStream(QuoteSource):
    """QuoteSource backed by the Tradernet realtime websocket.

    websocket-client is blocking, so run_forever() runs in a worker thread.
    Every callback from that thread is re-posted onto the event loop that
    called open(); call_soon_threadsafe keeps frames in arrival order, so the
    store only ever sees updates from its own loop.

    There is no reconnect: a transport error fails the stream and is
    reported once through on_error.
    """

    def __init__(
        self,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
        *,
        url: str = DEFAULT_WS_URL,
        websocket_app_factory: Callable[..., Any] | None = None,
        close_timeout: float = 5.0,
    ) -> None:
        super().__init__(on_update, on_error)
        self._url = url
        self._factory = websocket_app_factory or WebSocketApp
        self._close_timeout = close_timeout
        self._loop: asyncio.AbstractEventLoop | None = None
        self._ws: Any = None
        self._task: asyncio.Task | None = None

    @property
    def url(self) -> str:
        return self._url

    async def open(self, tickers: list[str]) -> None:
        if self._task is not None:
            raise RuntimeError("stream is already open")

        self._loop = asyncio.get_running_loop()
        self._tickers = list(tickers)
        self._state = ConnectionState.CONNECTING

        self._ws = self._factory(
            self._url,
            on_open=self._ws_on_open,
            on_message=self._ws_on_message,
            on_error=self._ws_on_error,
            on_close=self._ws_on_close,
        )
        self._task = asyncio.create_task(
            asyncio.to_thread(self._ws.run_forever), name="tradernet-ws"
        )
        self._task.add_done_callback(self._on_runner_done)
        logger.info("Connecting to %s for %d tickers", self._url, len(self._tickers))

    async def close(self) -> None:
        ws, task = self._ws, self._task
        # Detach first: anything the old socket posts from here on is stale
        self._ws = None
        self._task = None
        if self._state is not ConnectionState.DISCONNECTED:
            self._state = ConnectionState.DISCONNECTED
            logger.info("Quote stream closed")

        if ws is not None:
            ws.close()
        if task is not None:
            done, _ = await asyncio.wait({task}, timeout=self._close_timeout)
            if not done:
                logger.warning("Websocket worker did not stop within %.1fs", self._close_timeout)

    # --- Worker thread callbacks (re-posted to the loop) ---

    def _ws_on_open(self, ws: Any) -> None:
        ws.send(encode_subscription(self._tickers))
        self._post(self._handle_open, ws)

    def _ws_on_message(self, ws: Any, message: Any) -> None:
        if isinstance(message, (bytes, bytearray)):
            return
        self._post(self._handle_message, ws, message)

    def _ws_on_error(self, ws: Any, error: Any) -> None:
        self._post(self._handle_error, ws, error)

    def _ws_on_close(self, ws: Any, code: Any = None, reason: Any = None) -> None:
        self._post(self._handle_close, ws, code, reason)

    def _post(self, callback: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(callback, *args)

    # --- Loop-side handlers; each ignores sockets other than the current one ---

    def _handle_open(self, ws: Any) -> None:
        if ws is not self._ws or self._state is not ConnectionState.CONNECTING:
            return
        self._state = ConnectionState.CONNECTED
        logger.info("Subscribed to realtime quotes: %s", ",".join(self._tickers))

    def _handle_message(self, ws: Any, message: str) -> None:
        if ws is self._ws:
            self._deliver_frame(message)

    def _handle_error(self, ws: Any, error: Any) -> None:
        if ws is not self._ws or self._state is ConnectionState.FAILED:
            return
        self._report_error(TransportError(str(error)))

    def _handle_close(self, ws: Any, code: Any, reason: Any) -> None:
        if ws is not self._ws or self._state is ConnectionState.FAILED:
            return
        self._state = ConnectionState.DISCONNECTED
        logger.info("Quote stream closed by server: code=%s reason=%s", code, reason)

    def _on_runner_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        if task is not self._task or self._state is ConnectionState.FAILED:
            logger.debug("Websocket worker exited with %r", error)
            return
        self._report_error(TransportError(str(error)))
