"""Abstract interface for quote stream sources."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from .errors import QuoteFeedError
from .models import QuoteRecord
from .parser import parse_frame

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[QuoteRecord], object]
ErrorCallback = Callable[[QuoteFeedError], object]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class QuoteSource(ABC):
    """Contract for quote stream providers.

    Implementations decode raw frames and hand typed updates to ``on_update``
    (normally QuoteStore.merge) on the event loop that called open().
    Transport failures go to ``on_error`` once and end the stream.

    Lifecycle:
        source = create_quote_source(settings, store.merge, on_error)
        await source.open(["SBER", "GAZP", ...])
        # ... updates flow ...
        await source.close()
    """

    def __init__(
        self,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._on_update = on_update
        self._on_error = on_error
        self._state = ConnectionState.DISCONNECTED
        self._tickers: list[str] = []

    @abstractmethod
    async def open(self, tickers: list[str]) -> None:
        """Connect and subscribe to the given tickers.

        Calling open() on a source that is already open raises RuntimeError.
        """

    @abstractmethod
    async def close(self) -> None:
        """Tear the connection down. Safe to call multiple times.

        After close(), the source will not deliver updates again.
        """

    @property
    def state(self) -> ConnectionState:
        return self._state

    def get_tickers(self) -> list[str]:
        """Return the tickers this source subscribed to."""
        return list(self._tickers)

    def _deliver_frame(self, raw: str | bytes) -> bool:
        """Parse a raw frame and forward it. Returns False if the frame was dropped."""
        if self._state is not ConnectionState.CONNECTED:
            return False
        update = parse_frame(raw)
        if update is None:
            logger.debug("Dropped unrecognized frame: %.80r", raw)
            return False
        self._on_update(update)
        return True

    def _report_error(self, error: QuoteFeedError) -> None:
        self._state = ConnectionState.FAILED
        logger.error("Quote stream failed: %s", error)
        if self._on_error is not None:
            self._on_error(error)


class LogoFetcher(Protocol):
    """External collaborator that retrieves instrument logos."""

    async def fetch_logo(self, ticker: str) -> bytes: ...
