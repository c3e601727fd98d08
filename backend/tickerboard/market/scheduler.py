"""Central owner of per-ticker decay timers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class DecayScheduler:
    """One-shot timers keyed by ticker, at most one live timer per ticker.

    Timers run on the event loop that arms them. Callbacks receive only the
    ticker, so they resolve whatever state they need at fire time instead of
    holding references to it.
    """

    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}

    def arm(self, ticker: str, delay: float, callback: Callable[[str], None]) -> None:
        """Schedule callback(ticker) after delay seconds, replacing any live timer."""
        self.cancel(ticker)
        loop = asyncio.get_running_loop()
        self._handles[ticker] = loop.call_later(delay, self._fire, ticker, callback)

    def cancel(self, ticker: str) -> bool:
        """Cancel the live timer for ticker. Returns True if one was pending."""
        handle = self._handles.pop(ticker, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        count = len(self._handles)
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        if count:
            logger.debug("Cancelled %d pending decay timers", count)
        return count

    def is_pending(self, ticker: str) -> bool:
        return ticker in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def _fire(self, ticker: str, callback: Callable[[str], None]) -> None:
        self._handles.pop(ticker, None)
        try:
            callback(ticker)
        except Exception:
            logger.exception("Decay callback failed for %s", ticker)
