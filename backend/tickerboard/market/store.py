"""In-memory quote store: reconciles streamed updates into ordered display state."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable

from .models import ChangeEvent, ChangeKind, Classification, DisplayEntry, QuoteRecord
from .scheduler import DecayScheduler

logger = logging.getLogger(__name__)

DEFAULT_DECAY_INTERVAL = 2.0  # seconds a flash classification stays visible

ChangeListener = Callable[[ChangeEvent], None]


class QuoteStore:
    """Latest quote and display classification for every ticker seen on the stream.

    Writers: the active QuoteSource (via merge) and the decay timers.
    Readers: the SSE endpoint and any registered listeners.

    The store is confined to one event loop. Sources running I/O on other
    threads must hop onto that loop before calling merge().
    """

    def __init__(
        self,
        decay_interval: float = DEFAULT_DECAY_INTERVAL,
        scheduler: DecayScheduler | None = None,
    ) -> None:
        if decay_interval <= 0:
            raise ValueError("decay_interval must be positive")
        self._decay_interval = decay_interval
        self._scheduler = scheduler or DecayScheduler()
        self._entries: dict[str, DisplayEntry] = {}
        self._order: list[DisplayEntry] = []  # Append-only; index == entry.index
        self._listeners: list[ChangeListener] = []
        self._queues: list[asyncio.Queue[ChangeEvent]] = []
        self._version: int = 0  # Monotonically increasing; bumped on every event
        self._closed = False

    # --- Reconciliation ---

    def merge(self, update: QuoteRecord) -> ChangeEvent:
        """Fold one streamed update into the store and notify consumers.

        A new ticker gets an entry at the end of the list, classified by the
        sign of its percent change. For a known ticker the percent change is
        compared with the previous value: a rise or fall flashes and re-arms
        the decay timer, no change re-derives the steady classification and
        leaves any pending decay alone.
        """
        if self._closed:
            raise RuntimeError("QuoteStore has been shut down")

        entry = self._entries.get(update.ticker)
        if entry is None:
            entry = DisplayEntry(
                quote=dataclasses.replace(update),
                classification=Classification.from_change(update.change_in_percent),
                index=len(self._order),
            )
            self._entries[update.ticker] = entry
            self._order.append(entry)
            logger.debug("New ticker %s at index %d", update.ticker, entry.index)
            return self._emit(ChangeKind.CREATED, entry)

        old_change = entry.quote.change_in_percent
        new_change = update.change_in_percent

        quote = entry.quote
        quote.last_price = update.last_price
        quote.change_in_points = update.change_in_points
        quote.change_in_percent = new_change

        if new_change > old_change:
            self._flash(entry, Classification.POSITIVE_FLASH)
        elif new_change < old_change:
            self._flash(entry, Classification.NEGATIVE_FLASH)
        else:
            entry.classification = Classification.from_change(new_change)

        return self._emit(ChangeKind.UPDATED, entry)

    def attach_logo(self, ticker: str, logo: bytes) -> ChangeEvent | None:
        """Attach a logo to a known ticker. Unknown tickers are ignored."""
        entry = self._entries.get(ticker)
        if entry is None or self._closed:
            return None
        entry.logo = logo
        return self._emit(ChangeKind.UPDATED, entry)

    def _flash(self, entry: DisplayEntry, classification: Classification) -> None:
        entry.classification = classification
        entry.pending_decay = True
        self._scheduler.arm(entry.ticker, self._decay_interval, self._on_decay)

    def _on_decay(self, ticker: str) -> None:
        entry = self._entries.get(ticker)
        if entry is None or self._closed:
            return
        entry.pending_decay = False
        if not entry.classification.is_flash:
            return
        entry.classification = entry.classification.settled()
        logger.debug("Decayed %s to %s", ticker, entry.classification.value)
        self._emit(ChangeKind.UPDATED, entry)

    # --- Notification ---

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked synchronously for every change event."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def subscribe(self) -> asyncio.Queue[ChangeEvent]:
        """Open an event channel. Each subscriber gets every event, in order."""
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ChangeEvent]) -> None:
        try:
            self._queues.remove(queue)
        except ValueError:
            pass

    def _emit(self, kind: ChangeKind, entry: DisplayEntry) -> ChangeEvent:
        self._version += 1
        event = ChangeEvent(
            kind=kind,
            entry=entry,
            classification=entry.classification,
            version=self._version,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Change listener failed for %s", entry.ticker)
        for queue in self._queues:
            queue.put_nowait(event)
        return event

    # --- Queries ---

    def get(self, ticker: str) -> DisplayEntry | None:
        return self._entries.get(ticker)

    def entries(self) -> list[DisplayEntry]:
        """All entries in insertion order. Returns a shallow copy."""
        return list(self._order)

    def tickers(self) -> list[str]:
        return [entry.ticker for entry in self._order]

    def index_of(self, ticker: str) -> int | None:
        entry = self._entries.get(ticker)
        return entry.index if entry else None

    def has_pending_decay(self, ticker: str) -> bool:
        return self._scheduler.is_pending(ticker)

    @property
    def decay_interval(self) -> float:
        return self._decay_interval

    @property
    def version(self) -> int:
        """Current version counter. Useful for change detection."""
        return self._version

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, ticker: str) -> bool:
        return ticker in self._entries

    # --- Teardown ---

    def shutdown(self) -> None:
        """Cancel all pending decays and drop every entry. Safe to call multiple times."""
        if self._closed:
            return
        self._closed = True
        cancelled = self._scheduler.cancel_all()
        for entry in self._order:
            entry.pending_decay = False
        self._entries.clear()
        self._order.clear()
        self._listeners.clear()
        self._queues.clear()
        logger.info("Quote store shut down (%d decay timers cancelled)", cancelled)
