"""Quote feed: snapshot, then stream, then store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .errors import QuoteFeedError
from .interface import LogoFetcher, QuoteSource
from .models import ChangeEvent, ChangeKind
from .snapshot import RankingMode, SnapshotClient
from .store import QuoteStore

logger = logging.getLogger(__name__)

SourceBuilder = Callable[..., QuoteSource]


class QuoteFeed:
    """Wires the snapshot client, a quote source and the store together.

    start() fetches the ticker list once and opens the source with it;
    every parsed update is merged into the store. Failures are logged and
    reported once through ``on_error``; nothing is retried.
    """

    def __init__(
        self,
        store: QuoteStore,
        snapshot_client: SnapshotClient,
        source_builder: SourceBuilder,
        *,
        instrument_type: str = "stocks",
        exchange: str = "russia",
        ranking: RankingMode = RankingMode.BY_VOLUME,
        limit: int = 30,
        on_error: Callable[[QuoteFeedError], None] | None = None,
        logo_fetcher: LogoFetcher | None = None,
    ) -> None:
        self._store = store
        self._snapshot = snapshot_client
        self._source_builder = source_builder
        self._instrument_type = instrument_type
        self._exchange = exchange
        self._ranking = ranking
        self._limit = limit
        self._on_error = on_error
        self._logo_fetcher = logo_fetcher
        self._logo_tasks: set[asyncio.Task] = set()
        self._source: QuoteSource | None = None
        self._stopped = False
        self.last_error: QuoteFeedError | None = None

    @property
    def store(self) -> QuoteStore:
        return self._store

    @property
    def source(self) -> QuoteSource | None:
        return self._source

    async def start(self) -> bool:
        """Fetch the snapshot and open the stream. Returns False if the snapshot failed."""
        try:
            tickers = await self._snapshot.fetch(
                self._instrument_type, self._exchange, self._ranking, self._limit
            )
        except QuoteFeedError as e:
            logger.error("Failed to fetch quote snapshot: %s", e)
            self._report(e)
            return False

        if self._logo_fetcher is not None:
            self._store.add_listener(self._request_logo)

        self._source = self._source_builder(on_update=self._store.merge, on_error=self._report)
        await self._source.open(tickers)
        logger.info("Quote feed started: %d tickers", len(tickers))
        return True

    async def stop(self) -> None:
        """Close the stream, cancel pending decays and release the HTTP client."""
        if self._stopped:
            return
        self._stopped = True
        if self._source is not None:
            await self._source.close()
        for task in list(self._logo_tasks):
            task.cancel()
        self._store.shutdown()
        await self._snapshot.aclose()
        logger.info("Quote feed stopped")

    def _report(self, error: QuoteFeedError) -> None:
        self.last_error = error
        if self._on_error is not None:
            self._on_error(error)

    def _request_logo(self, event: ChangeEvent) -> None:
        if event.kind is not ChangeKind.CREATED:
            return
        task = asyncio.create_task(self._load_logo(event.ticker), name=f"logo-{event.ticker}")
        self._logo_tasks.add(task)
        task.add_done_callback(self._logo_tasks.discard)

    async def _load_logo(self, ticker: str) -> None:
        try:
            logo = await self._logo_fetcher.fetch_logo(ticker)
        except Exception as e:
            logger.debug("Logo unavailable for %s: %s", ticker, e)
            return
        self._store.attach_logo(ticker, logo)
