"""FastAPI application: runs the quote feed for the lifetime of the app."""

from __future__ import annotations

import functools
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import Settings, get_settings
from .market import QuoteFeed, QuoteStore, SnapshotClient, create_quote_source, create_stream_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app. The feed starts on startup and is torn down on shutdown."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    store = QuoteStore(decay_interval=settings.decay_interval)
    feed = QuoteFeed(
        store=store,
        snapshot_client=SnapshotClient(api_url=settings.api_url, timeout=settings.request_timeout),
        source_builder=functools.partial(create_quote_source, settings),
        instrument_type=settings.instrument_type,
        exchange=settings.exchange,
        ranking=settings.ranking,
        limit=settings.limit,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await feed.start()
        try:
            yield
        finally:
            await feed.stop()

    app = FastAPI(title="Tickerboard", version="0.1.0", lifespan=lifespan)
    app.include_router(create_stream_router(store))
    app.state.settings = settings
    app.state.store = store
    app.state.feed = feed
    return app
