"""Factory for creating quote sources."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .interface import ErrorCallback, QuoteSource, UpdateCallback

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


def create_quote_source(
    settings: Settings,
    on_update: UpdateCallback,
    on_error: ErrorCallback | None = None,
) -> QuoteSource:
    """Create the quote source selected by settings.source.

    - "simulator" → SimulatorStream (GBM simulation, no network)
    - anything else → TradernetStream (live websocket at settings.ws_url)

    Returns an unopened source. Caller must await source.open(tickers).
    """
    if settings.source == "simulator":
        from .simulator import SimulatorStream

        logger.info("Quote source: GBM simulator")
        return SimulatorStream(on_update=on_update, on_error=on_error)

    from .connection import TradernetStream

    logger.info("Quote source: Tradernet websocket (%s)", settings.ws_url)
    return TradernetStream(on_update=on_update, on_error=on_error, url=settings.ws_url)
