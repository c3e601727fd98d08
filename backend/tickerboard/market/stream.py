"""HTTP endpoints for the quote board: JSON snapshot and SSE change stream."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .models import ChangeKind
from .store import QuoteStore

logger = logging.getLogger(__name__)


def create_stream_router(store: QuoteStore) -> APIRouter:
    """Create the quote board router with a reference to the store.

    This factory pattern lets us inject the QuoteStore without globals.
    """
    router = APIRouter(prefix="/api", tags=["quotes"])

    @router.get("/quotes")
    async def list_quotes() -> list[dict]:
        """Every tracked quote in board order, with its current classification."""
        return [entry.to_dict() for entry in store.entries()]

    @router.get("/stream/quotes")
    async def stream_quotes(request: Request) -> StreamingResponse:
        """SSE endpoint for live board changes.

        The client connects with EventSource and first receives one
        ``created`` event per row already on the board, then one event per
        store change:

            data: {"event": "updated", "ticker": "SBER", "classification": "positive_flash", ...}
        """
        return StreamingResponse(
            _generate_events(store, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


def _format_event(data: dict) -> str:
    return f"data: {json.dumps(data)}\n\n"


async def _generate_events(
    store: QuoteStore,
    request: Request,
    poll_timeout: float = 1.0,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted change events.

    Waits on a dedicated store subscription, waking every ``poll_timeout``
    seconds to notice a client disconnect.
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    queue = store.subscribe()
    try:
        for entry in store.entries():
            data = entry.to_dict()
            data["event"] = ChangeKind.CREATED.value
            data["version"] = store.version
            yield _format_event(data)

        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break
            try:
                event = await asyncio.wait_for(queue.get(), timeout=poll_timeout)
            except asyncio.TimeoutError:
                continue
            yield _format_event(event.to_dict())
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
    finally:
        store.unsubscribe(queue)
