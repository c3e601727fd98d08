"""Snapshot client: one-shot request for the initial list of tickers to track."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any

import httpx

from .errors import ApplicationError, FormatError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://tradernet.com/api/"
TOP_SECURITIES_CMD = "getTopSecurities"


class RankingMode(str, Enum):
    """How the server ranks the returned securities."""

    BY_VOLUME = "volume"
    GAINERS = "gainers"

    @property
    def gainers_flag(self) -> int:
        return 1 if self is RankingMode.GAINERS else 0


def build_request_body(
    instrument_type: str,
    exchange: str,
    ranking: RankingMode,
    limit: int,
) -> dict[str, str]:
    """Form body for the top-securities request: one ``q`` field holding the JSON command."""
    command = {
        "cmd": TOP_SECURITIES_CMD,
        "params": {
            "type": instrument_type,
            "exchange": exchange,
            "gainers": ranking.gainers_flag,
            "limit": limit,
        },
    }
    return {"q": json.dumps(command)}


def parse_response(payload: Any) -> list[str]:
    """Extract the ticker list from a decoded response body.

    Raises ApplicationError for a server error payload and FormatError for
    anything else that is not a list of ticker strings.
    """
    if not isinstance(payload, dict):
        raise FormatError(f"expected JSON object, got {type(payload).__name__}")

    tickers = payload.get("tickers")
    if isinstance(tickers, list):
        if not all(isinstance(t, str) for t in tickers):
            raise FormatError("tickers list contains non-string values")
        return list(tickers)

    code = payload.get("code")
    message = payload.get("error")
    if isinstance(code, int) and not isinstance(code, bool) and isinstance(message, str):
        raise ApplicationError(code, message)

    raise FormatError("response has neither 'tickers' nor an error payload")


class SnapshotClient:
    """Fetches the initial ticker list over HTTP.

    Owns its httpx.AsyncClient unless one is injected; call aclose() when done.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._api_url = api_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch(
        self,
        instrument_type: str,
        exchange: str,
        ranking: RankingMode | str = RankingMode.BY_VOLUME,
        limit: int = 30,
    ) -> list[str]:
        """Return the server-ordered list of tickers for the given market."""
        if limit <= 0:
            raise ValueError("limit must be positive")
        ranking = RankingMode(ranking)

        body = build_request_body(instrument_type, exchange, ranking, limit)
        try:
            response = await self._client.post(self._api_url, data=body)
        except httpx.HTTPError as e:
            logger.error("Snapshot request to %s failed: %s", self._api_url, e)
            raise TransportError(str(e)) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FormatError(
                f"response is not valid JSON (HTTP {response.status_code})"
            ) from e

        tickers = parse_response(payload)
        logger.info(
            "Snapshot: %d tickers (%s/%s, %s)",
            len(tickers),
            instrument_type,
            exchange,
            ranking.value,
        )
        return tickers

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
