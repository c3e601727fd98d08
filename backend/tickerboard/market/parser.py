"""Decoding of realtime stream frames.

Frames are JSON arrays ``[event_tag, payload]``. Only quote frames (tag
``"q"``) are turned into updates; everything else on the stream (acks,
heartbeats, other channels) is ignored rather than treated as an error.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from .models import QuoteRecord

logger = logging.getLogger(__name__)

QUOTE_EVENT = "q"
SUBSCRIBE_TOPIC = "realtimeQuotes"

# wire field -> QuoteRecord attribute
REQUIRED_NUMERIC_FIELDS = {
    "ltp": "last_price",
    "chg": "change_in_points",
    "pcp": "change_in_percent",
}
OPTIONAL_TEXT_FIELDS = {
    "ltr": "last_trade_exchange",
    "name": "name",
    "ltt": "last_trade_time",
}


def _to_finite_float(value: Any) -> float | None:
    """Convert a JSON number to a finite float, or None."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def validate_quote_payload(payload: Any) -> QuoteRecord | None:
    """Build a QuoteRecord from a quote payload, or None if a required field is missing."""
    if not isinstance(payload, dict):
        return None

    ticker = payload.get("c")
    if not isinstance(ticker, str) or not ticker:
        return None

    values: dict[str, Any] = {}
    for wire_name, attr in REQUIRED_NUMERIC_FIELDS.items():
        value = _to_finite_float(payload.get(wire_name))
        if value is None:
            return None
        values[attr] = value

    min_step = _to_finite_float(payload.get("min_step"))
    values["min_step"] = min_step if min_step is not None else 0.0

    for wire_name, attr in OPTIONAL_TEXT_FIELDS.items():
        value = payload.get(wire_name)
        values[attr] = value if isinstance(value, str) else None

    return QuoteRecord(ticker=ticker, **values)


def parse_frame(raw: str | bytes) -> QuoteRecord | None:
    """Decode one raw stream frame into a quote update.

    Returns None for anything that is not a complete quote frame.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(raw, str):
        return None

    try:
        decoded = json.loads(raw)
    except (ValueError, RecursionError):
        # Over-long int literals raise a plain ValueError, not JSONDecodeError
        return None

    if not isinstance(decoded, list) or len(decoded) < 2:
        return None

    event, payload = decoded[0], decoded[1]
    if event != QUOTE_EVENT:
        return None

    return validate_quote_payload(payload)


def encode_subscription(tickers: list[str]) -> str:
    """Subscription frame sent once after the stream connects."""
    return json.dumps([SUBSCRIBE_TOPIC, list(tickers)])


def encode_quote(quote: QuoteRecord) -> str:
    """Encode a quote as a wire frame. Inverse of parse_frame for complete quotes."""
    payload: dict[str, Any] = {
        "c": quote.ticker,
        "ltp": quote.last_price,
        "chg": quote.change_in_points,
        "pcp": quote.change_in_percent,
        "min_step": quote.min_step,
    }
    for wire_name, attr in OPTIONAL_TEXT_FIELDS.items():
        value = getattr(quote, attr)
        if value is not None:
            payload[wire_name] = value
    return json.dumps([QUOTE_EVENT, payload])
