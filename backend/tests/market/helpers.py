"""Builders shared by the quote subsystem tests."""

import json

from tickerboard.market.models import QuoteRecord

# Short enough to keep timer tests fast, long enough to survive CI jitter
DECAY = 0.1


def make_quote(ticker: str = "SBER", change_in_percent: float = 0.0, **overrides) -> QuoteRecord:
    """Create a QuoteRecord with sensible defaults."""
    fields = {
        "ticker": ticker,
        "last_price": 280.0,
        "change_in_points": 0.0,
        "change_in_percent": change_in_percent,
    }
    fields.update(overrides)
    return QuoteRecord(**fields)


def quote_frame(ticker: str = "SBER", **payload) -> str:
    """Raw ``["q", {...}]`` frame with all required fields unless overridden."""
    body = {"c": ticker, "ltp": 280.5, "chg": 1.5, "pcp": 0.54}
    body.update(payload)
    return json.dumps(["q", body])
