"""Error taxonomy for the quote feed."""

from __future__ import annotations


class QuoteFeedError(Exception):
    """Base error for all quote feed failures."""


class TransportError(QuoteFeedError):
    """Connection-level failure (HTTP request or websocket)."""


class FormatError(QuoteFeedError):
    """Response or frame did not have the expected shape."""


class ApplicationError(QuoteFeedError):
    """Well-formed error payload returned by the server."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class ConfigError(QuoteFeedError):
    """Invalid configuration value."""
