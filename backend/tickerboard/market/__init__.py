"""Realtime quote subsystem for Tickerboard.

Public API:
    QuoteRecord         - Latest state of one instrument
    Classification      - Row emphasis (steady or flash)
    DisplayEntry        - Per-ticker display state owned by the store
    ChangeEvent         - Created/updated notification emitted by the store
    QuoteStore          - Reconciles streamed updates into ordered display state
    SnapshotClient      - Fetches the initial ticker list
    QuoteSource         - Abstract interface for stream providers
    parse_frame         - Decode a raw stream frame into a QuoteRecord
    QuoteFeed           - Snapshot -> stream -> store orchestration
    create_quote_source - Factory that selects simulator or Tradernet websocket
    create_stream_router - FastAPI router factory for the board and SSE endpoint
"""

from .errors import ApplicationError, FormatError, QuoteFeedError, TransportError
from .factory import create_quote_source
from .feed import QuoteFeed
from .interface import ConnectionState, QuoteSource
from .models import ChangeEvent, ChangeKind, Classification, DisplayEntry, QuoteRecord
from .parser import parse_frame
from .snapshot import RankingMode, SnapshotClient
from .store import QuoteStore
from .stream import create_stream_router

__all__ = [
    "ApplicationError",
    "ChangeEvent",
    "ChangeKind",
    "Classification",
    "ConnectionState",
    "DisplayEntry",
    "FormatError",
    "QuoteFeed",
    "QuoteFeedError",
    "QuoteRecord",
    "QuoteSource",
    "QuoteStore",
    "RankingMode",
    "SnapshotClient",
    "TransportError",
    "create_quote_source",
    "create_stream_router",
    "parse_frame",
]
