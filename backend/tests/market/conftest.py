"""Fixtures for quote subsystem tests."""

import pytest

from helpers import DECAY
from tickerboard.market.store import QuoteStore


@pytest.fixture
def store():
    """QuoteStore with a short decay interval, shut down after the test."""
    store = QuoteStore(decay_interval=DECAY)
    yield store
    store.shutdown()
