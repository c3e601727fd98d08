"""Pytest configuration and fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def _debug_logging(caplog):
    """Capture tickerboard debug logs so failures show the frame/decay trail."""
    caplog.set_level(logging.DEBUG, logger="tickerboard")
    yield
