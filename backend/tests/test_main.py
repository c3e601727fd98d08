"""Tests for the application lifecycle."""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from tickerboard.config import Settings
from tickerboard.main import create_app
from tickerboard.market.errors import TransportError
from tickerboard.market.interface import ConnectionState
from tickerboard.market.simulator import SimulatorStream
from tickerboard.market.snapshot import SnapshotClient


class TestAppLifecycle:
    def test_feed_runs_for_app_lifetime(self):
        app = create_app(Settings(source="simulator", decay_interval=0.1))
        fetch = AsyncMock(return_value=["SBER", "GAZP"])

        with patch.object(SnapshotClient, "fetch", fetch):
            with TestClient(app) as client:
                rows = client.get("/api/quotes").json()
                source = app.state.feed.source
                assert isinstance(source, SimulatorStream)
                assert source.state is ConnectionState.CONNECTED

        fetch.assert_awaited_once_with("stocks", "russia", Settings().ranking, 30)
        assert [r["ticker"] for r in rows] == ["SBER", "GAZP"]
        assert source.state is ConnectionState.DISCONNECTED
        assert app.state.store.closed

    def test_snapshot_failure_keeps_app_up(self):
        app = create_app(Settings(source="simulator"))
        fetch = AsyncMock(side_effect=TransportError("offline"))

        with patch.object(SnapshotClient, "fetch", fetch):
            with TestClient(app) as client:
                assert client.get("/api/quotes").json() == []

        assert app.state.feed.source is None
        assert isinstance(app.state.feed.last_error, TransportError)
