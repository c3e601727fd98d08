"""Tests for environment-driven settings."""

import os
from unittest.mock import patch

import pytest

from tickerboard.config import Settings, get_settings
from tickerboard.market.errors import ConfigError
from tickerboard.market.snapshot import RankingMode


class TestSettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env()
        assert settings.api_url == "https://tradernet.com/api/"
        assert settings.ws_url == "wss://wss.tradernet.com"
        assert settings.instrument_type == "stocks"
        assert settings.exchange == "russia"
        assert settings.ranking is RankingMode.BY_VOLUME
        assert settings.limit == 30
        assert settings.decay_interval == 2.0
        assert settings.source == "live"
        assert settings.log_level == "INFO"

    def test_overrides(self):
        env = {
            "TRADERNET_API_URL": "https://example.test/api/",
            "TRADERNET_WS_URL": "wss://example.test",
            "QUOTE_INSTRUMENT_TYPE": "bonds",
            "QUOTE_EXCHANGE": "usa",
            "QUOTE_RANKING": "Gainers",
            "QUOTE_LIMIT": "10",
            "QUOTE_DECAY_INTERVAL": "0.5",
            "QUOTE_SOURCE": "SIMULATOR",
            "QUOTE_REQUEST_TIMEOUT": "3",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()
        assert settings.api_url == "https://example.test/api/"
        assert settings.ws_url == "wss://example.test"
        assert settings.instrument_type == "bonds"
        assert settings.exchange == "usa"
        assert settings.ranking is RankingMode.GAINERS
        assert settings.limit == 10
        assert settings.decay_interval == 0.5
        assert settings.source == "simulator"
        assert settings.request_timeout == 3.0
        assert settings.log_level == "DEBUG"

    def test_blank_values_fall_back(self):
        with patch.dict(os.environ, {"QUOTE_LIMIT": "  ", "QUOTE_EXCHANGE": ""}, clear=True):
            settings = Settings.from_env()
        assert settings.limit == 30
        assert settings.exchange == "russia"

    @pytest.mark.parametrize(
        "env",
        [
            {"QUOTE_LIMIT": "0"},
            {"QUOTE_LIMIT": "ten"},
            {"QUOTE_LIMIT": "2.5"},
            {"QUOTE_DECAY_INTERVAL": "-1"},
            {"QUOTE_SOURCE": "replay"},
            {"QUOTE_RANKING": "losers"},
        ],
    )
    def test_invalid_values(self, env):
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigError):
                Settings.from_env()

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        with patch.dict(os.environ, {}, clear=True):
            first = get_settings()
            second = get_settings()
        assert first is second
        get_settings.cache_clear()
