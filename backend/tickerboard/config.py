"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from .market.connection import DEFAULT_WS_URL
from .market.errors import ConfigError
from .market.snapshot import DEFAULT_API_URL, RankingMode
from .market.store import DEFAULT_DECAY_INTERVAL

SOURCES = ("live", "simulator")


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


def _env_number(name: str, default: float, cast: type = float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    ws_url: str = DEFAULT_WS_URL
    instrument_type: str = "stocks"
    exchange: str = "russia"
    ranking: RankingMode = RankingMode.BY_VOLUME
    limit: int = 30
    decay_interval: float = DEFAULT_DECAY_INTERVAL
    source: str = "live"
    request_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables, falling back to defaults.

        - QUOTE_SOURCE=simulator → offline simulator instead of the live websocket
        - QUOTE_RANKING=gainers → top gainers instead of top volume
        """
        source = _env_str("QUOTE_SOURCE", "live").lower()
        if source not in SOURCES:
            raise ConfigError(f"QUOTE_SOURCE must be one of {SOURCES}, got {source!r}")

        ranking_raw = _env_str("QUOTE_RANKING", RankingMode.BY_VOLUME.value).lower()
        try:
            ranking = RankingMode(ranking_raw)
        except ValueError as e:
            raise ConfigError(f"QUOTE_RANKING must be 'volume' or 'gainers', got {ranking_raw!r}") from e

        return cls(
            api_url=_env_str("TRADERNET_API_URL", DEFAULT_API_URL),
            ws_url=_env_str("TRADERNET_WS_URL", DEFAULT_WS_URL),
            instrument_type=_env_str("QUOTE_INSTRUMENT_TYPE", "stocks"),
            exchange=_env_str("QUOTE_EXCHANGE", "russia"),
            ranking=ranking,
            limit=int(_env_number("QUOTE_LIMIT", 30, cast=int)),
            decay_interval=_env_number("QUOTE_DECAY_INTERVAL", DEFAULT_DECAY_INTERVAL),
            source=source,
            request_timeout=_env_number("QUOTE_REQUEST_TIMEOUT", 10.0),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
