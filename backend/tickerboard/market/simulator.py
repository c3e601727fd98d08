"""GBM-based quote simulator that speaks the realtime wire format."""

from __future__ import annotations

import asyncio
import logging
import math
import random
import time

import numpy as np

from .interface import ConnectionState, ErrorCallback, QuoteSource, UpdateCallback
from .models import QuoteRecord, round_to_min_step
from .parser import encode_quote
from .seed_quotes import (
    DEFAULT_MIN_STEP,
    DEFAULT_SIGMA,
    EXCHANGE_CODE,
    MARKET_FACTOR_WEIGHT,
    SEED_QUOTES,
    TICKER_SIGMA,
)

logger = logging.getLogger(__name__)


class QuoteSimulator:
    """Geometric Brownian Motion over a set of tickers with a shared market factor.

    Math:
        S(t+dt) = S(t) * exp(-sigma^2/2 * dt + sigma * sqrt(dt) * Z)
        Z = sqrt(w) * M + sqrt(1 - w) * E

    Where M is one market-wide standard normal draw per step, E is the
    ticker's own draw and w is MARKET_FACTOR_WEIGHT. Percent change is
    measured against the seeded previous close, the way an exchange reports it.
    """

    # 1s expressed as a fraction of a trading year (252 days * 8.5h session)
    TRADING_SECONDS_PER_YEAR = 252 * 8.5 * 3600
    DEFAULT_DT = 1.0 / TRADING_SECONDS_PER_YEAR

    def __init__(
        self,
        tickers: list[str],
        dt: float = DEFAULT_DT,
        update_fraction: float = 0.3,
    ) -> None:
        if not 0 < update_fraction <= 1:
            raise ValueError("update_fraction must be in (0, 1]")
        self._dt = dt
        self._update_fraction = update_fraction
        self._tickers: list[str] = []
        self._prices: dict[str, float] = {}
        self._closes: dict[str, float] = {}
        self._steps: dict[str, float] = {}
        self._names: dict[str, str | None] = {}
        self._sigmas: dict[str, float] = {}
        for ticker in tickers:
            self.add_ticker(ticker)

    # --- Public API ---

    def step(self) -> list[str]:
        """Advance every ticker one time step and return quote frames for a random subset.

        Real feeds only publish tickers that traded, so roughly
        ``update_fraction`` of the tickers produce a frame per step.
        """
        n = len(self._tickers)
        if n == 0:
            return []

        market = np.random.standard_normal()
        own = np.random.standard_normal(n)
        z = math.sqrt(MARKET_FACTOR_WEIGHT) * market + math.sqrt(1 - MARKET_FACTOR_WEIGHT) * own
        traded = np.random.random_sample(n) < self._update_fraction

        frames: list[str] = []
        for i, ticker in enumerate(self._tickers):
            sigma = self._sigmas[ticker]
            drift = -0.5 * sigma**2 * self._dt
            diffusion = sigma * math.sqrt(self._dt) * z[i]
            self._prices[ticker] *= math.exp(drift + diffusion)
            if traded[i]:
                frames.append(encode_quote(self.quote(ticker)))
        return frames

    def snapshot(self) -> list[str]:
        """One frame per ticker with its current state."""
        return [encode_quote(self.quote(ticker)) for ticker in self._tickers]

    def quote(self, ticker: str) -> QuoteRecord:
        """Current quote for a tracked ticker, priced on its min step."""
        min_step = self._steps[ticker]
        close = self._closes[ticker]
        price = round_to_min_step(self._prices[ticker], min_step)
        change = price - close
        return QuoteRecord(
            ticker=ticker,
            last_price=price,
            change_in_points=round(change, 6),
            change_in_percent=round(change / close * 100, 2),
            min_step=min_step,
            last_trade_exchange=EXCHANGE_CODE,
            name=self._names[ticker],
            last_trade_time=time.strftime("%H:%M:%S"),
        )

    def add_ticker(self, ticker: str) -> None:
        if ticker in self._prices:
            return
        seed = SEED_QUOTES.get(ticker)
        if seed is None:
            close = random.uniform(50.0, 500.0)
            seed = {"close": close, "min_step": DEFAULT_MIN_STEP, "name": None}
        self._tickers.append(ticker)
        self._closes[ticker] = seed["close"]
        self._prices[ticker] = seed["close"]
        self._steps[ticker] = seed["min_step"]
        self._names[ticker] = seed["name"]
        self._sigmas[ticker] = TICKER_SIGMA.get(ticker, DEFAULT_SIGMA)

    def get_price(self, ticker: str) -> float | None:
        """Unrounded current price, or None if not tracked."""
        return self._prices.get(ticker)

    @property
    def tickers(self) -> list[str]:
        return list(self._tickers)


class SimulatorStream(QuoteSource):
    """QuoteSource backed by QuoteSimulator.

    Runs a background asyncio task that steps the simulator every
    ``update_interval`` seconds and pushes the resulting wire frames through
    the same parse path as the live stream.
    """

    def __init__(
        self,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
        *,
        update_interval: float = 0.5,
        update_fraction: float = 0.3,
    ) -> None:
        super().__init__(on_update, on_error)
        self._interval = update_interval
        self._update_fraction = update_fraction
        self._sim: QuoteSimulator | None = None
        self._task: asyncio.Task | None = None

    async def open(self, tickers: list[str]) -> None:
        if self._task is not None:
            raise RuntimeError("stream is already open")
        self._tickers = list(tickers)
        self._state = ConnectionState.CONNECTING
        self._sim = QuoteSimulator(tickers=self._tickers, update_fraction=self._update_fraction)
        self._state = ConnectionState.CONNECTED

        # Publish every ticker once so the board fills immediately
        for frame in self._sim.snapshot():
            self._deliver_frame(frame)
        self._task = asyncio.create_task(self._run_loop(), name="quote-simulator")
        logger.info("Simulator started with %d tickers", len(self._tickers))

    async def close(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        if self._state is not ConnectionState.DISCONNECTED:
            self._state = ConnectionState.DISCONNECTED
            logger.info("Simulator stopped")

    async def _run_loop(self) -> None:
        """Core loop: step the simulation, deliver frames, sleep."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                if self._sim:
                    for frame in self._sim.step():
                        self._deliver_frame(frame)
            except Exception:
                logger.exception("Simulator step failed")
