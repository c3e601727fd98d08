"""Data models for quotes and their display state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


def round_to_min_step(value: float, min_step: float) -> float:
    """Round a price to the nearest multiple of min_step. A zero step leaves it as is."""
    if min_step <= 0:
        return value
    return round(value / min_step) * min_step


@dataclass(slots=True)
class QuoteRecord:
    """Latest known state of one instrument.

    The ticker is fixed once set; every other field may be overwritten by
    later updates for the same ticker.
    """

    ticker: str
    last_price: float
    change_in_points: float
    change_in_percent: float
    min_step: float = 0.0  # 0 means the exchange did not report a step
    last_trade_exchange: str | None = None
    name: str | None = None
    last_trade_time: str | None = None

    def __setattr__(self, name: str, value: object) -> None:
        if name == "ticker" and hasattr(self, "ticker"):
            raise AttributeError("ticker cannot be changed after creation")
        object.__setattr__(self, name, value)

    @property
    def display_price(self) -> float:
        """Last price rounded to the instrument's min step. Computed on every access."""
        return round_to_min_step(self.last_price, self.min_step)

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "ticker": self.ticker,
            "last_price": self.last_price,
            "display_price": self.display_price,
            "change_in_points": self.change_in_points,
            "change_in_percent": self.change_in_percent,
            "min_step": self.min_step,
            "last_trade_exchange": self.last_trade_exchange,
            "name": self.name,
            "last_trade_time": self.last_trade_time,
        }


class Classification(str, Enum):
    """Visual emphasis of a quote row."""

    STANDARD = "standard"
    POSITIVE = "positive"
    NEGATIVE = "negative"
    POSITIVE_FLASH = "positive_flash"
    NEGATIVE_FLASH = "negative_flash"

    @classmethod
    def from_change(cls, change_in_percent: float) -> Classification:
        """Steady classification from the sign of the percent change."""
        if change_in_percent > 0:
            return cls.POSITIVE
        if change_in_percent < 0:
            return cls.NEGATIVE
        return cls.STANDARD

    @property
    def is_flash(self) -> bool:
        return self in (Classification.POSITIVE_FLASH, Classification.NEGATIVE_FLASH)

    def settled(self) -> Classification:
        """Steady equivalent of a flash classification."""
        if self is Classification.POSITIVE_FLASH:
            return Classification.POSITIVE
        if self is Classification.NEGATIVE_FLASH:
            return Classification.NEGATIVE
        return self


@dataclass(slots=True)
class DisplayEntry:
    """Per-ticker display state owned by the QuoteStore."""

    quote: QuoteRecord
    classification: Classification
    index: int
    pending_decay: bool = False
    logo: bytes | None = field(default=None, repr=False)

    @property
    def ticker(self) -> str:
        return self.quote.ticker

    def to_dict(self) -> dict:
        data = self.quote.to_dict()
        data["classification"] = self.classification.value
        data["index"] = self.index
        data["has_logo"] = self.logo is not None
        return data


class ChangeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """Notification emitted by the store for every new or changed entry.

    ``classification`` is captured when the event is emitted; ``entry`` is the
    live object and may have moved on by the time a consumer reads it.
    """

    kind: ChangeKind
    entry: DisplayEntry
    classification: Classification
    version: int

    @property
    def ticker(self) -> str:
        return self.entry.ticker

    def to_dict(self) -> dict:
        data = self.entry.to_dict()
        data["classification"] = self.classification.value
        data["event"] = self.kind.value
        data["version"] = self.version
        return data
