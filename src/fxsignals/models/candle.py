"""Rate sample and OHLC candle data models.

A :class:`RateSample` is one quote pulled from the rate provider; a
:class:`Candle` summarises the samples of one fixed-width time bucket.
Both are immutable so they can be safely shared between the trend and
consolidation passes of the same cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True, slots=True)
class RateSample:
    """A single exchange-rate quote.

    Parameters
    ----------
    pair_id:
        Id of the currency pair in the pair registry.
    rate:
        Quoted price of the target currency in units of the base.
    timestamp:
        Quote time as a Unix epoch in **seconds** (UTC).
    """

    pair_id: int
    rate: float
    timestamp: float

    def to_dict(self) -> dict[str, object]:
        return {"pair_id": self.pair_id, "rate": self.rate, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> RateSample:
        return cls(
            pair_id=int(str(data["pair_id"])),
            rate=float(str(data["rate"])),
            timestamp=float(str(data["timestamp"])),
        )


@dataclass(frozen=True, slots=True)
class Candle:
    """A single OHLC bar.

    Parameters
    ----------
    timestamp:
        Bucket start as a Unix epoch in **seconds** (UTC).
    open, high, low, close:
        Price values for the bar.
    """

    timestamp: int
    open: float
    high: float
    low: float
    close: float

    # -- derived properties ---------------------------------------------------

    @property
    def dt(self) -> datetime:
        """Bucket start as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    @property
    def range_pct(self) -> float:
        """Total bar range as a percentage of the low.

        Returns ``0.0`` if *low* is zero.
        """
        if self.low == 0.0:
            return 0.0
        return (self.high - self.low) / self.low * 100.0

    @property
    def is_flat(self) -> bool:
        """``True`` when open, high, low and close are all the same price."""
        return self.high == self.low and self.open == self.close == self.high

    # -- validation -----------------------------------------------------------

    def validate(self) -> list[str]:
        """Return a list of validation errors (empty means valid)."""
        errors: list[str] = []
        if self.timestamp < 0:
            errors.append(f"timestamp={self.timestamp} must be >= 0.")
        if self.low < 0:
            errors.append(f"low={self.low} must be >= 0.")
        if self.high < self.low:
            errors.append(f"high={self.high} must be >= low={self.low}.")
        if not self.low <= self.open <= self.high:
            errors.append(f"open={self.open} outside [{self.low}, {self.high}].")
        if not self.low <= self.close <= self.high:
            errors.append(f"close={self.close} outside [{self.low}, {self.high}].")
        return errors
