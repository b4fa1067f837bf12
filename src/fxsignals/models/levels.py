"""Swing points, support/resistance levels and price traps.

These are ephemeral analysis results; nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass

from fxsignals.models.types import SwingKind


@dataclass(frozen=True, slots=True)
class SwingPoint:
    """A local extreme in a candle list.

    Parameters
    ----------
    price:
        The candle high (for ``"high"``) or low (for ``"low"``).
    index:
        Position in the source candle list.
    kind:
        ``"high"`` or ``"low"``.
    timestamp:
        Candle timestamp, when known.
    """

    price: float
    index: int
    kind: SwingKind
    timestamp: int | None = None


@dataclass(frozen=True, slots=True)
class LevelGroup:
    """Prices clustered around a running mean."""

    level: float
    count: int


@dataclass(frozen=True, slots=True)
class SignificantLevel:
    """A price level ranked by how often and how recently it was respected."""

    level: float
    significance: float
    last_touch: int
    swing_type: SwingKind
    index: int | None = None


@dataclass(frozen=True, slots=True)
class SupportResistance:
    """Result of :func:`~fxsignals.analysis.swings.find_support_resistance_levels`."""

    support: float
    resistance: float
    support_touches: int
    resistance_touches: int


@dataclass(frozen=True, slots=True)
class ConsolidationBounds:
    """Support/resistance pair plus a 0-1 confidence from touch counts."""

    support: float
    resistance: float
    confidence: float


@dataclass(frozen=True, slots=True)
class PriceTrap:
    """A stretch of candles trapped between two significant levels.

    Parameters
    ----------
    upper_level, lower_level:
        Bounding levels.
    start_index, end_index:
        Inclusive candle index range of the longest in-zone run.
    duration:
        ``end_index - start_index + 1``.
    breakout_direction:
        ``"UP"``, ``"DOWN"`` or ``None`` if price had not left the zone
        within the look-ahead.
    breakout_strength:
        Percent distance of the breakout close beyond the level.
    quality:
        Composite ranking score; higher is better.
    """

    upper_level: float
    lower_level: float
    start_index: int
    end_index: int
    duration: int
    breakout_direction: str | None
    breakout_strength: float
    quality: float

    @property
    def level_distance_percent(self) -> float:
        if self.lower_level == 0.0:
            return 0.0
        return (self.upper_level - self.lower_level) / self.lower_level * 100.0
