"""Currency pair and persisted trend state.

The trend classifier is the only writer of :class:`TrendState`; the
consolidation engine receives the :class:`Pair` value (state included) as an
argument instead of reading shared mutable state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from fxsignals.core.constants import DIRECTIONS
from fxsignals.core.symbols import to_pair_symbol


@dataclass(frozen=True, slots=True)
class TrendState:
    """Last trend verdict stored for a pair.

    Parameters
    ----------
    is_trending:
        Whether the pair was trending at the last check.
    direction:
        ``"UP"`` / ``"DOWN"`` while trending, ``None`` otherwise.
    strength:
        ADX value while trending, ``None`` otherwise.
    detected_at:
        Epoch seconds of the check that produced a trending verdict.
    last_checked_at:
        Epoch seconds of the most recent check, trending or not.
    """

    is_trending: bool = False
    direction: str | None = None
    strength: float | None = None
    detected_at: float | None = None
    last_checked_at: float | None = None

    @property
    def is_actionable(self) -> bool:
        """``True`` when the pair is trending in a known direction."""
        return self.is_trending and self.direction in DIRECTIONS

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.direction is not None and self.direction not in DIRECTIONS:
            errors.append(f"direction={self.direction!r} must be UP, DOWN or None.")
        if self.is_trending and self.direction is None:
            errors.append("a trending state needs a direction.")
        if not self.is_trending and (self.direction is not None or self.strength is not None):
            errors.append("a non-trending state must clear direction and strength.")
        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_trending": self.is_trending,
            "direction": self.direction,
            "strength": self.strength,
            "detected_at": self.detected_at,
            "last_checked_at": self.last_checked_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrendState:
        direction = data.get("direction")
        return cls(
            is_trending=bool(data.get("is_trending", False)),
            direction=str(direction).upper() if direction else None,
            strength=_opt_float(data.get("strength")),
            detected_at=_opt_float(data.get("detected_at")),
            last_checked_at=_opt_float(data.get("last_checked_at")),
        )


@dataclass(frozen=True, slots=True)
class Pair:
    """A tracked currency pair, e.g. ``EUR/USD``.

    Parameters
    ----------
    id:
        Registry id.
    base_code:
        Base currency ISO code (``"EUR"``).
    target_code:
        Quote currency ISO code (``"USD"``).
    active:
        Inactive pairs are neither fetched nor analysed.
    trend:
        Last stored :class:`TrendState`.
    """

    id: int
    base_code: str
    target_code: str
    active: bool = True
    trend: TrendState = field(default_factory=TrendState)

    @property
    def symbol(self) -> str:
        """``"EUR/USD"``."""
        return to_pair_symbol(self.base_code, self.target_code)

    @property
    def is_trending(self) -> bool:
        return self.trend.is_actionable

    @property
    def trend_direction(self) -> str | None:
        return self.trend.direction if self.trend.is_trending else None

    def with_trend(self, state: TrendState) -> Pair:
        """Return a copy of this pair carrying *state*."""
        return replace(self, trend=state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "base_code": self.base_code,
            "target_code": self.target_code,
            "active": self.active,
            "trend": self.trend.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pair:
        trend_raw = data.get("trend")
        return cls(
            id=int(data["id"]),
            base_code=str(data["base_code"]).upper().strip(),
            target_code=str(data["target_code"]).upper().strip(),
            active=bool(data.get("active", True)),
            trend=TrendState.from_dict(trend_raw) if isinstance(trend_raw, dict) else TrendState(),
        )


def _opt_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
