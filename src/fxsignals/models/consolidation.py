"""Consolidation record.

A :class:`Consolidation` is created exactly once per accepted breakout
candidate.  In this design every record already carries its breakout, since
the engine only reports consolidations that have broken out.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from fxsignals.core.constants import DIRECTIONS
from fxsignals.models.types import Direction, PairId, PriceLevel, Timestamp


@dataclass(frozen=True, slots=True)
class Consolidation:
    """A price range that preceded a directional breakout.

    Parameters
    ----------
    pair_id:
        Pair the consolidation was detected on.
    trend_direction:
        The pair's trend direction when the consolidation was detected.
    start_timestamp:
        Epoch seconds of the first candle of the range.
    end_timestamp:
        Epoch seconds of the breakout candle.
    resistance_level, support_level:
        Upper and lower bound of the range.
    broken_at:
        Epoch seconds of the breakout; ``None`` only for unresolved records
        created outside the engine.
    breakout_direction:
        ``"UP"`` or ``"DOWN"``.
    is_trend_direction:
        ``True`` when the breakout went the same way as the trend.
    id:
        Store-assigned id; ``None`` until persisted (and in replay results).
    created_at:
        Epoch seconds when the record was built.
    """

    pair_id: PairId
    trend_direction: Direction
    start_timestamp: Timestamp
    end_timestamp: Timestamp
    resistance_level: PriceLevel
    support_level: PriceLevel
    broken_at: Timestamp | None = None
    breakout_direction: Direction | None = None
    is_trend_direction: bool = False
    id: int | None = None
    created_at: float = 0.0

    @property
    def duration_hours(self) -> float:
        return (self.end_timestamp - self.start_timestamp) / 3600.0

    @property
    def range_percent(self) -> float:
        if self.support_level == 0.0:
            return 0.0
        return (self.resistance_level - self.support_level) / self.support_level * 100.0

    def covers_breakout(self, breakout_ts: float, tolerance_seconds: float) -> bool:
        """``True`` if this record already accounts for a breakout at *breakout_ts*.

        A record covers the breakout when it started at or before it and
        ended no earlier than *tolerance_seconds* before it.
        """
        return self.start_timestamp <= breakout_ts and (
            self.end_timestamp >= breakout_ts - tolerance_seconds
        )

    def with_id(self, new_id: int) -> Consolidation:
        return replace(self, id=new_id)

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.trend_direction not in DIRECTIONS:
            errors.append(f"trend_direction={self.trend_direction!r} must be UP or DOWN.")
        if self.breakout_direction is not None and self.breakout_direction not in DIRECTIONS:
            errors.append(f"breakout_direction={self.breakout_direction!r} must be UP or DOWN.")
        if self.support_level > self.resistance_level:
            errors.append(
                f"support_level={self.support_level} above resistance_level="
                f"{self.resistance_level}."
            )
        if self.end_timestamp < self.start_timestamp:
            errors.append("end_timestamp precedes start_timestamp.")
        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pair_id": self.pair_id,
            "trend_direction": self.trend_direction,
            "start_timestamp": self.start_timestamp,
            "end_timestamp": self.end_timestamp,
            "resistance_level": self.resistance_level,
            "support_level": self.support_level,
            "broken_at": self.broken_at,
            "breakout_direction": self.breakout_direction,
            "is_trend_direction": self.is_trend_direction,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Consolidation:
        broken_at = data.get("broken_at")
        raw_id = data.get("id")
        return cls(
            id=int(raw_id) if raw_id is not None else None,
            pair_id=int(data["pair_id"]),
            trend_direction=str(data["trend_direction"]),
            start_timestamp=float(data["start_timestamp"]),
            end_timestamp=float(data["end_timestamp"]),
            resistance_level=float(data["resistance_level"]),
            support_level=float(data["support_level"]),
            broken_at=float(broken_at) if broken_at is not None else None,
            breakout_direction=data.get("breakout_direction"),
            is_trend_direction=bool(data.get("is_trend_direction", False)),
            created_at=float(data.get("created_at", 0.0)),
        )
