"""Trade opportunity and strategy records.

An :class:`Opportunity` is a derived artifact of a
:class:`~fxsignals.models.consolidation.Consolidation`: it exists only when a
breakout agrees with the pair's trend and the strategy that produces it is
switched on.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from fxsignals.core.constants import SIGNAL_TYPES
from fxsignals.models.types import PairId, SignalType


@dataclass(frozen=True, slots=True)
class Strategy:
    """A named signal strategy that can be toggled on and off."""

    id: int
    name: str
    active: bool = True
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "active": self.active,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Strategy:
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            active=bool(data.get("active", True)),
            description=str(data.get("description", "") or ""),
        )


@dataclass(frozen=True, slots=True)
class Opportunity:
    """A trade idea produced from a consolidation breakout.

    Parameters
    ----------
    pair_id, strategy_id:
        Owning pair and strategy.
    consolidation_id:
        Consolidation that produced this opportunity (``None`` in replay
        results, where nothing is persisted).
    signal_type:
        ``"BUY"`` for upside breakouts, ``"SELL"`` for downside ones.
    entry_rate, stop_loss_rate, take_profit_rate:
        Suggested prices.
    details:
        Human-readable summary shown to subscribers.
    timestamp:
        Epoch seconds when the opportunity was created.
    evaluation:
        ``1`` win, ``0`` loss, ``None`` while pending.  Set outside the core.
    """

    pair_id: PairId
    strategy_id: int
    signal_type: SignalType
    entry_rate: float
    stop_loss_rate: float
    take_profit_rate: float
    details: str = ""
    timestamp: float = 0.0
    consolidation_id: int | None = None
    evaluation: int | None = None
    evaluation_at: float | None = None
    evaluation_price: float | None = None
    pnl_amount: float | None = None
    id: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.evaluation is None

    @property
    def risk(self) -> float:
        """Absolute distance between entry and stop loss."""
        return abs(self.entry_rate - self.stop_loss_rate)

    @property
    def reward_risk(self) -> float:
        """Take-profit distance divided by stop-loss distance (``0.0`` if no risk)."""
        if self.risk == 0.0:
            return 0.0
        return abs(self.take_profit_rate - self.entry_rate) / self.risk

    def with_id(self, new_id: int) -> Opportunity:
        return replace(self, id=new_id)

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.signal_type not in SIGNAL_TYPES:
            errors.append(f"signal_type={self.signal_type!r} must be BUY or SELL.")
        if self.signal_type == "BUY" and not (
            self.stop_loss_rate < self.entry_rate < self.take_profit_rate
        ):
            errors.append("BUY needs stop_loss < entry < take_profit.")
        if self.signal_type == "SELL" and not (
            self.take_profit_rate < self.entry_rate < self.stop_loss_rate
        ):
            errors.append("SELL needs take_profit < entry < stop_loss.")
        if self.evaluation not in (None, 0, 1):
            errors.append(f"evaluation={self.evaluation} must be 0, 1 or None.")
        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pair_id": self.pair_id,
            "strategy_id": self.strategy_id,
            "consolidation_id": self.consolidation_id,
            "signal_type": self.signal_type,
            "entry_rate": self.entry_rate,
            "stop_loss_rate": self.stop_loss_rate,
            "take_profit_rate": self.take_profit_rate,
            "details": self.details,
            "timestamp": self.timestamp,
            "evaluation": self.evaluation,
            "evaluation_at": self.evaluation_at,
            "evaluation_price": self.evaluation_price,
            "pnl_amount": self.pnl_amount,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Opportunity:
        def _opt(key: str) -> float | None:
            value = data.get(key)
            return float(value) if value is not None else None

        raw_id = data.get("id")
        cons_id = data.get("consolidation_id")
        evaluation = data.get("evaluation")
        return cls(
            id=int(raw_id) if raw_id is not None else None,
            pair_id=int(data["pair_id"]),
            strategy_id=int(data["strategy_id"]),
            consolidation_id=int(cons_id) if cons_id is not None else None,
            signal_type=str(data["signal_type"]).upper(),
            entry_rate=float(data["entry_rate"]),
            stop_loss_rate=float(data["stop_loss_rate"]),
            take_profit_rate=float(data["take_profit_rate"]),
            details=str(data.get("details", "") or ""),
            timestamp=float(data.get("timestamp", 0.0)),
            evaluation=int(evaluation) if evaluation is not None else None,
            evaluation_at=_opt("evaluation_at"),
            evaluation_price=_opt("evaluation_price"),
            pnl_amount=_opt("pnl_amount"),
        )
