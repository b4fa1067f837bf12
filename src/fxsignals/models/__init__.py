"""Domain data models for fxsignals.

Re-exports all model classes for convenient imports::

    from fxsignals.models import Candle, Pair, Consolidation, Opportunity
"""

from fxsignals.models.candle import Candle, RateSample
from fxsignals.models.consolidation import Consolidation
from fxsignals.models.levels import (
    ConsolidationBounds,
    LevelGroup,
    PriceTrap,
    SignificantLevel,
    SupportResistance,
    SwingPoint,
)
from fxsignals.models.opportunity import Opportunity, Strategy
from fxsignals.models.pair import Pair, TrendState
from fxsignals.models.types import Direction, PairId, PriceLevel, SignalType, SwingKind, Timestamp

__all__ = [
    "Candle",
    "Consolidation",
    "ConsolidationBounds",
    "Direction",
    "LevelGroup",
    "Opportunity",
    "Pair",
    "PairId",
    "PriceLevel",
    "PriceTrap",
    "RateSample",
    "SignalType",
    "SignificantLevel",
    "Strategy",
    "SupportResistance",
    "SwingKind",
    "SwingPoint",
    "Timestamp",
    "TrendState",
]
