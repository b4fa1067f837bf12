"""Type aliases shared by the forex models.

The literals mirror ``DIRECTIONS`` and ``SIGNAL_TYPES`` in ``core.constants``.
"""

from __future__ import annotations

from typing import Literal, TypeAlias

Direction: TypeAlias = Literal["UP", "DOWN"]

SignalType: TypeAlias = Literal["BUY", "SELL"]

# swing points and significant levels
SwingKind: TypeAlias = Literal["high", "low"]

# epoch seconds, UTC
Timestamp: TypeAlias = float

PriceLevel: TypeAlias = float

PairId: TypeAlias = int
