"""Price-trap diagnostics.

A price trap is a stretch of candles boxed in between two nearby
significant levels, optionally followed by a breakout.  Traps are only used
by the consolidation tool for analysis; they never create records.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from fxsignals.core.constants import (
    DOWN,
    TRAP_BREAKOUT_CANDLES,
    TRAP_LEVEL_TOLERANCE_RATIO,
    TRAP_MAX_INTERNAL_VOLATILITY,
    TRAP_MAX_LEVEL_DISTANCE_PERCENT,
    TRAP_MIN_DURATION_CANDLES,
    UP,
)
from fxsignals.models.candle import Candle
from fxsignals.models.levels import PriceTrap, SignificantLevel

logger = logging.getLogger(__name__)


def generate_level_pairs(
    levels: Sequence[SignificantLevel],
    max_distance_percent: float = TRAP_MAX_LEVEL_DISTANCE_PERCENT,
) -> list[tuple[float, float]]:
    """Every ``(upper, lower)`` level pair no more than *max_distance_percent* apart.

    Distance is measured relative to the midpoint of the two levels.
    """
    pairs: list[tuple[float, float]] = []
    for i, first in enumerate(levels):
        for second in levels[i + 1 :]:
            a, b = first.level, second.level
            mid = (a + b) / 2
            if mid <= 0:
                continue
            if abs(a - b) / mid * 100.0 <= max_distance_percent:
                pairs.append((max(a, b), min(a, b)))
    return pairs


def analyze_trap_between_levels(
    candles: Sequence[Candle],
    upper: float,
    lower: float,
    min_duration: int = TRAP_MIN_DURATION_CANDLES,
) -> PriceTrap | None:
    """Look for the longest run of candles inside ``[lower, upper]``.

    The zone is widened by 5% of the level distance on each side.  The run
    must last at least *min_duration* candles and its average candle range
    must stay within 30% of the zone height.  The five candles after the run
    are checked for a close beyond either level.
    """
    height = upper - lower
    if height <= 0 or not candles:
        return None
    tol = height * TRAP_LEVEL_TOLERANCE_RATIO

    upper_touches = sum(1 for c in candles if _near(c, upper, tol))
    lower_touches = sum(1 for c in candles if _near(c, lower, tol))

    best_start, best_len = -1, 0
    run_start = -1
    for i, c in enumerate(candles):
        if c.low >= lower - tol and c.high <= upper + tol:
            if run_start == -1:
                run_start = i
            length = i - run_start + 1
            if length > best_len:
                best_start, best_len = run_start, length
        else:
            run_start = -1

    if best_len < min_duration:
        return None
    best_end = best_start + best_len - 1

    trapped = candles[best_start : best_end + 1]
    avg_range = sum(c.high - c.low for c in trapped) / len(trapped)
    if avg_range / height > TRAP_MAX_INTERNAL_VOLATILITY:
        logger.debug("Trap %.5f-%.5f rejected: too volatile inside", lower, upper)
        return None

    direction: str | None = None
    strength = 0.0
    for c in candles[best_end + 1 : best_end + 1 + TRAP_BREAKOUT_CANDLES]:
        if c.close > upper:
            direction = UP
            strength = max(strength, (c.close - upper) / upper * 100.0)
        if c.close < lower:
            direction = DOWN
            strength = max(strength, (lower - c.close) / lower * 100.0)

    distance_pct = height / lower * 100.0
    quality = (
        best_len / len(candles) * 100.0
        + distance_pct / 5.0 * 20.0
        + (30.0 if strength > 0 else 0.0)
        + upper_touches * 5
        + lower_touches * 5
    )
    return PriceTrap(
        upper_level=upper,
        lower_level=lower,
        start_index=best_start,
        end_index=best_end,
        duration=best_len,
        breakout_direction=direction,
        breakout_strength=strength,
        quality=quality,
    )


def find_price_traps_between_levels(
    candles: Sequence[Candle],
    levels: Sequence[SignificantLevel],
    max_distance_percent: float = TRAP_MAX_LEVEL_DISTANCE_PERCENT,
    min_duration: int = TRAP_MIN_DURATION_CANDLES,
) -> list[PriceTrap]:
    """All traps between close level pairs, best quality first."""
    if len(candles) < min_duration or len(levels) < 2:
        return []

    traps: list[PriceTrap] = []
    for upper, lower in generate_level_pairs(levels, max_distance_percent):
        trap = analyze_trap_between_levels(candles, upper, lower, min_duration)
        if trap is not None:
            traps.append(trap)
    traps.sort(key=lambda t: t.quality, reverse=True)
    return traps


def _near(candle: Candle, level: float, tol: float) -> bool:
    return (
        abs(candle.high - level) <= tol
        or abs(candle.low - level) <= tol
        or abs(candle.close - level) <= tol
    )
