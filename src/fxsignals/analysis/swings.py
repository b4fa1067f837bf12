"""Swing points and support/resistance levels.

Swing highs and lows are grouped into price levels; levels are scored by
how many swings formed them, how often price touched them, and how recently.
The zig-zag method is preferred for significant levels; when there is not
enough history or not enough reversals the recent-swing method is used
instead.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from fxsignals.analysis.indicators import zigzag_pivots
from fxsignals.core.constants import (
    DEFAULT_SWING_LOOKBACK,
    FALLBACK_SWING_LOOKBACK,
    FALLBACK_WINDOW_CANDLES,
    LEVEL_GROUP_TOLERANCE,
    LEVEL_TOUCH_TOLERANCE,
    MAX_SIGNIFICANT_LEVELS,
    MIN_FALLBACK_CANDLES,
    MIN_ZIGZAG_CANDLES,
    MIN_ZIGZAG_POINTS,
    RECENCY_BONUS,
    RECENCY_WINDOW_RATIO,
    SWING_HIGH,
    SWING_LOW,
    UP,
    ZIGZAG_DEVIATION_PERCENT,
)
from fxsignals.models.candle import Candle
from fxsignals.models.levels import (
    ConsolidationBounds,
    LevelGroup,
    SignificantLevel,
    SupportResistance,
    SwingPoint,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Swing points
# ---------------------------------------------------------------------------


def find_swing_highs(
    candles: Sequence[Candle], lookback: int = DEFAULT_SWING_LOOKBACK
) -> list[SwingPoint]:
    """Candles whose high strictly exceeds every high within *lookback* on both sides.

    The first and last *lookback* candles are never swing points.
    """
    points: list[SwingPoint] = []
    for i in range(lookback, len(candles) - lookback):
        high = candles[i].high
        if all(
            high > candles[i - j].high and high > candles[i + j].high
            for j in range(1, lookback + 1)
        ):
            points.append(SwingPoint(high, i, SWING_HIGH, candles[i].timestamp))
    return points


def find_swing_lows(
    candles: Sequence[Candle], lookback: int = DEFAULT_SWING_LOOKBACK
) -> list[SwingPoint]:
    """Mirror of :func:`find_swing_highs` on candle lows."""
    points: list[SwingPoint] = []
    for i in range(lookback, len(candles) - lookback):
        low = candles[i].low
        if all(
            low < candles[i - j].low and low < candles[i + j].low
            for j in range(1, lookback + 1)
        ):
            points.append(SwingPoint(low, i, SWING_LOW, candles[i].timestamp))
    return points


def has_swing_structure(candles: Sequence[Candle], direction: str) -> bool:
    """``True`` if the candles show a run of three higher highs and higher lows.

    For ``"DOWN"`` the run must be three lower highs and lower lows.  The
    high and low runs are measured independently.  Needs at least five
    candles.
    """
    if len(candles) < 5:
        return False

    sign = 1 if direction == UP else -1
    run_hi = run_lo = best_hi = best_lo = 0
    for prev, cur in zip(candles, candles[1:]):
        if (cur.high - prev.high) * sign > 0:
            run_hi += 1
            best_hi = max(best_hi, run_hi)
        else:
            run_hi = 0
        if (cur.low - prev.low) * sign > 0:
            run_lo += 1
            best_lo = max(best_lo, run_lo)
        else:
            run_lo = 0
    return best_hi >= 3 and best_lo >= 3


# ---------------------------------------------------------------------------
# Level grouping and touches
# ---------------------------------------------------------------------------


def group_similar_levels(
    prices: Sequence[float], tolerance: float = LEVEL_GROUP_TOLERANCE
) -> list[LevelGroup]:
    """Cluster *prices* around running means.

    Each price joins the first group whose current mean is within
    ``mean * tolerance``; otherwise it starts a new group.  Groups are
    returned most-populated first (ties keep creation order).
    """
    members: list[list[float]] = []
    means: list[float] = []
    for price in prices:
        for g, mean in enumerate(means):
            if abs(price - mean) <= mean * tolerance:
                members[g].append(price)
                means[g] = sum(members[g]) / len(members[g])
                break
        else:
            members.append([price])
            means.append(price)

    groups = [LevelGroup(level=m, count=len(vals)) for m, vals in zip(means, members)]
    groups.sort(key=lambda g: g.count, reverse=True)
    return groups


def is_touch(candle: Candle, level: float, tolerance: float = LEVEL_TOUCH_TOLERANCE) -> bool:
    band = level * tolerance
    return (
        abs(candle.high - level) <= band
        or abs(candle.low - level) <= band
        or abs(candle.close - level) <= band
    )


def count_touches(
    level: float, candles: Sequence[Candle], tolerance: float = LEVEL_TOUCH_TOLERANCE
) -> int:
    """Number of candles whose high, low or close lies within ``level * tolerance``."""
    return sum(1 for c in candles if is_touch(c, level, tolerance))


def find_most_touched_level(
    groups: Sequence[LevelGroup],
    prices: Sequence[float],
    tolerance: float = LEVEL_TOUCH_TOLERANCE,
) -> tuple[float, int] | None:
    """Pick the group with the best ``count * 2 + touches`` score.

    Touches are counted against the flat *prices* list (for example every
    candle high).  Returns ``(level, touches)`` for the winner, or ``None``
    for no groups.
    """
    best: tuple[float, int] | None = None
    best_score = -1
    for group in groups:
        band = group.level * tolerance
        touches = sum(1 for p in prices if abs(p - group.level) <= band)
        score = group.count * 2 + touches
        if score > best_score:
            best_score = score
            best = (group.level, touches)
    return best


def find_support_resistance_levels(
    candles: Sequence[Candle], lookback: int = 3, min_touches: int = 2
) -> SupportResistance | None:
    """Most respected support and resistance from swing clusters.

    Needs at least two swing highs and two swing lows; each winning level
    must have been touched *min_touches* times.
    """
    if len(candles) < lookback * 2 + 1:
        return None

    highs = find_swing_highs(candles, lookback)
    lows = find_swing_lows(candles, lookback)
    if len(highs) < 2 or len(lows) < 2:
        return None

    resistance = find_most_touched_level(
        group_similar_levels([p.price for p in highs]), [c.high for c in candles]
    )
    support = find_most_touched_level(
        group_similar_levels([p.price for p in lows]), [c.low for c in candles]
    )
    if resistance is None or support is None:
        return None
    if resistance[1] < min_touches or support[1] < min_touches:
        return None

    return SupportResistance(
        support=support[0],
        resistance=resistance[0],
        support_touches=support[1],
        resistance_touches=resistance[1],
    )


def detect_consolidation_bounds(
    candles: Sequence[Candle], lookback: int = 3, min_touches: int = 2
) -> ConsolidationBounds | None:
    """Support/resistance bounds with confidence ``min(avg_touches / 8, 1)``."""
    levels = find_support_resistance_levels(candles, lookback, min_touches)
    if levels is None:
        return None
    avg_touches = (levels.support_touches + levels.resistance_touches) / 2
    return ConsolidationBounds(
        support=levels.support,
        resistance=levels.resistance,
        confidence=min(avg_touches / 8, 1.0),
    )


# ---------------------------------------------------------------------------
# Significant levels
# ---------------------------------------------------------------------------


def find_major_significant_levels(
    candles: Sequence[Candle],
    deviation_percent: float = ZIGZAG_DEVIATION_PERCENT,
    max_levels: int = MAX_SIGNIFICANT_LEVELS,
) -> list[SignificantLevel] | None:
    """Significant levels from zig-zag reversals of the closes.

    A reversal counts as a high when its close is strictly above both
    neighbouring closes, and as a low when strictly below both.  Returns
    ``None`` when there are fewer than 50 candles or fewer than 4 classified
    reversals.
    """
    if len(candles) < MIN_ZIGZAG_CANDLES:
        return None

    closes = [c.close for c in candles]
    points: list[SwingPoint] = []
    for idx, price in zigzag_pivots(closes, deviation_percent):
        if idx == 0 or idx == len(closes) - 1:
            continue
        if price > closes[idx - 1] and price > closes[idx + 1]:
            points.append(SwingPoint(price, idx, SWING_HIGH, candles[idx].timestamp))
        elif price < closes[idx - 1] and price < closes[idx + 1]:
            points.append(SwingPoint(price, idx, SWING_LOW, candles[idx].timestamp))

    if len(points) < MIN_ZIGZAG_POINTS:
        return None

    levels: list[SignificantLevel] = []
    for group in group_similar_levels([p.price for p in points])[:max_levels]:
        touches = 0
        last_touch_idx = -1
        for i, candle in enumerate(candles):
            if is_touch(candle, group.level):
                touches += 1
                last_touch_idx = i

        band = group.level * LEVEL_TOUCH_TOLERANCE
        near = [p for p in points if abs(p.price - group.level) <= band]
        n_high = sum(1 for p in near if p.kind == SWING_HIGH)
        swing_type = SWING_HIGH if n_high >= len(near) - n_high else SWING_LOW

        bonus = RECENCY_BONUS if last_touch_idx > len(candles) * RECENCY_WINDOW_RATIO else 0
        touch_idx = last_touch_idx if last_touch_idx >= 0 else len(candles) - 1
        levels.append(
            SignificantLevel(
                level=group.level,
                significance=float(group.count * 2 + touches + bonus),
                last_touch=candles[touch_idx].timestamp,
                swing_type=swing_type,
                index=touch_idx,
            )
        )

    levels.sort(key=lambda lv: lv.significance, reverse=True)
    return levels


def find_alternative_significant_levels(
    candles: Sequence[Candle], max_levels: int = MAX_SIGNIFICANT_LEVELS
) -> list[SignificantLevel]:
    """Significant levels from recent wide swings, newest weighted highest.

    Uses the last 100 candles and lookback-5 swings; significance is
    ``max(1, 10 - age / 10)`` where *age* counts candles from the end.
    """
    if len(candles) < MIN_FALLBACK_CANDLES:
        return []

    recent = list(candles[-FALLBACK_WINDOW_CANDLES:])
    swings = find_swing_highs(recent, FALLBACK_SWING_LOOKBACK) + find_swing_lows(
        recent, FALLBACK_SWING_LOOKBACK
    )
    levels = [
        SignificantLevel(
            level=s.price,
            significance=max(1.0, 10 - (len(recent) - s.index) / 10),
            last_touch=recent[s.index].timestamp,
            swing_type=s.kind,
            index=s.index,
        )
        for s in swings
    ]
    levels.sort(key=lambda lv: lv.significance, reverse=True)
    return levels[:max_levels]


def find_significant_levels(candles: Sequence[Candle]) -> list[SignificantLevel]:
    """Zig-zag levels, falling back to recent swings when unavailable."""
    major = find_major_significant_levels(candles)
    if major:
        return major
    logger.debug("Zig-zag levels unavailable for %d candles, using recent swings", len(candles))
    return find_alternative_significant_levels(candles)

