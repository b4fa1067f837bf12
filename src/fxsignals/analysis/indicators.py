"""Technical indicators on plain float lists.

EMA and ADX follow the usual streaming conventions: an EMA is seeded with
the first price and becomes usable once *period* prices have been seen; ADX
uses Wilder smoothing and needs ``2 * period`` candles.  Indicators that
cannot be computed return ``None`` so callers can tell "no value" apart from
a genuine zero.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from fxsignals.models.candle import Candle

logger = logging.getLogger(__name__)


def ema_series(prices: Sequence[float], period: int) -> list[float] | None:
    """Return the stable EMA values of *prices*.

    The EMA is seeded with the first price and smoothed with
    ``k = 2 / (period + 1)``.  Values are reported from the *period*-th
    price onwards, so the result has ``len(prices) - period + 1`` entries.

    Returns ``None`` when *period* is not positive or there are fewer than
    *period* prices.
    """
    if period < 1 or len(prices) < period:
        return None

    k = 2.0 / (period + 1)
    value = float(prices[0])
    out: list[float] = []
    for count, price in enumerate(prices, start=1):
        if count > 1:
            value = (float(price) - value) * k + value
        if count >= period:
            out.append(value)
    return out


def latest_ema(prices: Sequence[float], period: int) -> float | None:
    """Last stable EMA value, or ``None``."""
    series = ema_series(prices, period)
    return series[-1] if series else None


def adx(candles: Sequence[Candle], period: int = 14) -> float | None:
    """Average Directional Index over *period* using Wilder smoothing.

    Returns ``None`` if there are fewer than ``2 * period`` candles.
    """
    if period < 1 or len(candles) < 2 * period:
        return None

    trs: list[float] = []
    plus_dms: list[float] = []
    minus_dms: list[float] = []
    for prev, cur in zip(candles, candles[1:]):
        up_move = cur.high - prev.high
        down_move = prev.low - cur.low
        plus_dms.append(up_move if up_move > down_move and up_move > 0 else 0.0)
        minus_dms.append(down_move if down_move > up_move and down_move > 0 else 0.0)
        trs.append(
            max(cur.high - cur.low, abs(cur.high - prev.close), abs(cur.low - prev.close))
        )

    sm_tr = _wilder(trs, period)
    sm_plus = _wilder(plus_dms, period)
    sm_minus = _wilder(minus_dms, period)

    dxs: list[float] = []
    for tr, p, m in zip(sm_tr, sm_plus, sm_minus):
        if tr == 0.0:
            dxs.append(0.0)
            continue
        plus_di = 100.0 * p / tr
        minus_di = 100.0 * m / tr
        di_sum = plus_di + minus_di
        dxs.append(0.0 if di_sum == 0.0 else 100.0 * abs(plus_di - minus_di) / di_sum)

    adx_values = _wilder(dxs, period)
    return adx_values[-1] if adx_values else None


def zigzag_pivots(values: Sequence[float], deviation_percent: float) -> list[tuple[int, float]]:
    """Confirmed zig-zag reversal points of *values*.

    A swing extreme is confirmed once price has moved *deviation_percent*
    away from it in the opposite direction.  The final, still-forming
    extreme is not included.

    Returns ``[(index, value), ...]`` in index order.
    """
    if len(values) < 2 or deviation_percent <= 0:
        return []

    dev = deviation_percent / 100.0
    pivots: list[tuple[int, float]] = []
    trend = 0  # 1 rising, -1 falling, 0 undecided
    hi_idx = lo_idx = ext_idx = 0

    for i, v in enumerate(values):
        if trend == 0:
            if v > values[hi_idx]:
                hi_idx = i
            if v < values[lo_idx]:
                lo_idx = i
            if v >= values[lo_idx] * (1 + dev) and lo_idx < i:
                pivots.append((lo_idx, values[lo_idx]))
                trend, ext_idx = 1, i
            elif v <= values[hi_idx] * (1 - dev) and hi_idx < i:
                pivots.append((hi_idx, values[hi_idx]))
                trend, ext_idx = -1, i
        elif trend == 1:
            if v > values[ext_idx]:
                ext_idx = i
            elif v <= values[ext_idx] * (1 - dev):
                pivots.append((ext_idx, values[ext_idx]))
                trend, ext_idx = -1, i
        else:
            if v < values[ext_idx]:
                ext_idx = i
            elif v >= values[ext_idx] * (1 + dev):
                pivots.append((ext_idx, values[ext_idx]))
                trend, ext_idx = 1, i

    return pivots


@dataclass(frozen=True)
class TrendStrength:
    """Net move summary over a candle list."""

    direction: str  # "UP", "DOWN" or "SIDEWAYS"
    strength: float  # absolute percent change
    periods: int
    max_pullback: float  # largest counter-move in percent


def analyze_trend_strength(candles: Sequence[Candle]) -> TrendStrength:
    """Classify the net close-to-close move and its worst pullback.

    Moves under 1% are ``"SIDEWAYS"``.  Fewer than 20 candles yields a
    zeroed sideways result.
    """
    if len(candles) < 20:
        return TrendStrength("SIDEWAYS", 0.0, 0, 0.0)

    closes = [c.close for c in candles]
    first, last = closes[0], closes[-1]
    total_change = (last - first) / first * 100.0 if first else 0.0

    max_pullback = 0.0
    peak = trough = first
    for price in closes:
        if total_change > 0:
            peak = max(peak, price)
            if peak:
                max_pullback = max(max_pullback, (peak - price) / peak * 100.0)
        else:
            trough = min(trough, price)
            if trough:
                max_pullback = max(max_pullback, (price - trough) / trough * 100.0)

    strength = abs(total_change)
    if strength < 1.0:
        direction = "SIDEWAYS"
    elif total_change > 0:
        direction = "UP"
    else:
        direction = "DOWN"
    return TrendStrength(direction, strength, len(candles), max_pullback)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _wilder(values: Sequence[float], period: int) -> list[float]:
    """Wilder's smoothed moving average, seeded with the simple mean."""
    if len(values) < period:
        return []
    current = sum(values[:period]) / period
    out = [current]
    for v in values[period:]:
        current = (current * (period - 1) + v) / period
        out.append(current)
    return out
