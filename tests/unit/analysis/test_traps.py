"""Tests for fxsignals.analysis.traps."""

from __future__ import annotations

import pytest

from fxsignals.analysis.traps import (
    analyze_trap_between_levels,
    find_price_traps_between_levels,
    generate_level_pairs,
)
from fxsignals.models.candle import Candle
from fxsignals.models.levels import SignificantLevel


def _level(price: float) -> SignificantLevel:
    return SignificantLevel(level=price, significance=1.0, last_touch=0, swing_type="high")


def _boxed(count: int, low: float = 1.005, high: float = 1.008) -> list[Candle]:
    mid = (low + high) / 2
    return [Candle(i * 3600, mid, high, low, mid) for i in range(count)]


class TestLevelPairs:
    def test_only_close_levels_paired(self) -> None:
        pairs = generate_level_pairs([_level(1.0), _level(1.02), _level(1.2)])
        assert pairs == [(1.02, 1.0)]

    def test_orders_upper_first(self) -> None:
        assert generate_level_pairs([_level(1.01), _level(1.0)]) == [(1.01, 1.0)]


class TestAnalyzeTrap:
    def test_trap_with_upside_breakout(self) -> None:
        candles = _boxed(10) + [Candle(36000, 1.015, 1.031, 1.014, 1.03)]
        trap = analyze_trap_between_levels(candles, upper=1.02, lower=1.0)

        assert trap is not None
        assert (trap.start_index, trap.end_index, trap.duration) == (0, 9, 10)
        assert trap.breakout_direction == "UP"
        assert trap.breakout_strength == pytest.approx((1.03 - 1.02) / 1.02 * 100.0)
        assert trap.quality > 0

    def test_no_breakout(self) -> None:
        trap = analyze_trap_between_levels(_boxed(8), upper=1.02, lower=1.0)
        assert trap is not None
        assert trap.breakout_direction is None
        assert trap.breakout_strength == 0.0

    def test_too_short(self) -> None:
        assert analyze_trap_between_levels(_boxed(5), upper=1.02, lower=1.0) is None

    def test_too_volatile_inside(self) -> None:
        candles = _boxed(10, low=1.0, high=1.02)
        assert analyze_trap_between_levels(candles, upper=1.02, lower=1.0) is None

    def test_degenerate_levels(self) -> None:
        assert analyze_trap_between_levels(_boxed(10), upper=1.0, lower=1.0) is None


class TestFindTraps:
    def test_needs_two_levels(self) -> None:
        assert find_price_traps_between_levels(_boxed(10), [_level(1.0)]) == []

    def test_sorted_by_quality(self) -> None:
        levels = [_level(1.0), _level(1.01), _level(1.02)]
        traps = find_price_traps_between_levels(_boxed(10), levels)
        assert traps
        assert traps == sorted(traps, key=lambda t: t.quality, reverse=True)
