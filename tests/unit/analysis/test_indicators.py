"""Tests for fxsignals.analysis.indicators."""

from __future__ import annotations

import pytest

from fxsignals.analysis.indicators import (
    adx,
    analyze_trend_strength,
    ema_series,
    latest_ema,
    zigzag_pivots,
)
from fxsignals.models.candle import Candle


class TestEma:
    def test_not_computable(self) -> None:
        assert ema_series([1.0, 2.0], 3) is None
        assert ema_series([1.0, 2.0], 0) is None
        assert latest_ema([], 1) is None

    def test_values(self) -> None:
        series = ema_series([1.0, 2.0, 3.0], 2)
        assert series == [pytest.approx(5 / 3), pytest.approx(23 / 9)]

    def test_length(self) -> None:
        assert len(ema_series([1.0] * 10, 4)) == 7

    def test_constant_prices(self) -> None:
        assert latest_ema([1.25] * 30, 10) == pytest.approx(1.25)

    def test_period_one_tracks_price(self) -> None:
        assert ema_series([1.0, 4.0, 2.0], 1) == [1.0, 4.0, 2.0]


class TestAdx:
    def test_needs_two_periods(self, make_trend) -> None:
        assert adx(make_trend(count=27), 14) is None
        assert adx(make_trend(count=28), 14) is not None

    def test_steady_trend_is_maximal(self, make_trend) -> None:
        assert adx(make_trend(count=40)) == pytest.approx(100.0)

    def test_down_trend_is_also_strong(self, make_trend) -> None:
        assert adx(make_trend(count=40, step=-0.002)) == pytest.approx(100.0)

    def test_flat_market_is_zero_not_none(self) -> None:
        candles = [Candle(i * 3600, 1.1, 1.1, 1.1, 1.1) for i in range(30)]
        assert adx(candles) == 0.0

    def test_range_market_below_threshold(self, make_band) -> None:
        candles = make_band(band=40, breakout=0)
        value = adx(candles)
        assert value is not None
        assert value < 25.0


class TestZigzag:
    def test_reversals(self) -> None:
        assert zigzag_pivots([1.0, 1.1, 1.0, 1.1], 5.0) == [(0, 1.0), (1, 1.1), (2, 1.0)]

    def test_small_moves_ignored(self) -> None:
        assert zigzag_pivots([1.0, 1.01, 1.0, 1.02, 1.0], 5.0) == []

    def test_extreme_tracked_until_reversal(self) -> None:
        pivots = zigzag_pivots([1.0, 1.06, 1.1, 1.08, 1.0], 5.0)
        assert pivots == [(0, 1.0), (2, 1.1)]

    def test_degenerate_input(self) -> None:
        assert zigzag_pivots([1.0], 5.0) == []
        assert zigzag_pivots([1.0, 2.0], 0.0) == []


class TestTrendStrength:
    def test_too_few_candles(self, make_trend) -> None:
        result = analyze_trend_strength(make_trend(count=19))
        assert result.direction == "SIDEWAYS"
        assert result.periods == 0

    def test_up(self, make_trend) -> None:
        result = analyze_trend_strength(make_trend(count=40, step=0.002))
        assert result.direction == "UP"
        assert result.strength == pytest.approx((1.002**39 - 1) * 100.0)
        assert result.max_pullback == pytest.approx(0.0)
        assert result.periods == 40

    def test_down(self, make_trend) -> None:
        result = analyze_trend_strength(make_trend(count=40, step=-0.002))
        assert result.direction == "DOWN"
        assert result.max_pullback == pytest.approx(0.0)

    def test_sideways_band(self, make_band) -> None:
        result = analyze_trend_strength(make_band(band=20, breakout=0))
        assert result.direction == "SIDEWAYS"
        assert result.strength < 1.0

    def test_pullback_measured_from_peak(self) -> None:
        closes = [1.0] * 10 + [1.1, 1.045] + [1.1] * 8
        candles = [Candle(i * 3600, c, c, c, c) for i, c in enumerate(closes)]
        result = analyze_trend_strength(candles)
        assert result.direction == "UP"
        assert result.max_pullback == pytest.approx(5.0)
