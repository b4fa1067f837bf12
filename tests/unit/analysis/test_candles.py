"""Tests for fxsignals.analysis.candles."""

from __future__ import annotations

import random

import pytest

from fxsignals.analysis.candles import (
    aggregate_to_candles,
    filter_weekend_candles,
    get_candles_in_range,
    is_weekend_flat_candle,
)
from fxsignals.models.candle import Candle, RateSample

MONDAY = 1704672000  # 2024-01-08 00:00 UTC
HOUR = 3600
DAY = 24 * HOUR
SATURDAY = MONDAY + 5 * DAY
SUNDAY = MONDAY + 6 * DAY


def _samples(start: int, rates: list[float], pair_id: int = 1) -> list[RateSample]:
    return [RateSample(pair_id, r, start + 30 + 60 * k) for k, r in enumerate(rates)]


def _flat(ts: int, price: float = 1.1) -> Candle:
    return Candle(ts, price, price, price, price)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class TestAggregateToCandles:
    def test_empty(self) -> None:
        assert aggregate_to_candles([], now=MONDAY) == []

    @pytest.mark.parametrize(("fetch_interval", "bucket_hours"), [(0, 1), (60, 0), (-5, 1)])
    def test_unusable_settings_yield_nothing(self, fetch_interval: int, bucket_hours: int) -> None:
        rates = [1.10] * 60
        candles = aggregate_to_candles(
            _samples(MONDAY, rates), fetch_interval=fetch_interval, bucket_hours=bucket_hours, now=MONDAY + DAY
        )
        assert candles == []

    def test_single_full_bucket(self) -> None:
        rates = [1.10, 1.12, 1.08] + [1.11] * 57
        candles = aggregate_to_candles(_samples(MONDAY, rates), now=MONDAY + DAY)
        assert candles == [Candle(MONDAY, 1.10, 1.12, 1.08, 1.11)]

    def test_bucket_aligned_to_hour(self) -> None:
        samples = [RateSample(1, 1.1, MONDAY + 1800 + 30 * k) for k in range(60)]
        candles = aggregate_to_candles(samples, now=MONDAY + DAY)
        assert [c.timestamp for c in candles] == [MONDAY]

    def test_fill_ratio_boundary(self) -> None:
        # 60 expected samples per hour, 80% of them needed
        assert aggregate_to_candles(_samples(MONDAY, [1.1] * 47), now=MONDAY + DAY) == []
        assert len(aggregate_to_candles(_samples(MONDAY, [1.1] * 48), now=MONDAY + DAY)) == 1

    def test_open_bucket_dropped(self) -> None:
        samples = _samples(MONDAY, [1.1] * 60)
        assert aggregate_to_candles(samples, now=MONDAY + HOUR - 1) == []
        assert len(aggregate_to_candles(samples, now=MONDAY + HOUR)) == 1

    def test_gap_skipped(self) -> None:
        samples = _samples(MONDAY, [1.1] * 60) + _samples(MONDAY + 3 * HOUR, [1.2] * 60)
        candles = aggregate_to_candles(samples, now=MONDAY + DAY)
        assert [c.timestamp for c in candles] == [MONDAY, MONDAY + 3 * HOUR]
        assert candles[1].close == 1.2

    def test_two_hour_buckets(self) -> None:
        samples = _samples(MONDAY, [1.1] * 120)
        candles = aggregate_to_candles(samples, bucket_hours=2, now=MONDAY + DAY)
        assert [c.timestamp for c in candles] == [MONDAY]

    def test_ohlc_invariant_holds(self) -> None:
        rng = random.Random(7)
        rates = []
        price = 1.1
        for _ in range(60 * 24):
            price *= 1 + rng.uniform(-0.0005, 0.0005)
            rates.append(price)
        candles = aggregate_to_candles(_samples(MONDAY, rates), now=MONDAY + 2 * DAY)

        assert len(candles) == 24
        for c in candles:
            assert c.low <= c.open <= c.high
            assert c.low <= c.close <= c.high


# ---------------------------------------------------------------------------
# Weekend filter
# ---------------------------------------------------------------------------


class TestWeekendFilter:
    def test_flat_saturday_0200_dropped(self) -> None:
        assert is_weekend_flat_candle(_flat(SATURDAY + 2 * HOUR))

    def test_moving_saturday_0200_kept(self) -> None:
        candle = Candle(SATURDAY + 2 * HOUR, 1.1, 1.1001, 1.1, 1.1)
        assert not is_weekend_flat_candle(candle)

    @pytest.mark.parametrize(
        "ts",
        [
            SATURDAY,  # Saturday 00:00, before the close
            MONDAY + 4 * DAY + 22 * HOUR,  # Friday 22:00
            MONDAY + 7 * DAY,  # next Monday 00:00
        ],
    )
    def test_flat_outside_window_kept(self, ts: int) -> None:
        assert not is_weekend_flat_candle(_flat(ts))

    @pytest.mark.parametrize("ts", [SATURDAY + HOUR, SUNDAY, SUNDAY + 23 * HOUR])
    def test_window_edges_inclusive(self, ts: int) -> None:
        assert is_weekend_flat_candle(_flat(ts))

    def test_filter_keeps_order(self) -> None:
        candles = [
            _flat(SATURDAY),
            _flat(SATURDAY + 2 * HOUR),
            Candle(SATURDAY + 3 * HOUR, 1.1, 1.2, 1.0, 1.1),
        ]
        assert filter_weekend_candles(candles) == [candles[0], candles[2]]


# ---------------------------------------------------------------------------
# Repository read
# ---------------------------------------------------------------------------


class TestGetCandlesInRange:
    def test_reads_and_filters(self, rate_repo) -> None:
        rate_repo.save_rates(_samples(MONDAY, [1.1] * 60))
        rate_repo.save_rates(_samples(SATURDAY + 2 * HOUR, [1.1] * 60))
        rate_repo.save_rates(_samples(MONDAY, [9.9] * 60, pair_id=2))

        candles = get_candles_in_range(rate_repo, 1, MONDAY, SUNDAY, now=SUNDAY)
        assert [c.timestamp for c in candles] == [MONDAY]

    def test_range_restricts_samples(self, rate_repo) -> None:
        rate_repo.save_rates(_samples(MONDAY, [1.1] * 60))
        rate_repo.save_rates(_samples(MONDAY + HOUR, [1.2] * 60))

        candles = get_candles_in_range(rate_repo, 1, MONDAY + HOUR, MONDAY + 2 * HOUR, now=SUNDAY)
        assert [c.close for c in candles] == [1.2]
