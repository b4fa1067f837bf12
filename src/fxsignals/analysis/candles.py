"""Candle building: raw rate samples to hourly OHLC bars.

Samples are walked into consecutive, hour-aligned buckets.  A bucket only
becomes a candle when it is complete (its end is not after *now*) and holds
enough samples to be trusted; quiet weekend hours where the quote never
moves are then dropped.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Sequence
from datetime import datetime, timezone

from fxsignals.core.constants import (
    DEFAULT_BUCKET_HOURS,
    DEFAULT_FETCH_INTERVAL_SECONDS,
    MIN_BUCKET_FILL_RATIO,
    SECONDS_PER_HOUR,
    WEEKEND_END_HOUR,
    WEEKEND_END_WEEKDAY,
    WEEKEND_START_HOUR,
    WEEKEND_START_WEEKDAY,
)
from fxsignals.core.database import RateRepository
from fxsignals.models.candle import Candle, RateSample

logger = logging.getLogger(__name__)


def aggregate_to_candles(
    samples: Sequence[RateSample],
    fetch_interval: int = DEFAULT_FETCH_INTERVAL_SECONDS,
    bucket_hours: int = DEFAULT_BUCKET_HOURS,
    now: float | None = None,
) -> list[Candle]:
    """Aggregate ordered samples into OHLC candles.

    Parameters
    ----------
    samples:
        Rate samples for one pair, sorted by timestamp ascending.
    fetch_interval:
        Nominal seconds between samples; sets how many samples a full
        bucket should hold.
    bucket_hours:
        Candle width in hours.
    now:
        Reference time in epoch seconds (defaults to the wall clock).
        Buckets ending after *now* are still open and are not emitted.

    Returns
    -------
    list[Candle]
        One candle per sufficiently filled, closed bucket.  Empty buckets
        are skipped, so the result may have gaps.
    """
    if not samples:
        return []
    if fetch_interval <= 0 or bucket_hours <= 0:
        logger.warning(
            "Cannot build candles with fetch_interval=%s bucket_hours=%s", fetch_interval, bucket_hours
        )
        return []
    if now is None:
        now = time.time()

    bucket_seconds = bucket_hours * SECONDS_PER_HOUR
    expected = math.floor(bucket_seconds / fetch_interval)
    min_samples = expected * MIN_BUCKET_FILL_RATIO

    candles: list[Candle] = []
    start = _hour_floor(samples[0].timestamp)
    idx = 0
    n = len(samples)

    while idx < n:
        end = start + bucket_seconds
        first = idx
        while idx < n and samples[idx].timestamp < end:
            idx += 1

        bucket = samples[first:idx]
        if bucket and len(bucket) >= min_samples and end <= now:
            rates = [s.rate for s in bucket]
            candles.append(
                Candle(
                    timestamp=start,
                    open=rates[0],
                    high=max(rates),
                    low=min(rates),
                    close=rates[-1],
                )
            )

        if idx < n and not bucket:
            # jump over a gap straight to the bucket holding the next sample
            gap_buckets = int((samples[idx].timestamp - start) // bucket_seconds)
            start += max(gap_buckets, 1) * bucket_seconds
        else:
            start = end

    return candles


def is_weekend_flat_candle(candle: Candle) -> bool:
    """``True`` for a motionless candle inside the weekend market close.

    The close runs from Saturday 01:00 UTC through the Sunday 23:00 UTC
    candle inclusive.
    """
    dt = candle.dt
    weekday, hour = dt.weekday(), dt.hour
    in_close = (weekday == WEEKEND_START_WEEKDAY and hour >= WEEKEND_START_HOUR) or (
        weekday == WEEKEND_END_WEEKDAY and hour <= WEEKEND_END_HOUR
    )
    return in_close and candle.is_flat


def filter_weekend_candles(candles: Sequence[Candle]) -> list[Candle]:
    """Drop the weekend flat candles; everything else is kept in order."""
    kept = [c for c in candles if not is_weekend_flat_candle(c)]
    dropped = len(candles) - len(kept)
    if dropped:
        logger.debug("Dropped %d flat weekend candles", dropped)
    return kept


def get_candles_in_range(
    rates: RateRepository,
    pair_id: int,
    start: float,
    end: float,
    fetch_interval: int = DEFAULT_FETCH_INTERVAL_SECONDS,
    bucket_hours: int = DEFAULT_BUCKET_HOURS,
    now: float | None = None,
) -> list[Candle]:
    """Fetch samples for ``[start, end]``, aggregate them and drop weekend flats."""
    samples = rates.get_rates_in_range(pair_id, start, end)
    candles = aggregate_to_candles(samples, fetch_interval, bucket_hours, now=now)
    return filter_weekend_candles(candles)


def _hour_floor(timestamp: float) -> int:
    dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return int(dt.replace(minute=0, second=0, microsecond=0).timestamp())
