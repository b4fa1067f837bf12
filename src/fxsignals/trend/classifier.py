"""Trend classification: EMA short/long alignment confirmed by ADX.

The verdict is recomputed from scratch on every invocation; nothing from
earlier checks is carried over except what the caller persists.

Rules, applied to the latest close of hourly candles::

    UP      close > ema_short > ema_long
    DOWN    close < ema_short < ema_long
    trending  direction is set AND adx > adx_threshold

EMA periods scale with the number of candles analysed
(``floor(count * ema_short_percent)`` and ``floor(count * ema_long_percent)``).
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from fxsignals.analysis.candles import get_candles_in_range
from fxsignals.analysis.indicators import adx, latest_ema
from fxsignals.core.config import AnalysisConfig
from fxsignals.core.constants import (
    DOWN,
    SECONDS_PER_HOUR,
    TREND_CANDLE_SHORTFALL_ALLOWANCE,
    TREND_WINDOW_EXTENSION_HOURS,
    TREND_WINDOW_RETRIES,
    UP,
)
from fxsignals.core.database import PairRepository, RateRepository
from fxsignals.core.events import EventBus, TrendUpdated
from fxsignals.models.candle import Candle
from fxsignals.models.pair import Pair, TrendState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TrendVerdict:
    """Outcome of one trend check.

    Indicator fields are ``None`` when they could not be computed.  *error*
    is set only when there were not enough candles to analyse.
    """

    is_trending: bool
    direction: str | None
    adx: float | None
    ema_short: float | None
    ema_long: float | None
    candle_count: int
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "is_trending": self.is_trending,
            "direction": self.direction,
            "adx": self.adx,
            "ema_short": self.ema_short,
            "ema_long": self.ema_long,
            "candle_count": self.candle_count,
            "error": self.error,
        }

    def to_state(self, checked_at: float) -> TrendState:
        """State to persist for this verdict; non-trending clears direction and strength."""
        if self.is_trending:
            return TrendState(
                is_trending=True,
                direction=self.direction,
                strength=self.adx,
                detected_at=checked_at,
                last_checked_at=checked_at,
            )
        return TrendState(is_trending=False, last_checked_at=checked_at)


def insufficient_data(candle_count: int, required: int) -> TrendVerdict:
    return TrendVerdict(
        is_trending=False,
        direction=None,
        adx=None,
        ema_short=None,
        ema_long=None,
        candle_count=candle_count,
        error=f"Insufficient data: {candle_count} candles, need {required}",
    )


def classify_trend(candles: Sequence[Candle], config: AnalysisConfig) -> TrendVerdict:
    """Classify *candles* (oldest first) without any I/O.

    Deterministic: the same candles and config always give the same verdict.
    """
    count = len(candles)
    if count == 0:
        return insufficient_data(0, config.required_candles)

    closes = [c.close for c in candles]
    ema_short = latest_ema(closes, math.floor(count * config.ema_short_percent))
    ema_long = latest_ema(closes, math.floor(count * config.ema_long_percent))
    strength = adx(candles, config.adx_period)
    close = closes[-1]

    direction: str | None = None
    if ema_short is not None and ema_long is not None:
        if close > ema_short > ema_long:
            direction = UP
        elif close < ema_short < ema_long:
            direction = DOWN

    is_trending = direction is not None and strength is not None and strength > config.adx_threshold
    return TrendVerdict(
        is_trending=is_trending,
        direction=direction,
        adx=strength,
        ema_short=ema_short,
        ema_long=ema_long,
        candle_count=count,
    )


class TrendDetector:
    """Loads candles for a pair, classifies them and stores the verdict.

    Parameters
    ----------
    rates:
        Source of raw rate samples.
    pairs:
        Pair registry; the only place trend state is written.
    config:
        Thresholds.
    event_bus:
        Optional bus for :class:`~fxsignals.core.events.TrendUpdated`.
    clock:
        Returns "now" in epoch seconds; injectable for tests.
    """

    def __init__(
        self,
        rates: RateRepository,
        pairs: PairRepository,
        config: AnalysisConfig,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rates = rates
        self._pairs = pairs
        self._config = config
        self._bus = event_bus
        self._clock = clock

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    def load_candles(
        self, pair_id: int, start: float | None = None, end: float | None = None
    ) -> list[Candle]:
        """Hourly candles for the trend window, extending back if short.

        Without an explicit range the window is ``[now - N h, now - 1 h]``
        for ``N = required_candles``.  While fewer than ``N`` candles come
        back the start moves 24 h earlier, up to five times.
        """
        now = self._clock()
        required = self._config.required_candles
        if start is None or end is None:
            start = now - required * SECONDS_PER_HOUR
            end = now - SECONDS_PER_HOUR

        candles: list[Candle] = []
        for attempt in range(TREND_WINDOW_RETRIES + 1):
            candles = get_candles_in_range(
                self._rates,
                pair_id,
                start,
                end,
                fetch_interval=self._config.fetch_interval_seconds,
                bucket_hours=self._config.bucket_hours,
                now=now,
            )
            if len(candles) >= required:
                break
            if attempt < TREND_WINDOW_RETRIES:
                start -= TREND_WINDOW_EXTENSION_HOURS * SECONDS_PER_HOUR
                logger.debug(
                    "Pair %d: %d/%d candles, extending window (attempt %d)",
                    pair_id,
                    len(candles),
                    required,
                    attempt + 1,
                )
        return candles

    def detect(
        self,
        pair: Pair,
        start: float | None = None,
        end: float | None = None,
        persist: bool = True,
    ) -> TrendVerdict:
        """Classify *pair* and, when *persist* is set, store the new state.

        An insufficient-data verdict is returned without touching storage.
        """
        candles = self.load_candles(pair.id, start, end)
        required = self._config.required_candles
        if len(candles) + TREND_CANDLE_SHORTFALL_ALLOWANCE < required:
            verdict = insufficient_data(len(candles), required)
            logger.warning("Pair %s: %s", pair.symbol, verdict.error)
            return verdict

        verdict = classify_trend(candles, self._config)
        logger.debug(
            "Pair %s: direction=%s adx=%s trending=%s (%d candles)",
            pair.symbol,
            verdict.direction,
            verdict.adx,
            verdict.is_trending,
            verdict.candle_count,
        )

        if persist:
            checked_at = self._clock()
            state = verdict.to_state(checked_at)
            self._pairs.update_trend_state(pair.id, state)
            if self._bus is not None:
                self._bus.publish(TrendUpdated(pair_id=pair.id, state=state, timestamp=checked_at))
        return verdict
