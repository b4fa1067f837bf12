"""Consolidation and breakout detection.

Every window of consecutive hourly candles is tested for a tight,
oscillating range::

    range%       (max high - min low) / min low * 100, within [min, max]
    changes      closes turning from up to down (or back), >= min changes
    oscillations up/down segments, >= min oscillations
    volatility%  population stddev of closes / mean * 100, <= max

A window only becomes a candidate when one of the next
``breakout_confirmation_candles`` closes beyond its range.  Candidates are
ranked by a quality score and overlapping ones are dropped, keeping the
best.  The surviving candidates become consolidation records and, when the
breakout follows the pair's trend, trade opportunities.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from fxsignals.analysis.candles import get_candles_in_range
from fxsignals.analysis.sessions import session_at, session_display_name
from fxsignals.analysis.swings import count_touches
from fxsignals.core.config import AnalysisConfig
from fxsignals.core.constants import (
    BUY,
    DEDUP_PROPORTIONAL,
    DOWN,
    EXISTING_RECORD_TOLERANCE_SECONDS,
    QUALITY_BEST_RANGE_PERCENT,
    QUALITY_BREAKOUT_WEIGHT,
    QUALITY_NEUTRAL_BREAKOUT,
    QUALITY_SIZE_SATURATION,
    QUALITY_SIZE_WEIGHT,
    QUALITY_TIGHTNESS_WEIGHT,
    SECONDS_PER_HOUR,
    SELL,
    STRATEGY_NAME,
    UP,
)
from fxsignals.core.database import (
    ConsolidationRepository,
    OpportunityRepository,
    RateRepository,
    StrategyRepository,
)
from fxsignals.core.events import ConsolidationDetected, EventBus
from fxsignals.models.candle import Candle
from fxsignals.models.consolidation import Consolidation
from fxsignals.models.opportunity import Opportunity, Strategy
from fxsignals.models.pair import Pair

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConsolidationPeriod:
    """A window that passed all four oscillation tests (indices inclusive)."""

    start_idx: int
    end_idx: int
    support: float
    resistance: float
    range_percent: float
    direction_changes: int
    oscillations: int
    volatility_percent: float
    candle_count: int
    support_touches: int = 0
    resistance_touches: int = 0


@dataclass(frozen=True, slots=True)
class ConsolidationCandidate:
    """A consolidation period confirmed by a breakout."""

    support: float
    resistance: float
    start_idx: int
    end_idx: int
    breakout_direction: str
    breakout_timestamp: int
    breakout_close: float
    range_percent: float
    quality_score: float

    @property
    def length(self) -> int:
        return self.end_idx - self.start_idx + 1

    def overlaps(self, other: ConsolidationCandidate) -> bool:
        return self.start_idx <= other.end_idx and self.end_idx >= other.start_idx

    def overlap_ratio(self, other: ConsolidationCandidate) -> float:
        """Shared candles as a share of the shorter window (0 when disjoint)."""
        start = max(self.start_idx, other.start_idx)
        end = min(self.end_idx, other.end_idx)
        if start > end:
            return 0.0
        return (end - start + 1) / min(self.length, other.length)

    def to_dict(self) -> dict[str, object]:
        return {
            "support": self.support,
            "resistance": self.resistance,
            "start_idx": self.start_idx,
            "end_idx": self.end_idx,
            "breakout_direction": self.breakout_direction,
            "breakout_timestamp": self.breakout_timestamp,
            "breakout_close": self.breakout_close,
            "range_percent": self.range_percent,
            "quality_score": self.quality_score,
        }


# ---------------------------------------------------------------------------
# Window analysis
# ---------------------------------------------------------------------------


def _step(a: float, b: float) -> int:
    if b > a:
        return 1
    if b < a:
        return -1
    return 0


def count_oscillation(closes: Sequence[float]) -> tuple[int, int]:
    """Return ``(direction_changes, oscillations)`` for a close series.

    A direction change is a non-flat step followed by a non-flat step the
    other way.  Oscillations count the up/down segments, ignoring flat
    steps.
    """
    changes = 0
    oscillations = 0
    last_dir = 0
    for i in range(2, len(closes)):
        prev_dir = _step(closes[i - 2], closes[i - 1])
        curr_dir = _step(closes[i - 1], closes[i])
        if prev_dir != 0 and curr_dir != 0 and prev_dir != curr_dir:
            changes += 1
        if curr_dir != 0 and curr_dir != last_dir:
            oscillations += 1
            last_dir = curr_dir
    return changes, oscillations


def volatility_percent(closes: Sequence[float]) -> float:
    """Population standard deviation of *closes* as a percent of their mean."""
    mean = sum(closes) / len(closes)
    if mean == 0.0:
        return 0.0
    variance = sum((c - mean) ** 2 for c in closes) / len(closes)
    return math.sqrt(variance) / mean * 100.0


def analyze_window(
    candles: Sequence[Candle], start: int, end: int, config: AnalysisConfig
) -> ConsolidationPeriod | None:
    """Test ``candles[start..end]`` (inclusive); ``None`` if any criterion fails."""
    window = candles[start : end + 1]
    if len(window) < config.min_consolidation_candles:
        return None

    support = min(c.low for c in window)
    resistance = max(c.high for c in window)
    if support <= 0:
        return None
    range_pct = (resistance - support) / support * 100.0
    if not (
        config.min_consolidation_range_percent
        <= range_pct
        <= config.max_consolidation_range_percent
    ):
        return None

    closes = [c.close for c in window]
    changes, oscillations = count_oscillation(closes)
    if changes < config.min_direction_changes:
        return None
    if oscillations < config.effective_min_oscillations:
        return None

    vol = volatility_percent(closes)
    if vol > config.max_consolidation_volatility_percent:
        return None

    return ConsolidationPeriod(
        start_idx=start,
        end_idx=end,
        support=support,
        resistance=resistance,
        range_percent=range_pct,
        direction_changes=changes,
        oscillations=oscillations,
        volatility_percent=vol,
        candle_count=len(window),
        support_touches=count_touches(support, window),
        resistance_touches=count_touches(resistance, window),
    )


def find_consolidation_periods(
    candles: Sequence[Candle], config: AnalysisConfig
) -> list[ConsolidationPeriod]:
    """Every window that qualifies as a consolidation.

    Window starts leave room for at least one candle after a minimum-length
    window; lengths run from ``min_consolidation_candles`` up to
    ``max_consolidation_candles`` (capped at the candle count).
    """
    n = len(candles)
    min_len = config.min_consolidation_candles
    max_len = min(config.max_consolidation_candles, n)

    periods: list[ConsolidationPeriod] = []
    for start in range(0, n - min_len):
        for end in range(start + min_len - 1, min(start + max_len, n)):
            period = analyze_window(candles, start, end, config)
            if period is not None:
                periods.append(period)
    return periods


def detect_breakout(
    candles: Sequence[Candle], support: float, resistance: float
) -> tuple[str, Candle] | None:
    """First candle closing above *resistance* (``UP``) or below *support* (``DOWN``)."""
    for candle in candles:
        if candle.close > resistance:
            return UP, candle
        if candle.close < support:
            return DOWN, candle
    return None


# ---------------------------------------------------------------------------
# Scoring and deduplication
# ---------------------------------------------------------------------------


def quality_score(support: float, resistance: float, length: int) -> float:
    """Score in ``[0, 1]`` favouring tight ranges and longer windows.

    ``0.5 * tightness + 0.3 * size + 0.2 * 0.5``.  Tightness is 1 at a 0.25%
    range, falls to 0 at 0.5% and keeps growing below 0.25%; size saturates
    at 24 candles.  Only the total is clamped.
    """
    range_pct = (resistance - support) / support * 100.0
    tightness = max(0.0, 1 - (range_pct - QUALITY_BEST_RANGE_PERCENT) / QUALITY_BEST_RANGE_PERCENT)
    size = min(1.0, length / QUALITY_SIZE_SATURATION)
    score = (
        QUALITY_TIGHTNESS_WEIGHT * tightness
        + QUALITY_SIZE_WEIGHT * size
        + QUALITY_BREAKOUT_WEIGHT * QUALITY_NEUTRAL_BREAKOUT
    )
    return min(1.0, max(0.0, score))


def rank_candidates(candidates: Sequence[ConsolidationCandidate]) -> list[ConsolidationCandidate]:
    """Sort by score descending, then length descending, then start ascending."""
    return sorted(candidates, key=lambda c: (-c.quality_score, -c.length, c.start_idx))


def deduplicate_strict(
    candidates: Sequence[ConsolidationCandidate],
) -> list[ConsolidationCandidate]:
    """Keep the best candidates such that no two share a candle."""
    kept: list[ConsolidationCandidate] = []
    for candidate in rank_candidates(candidates):
        if not any(candidate.overlaps(k) for k in kept):
            kept.append(candidate)
    return kept


def deduplicate_proportional(
    candidates: Sequence[ConsolidationCandidate], max_overlap_ratio: float
) -> list[ConsolidationCandidate]:
    """Keep candidates overlapping every kept one by less than *max_overlap_ratio*."""
    kept: list[ConsolidationCandidate] = []
    for candidate in rank_candidates(candidates):
        worst = max((candidate.overlap_ratio(k) for k in kept), default=0.0)
        if worst < max_overlap_ratio:
            kept.append(candidate)
    return kept


def deduplicate(
    candidates: Sequence[ConsolidationCandidate], config: AnalysisConfig
) -> list[ConsolidationCandidate]:
    if config.dedup_strategy == DEDUP_PROPORTIONAL:
        return deduplicate_proportional(candidates, config.max_overlap_ratio)
    return deduplicate_strict(candidates)


def find_candidates(
    candles: Sequence[Candle], config: AnalysisConfig
) -> list[ConsolidationCandidate]:
    """Consolidation periods with a confirmed breakout, deduplicated and ranked."""
    raw: list[ConsolidationCandidate] = []
    n = len(candles)
    for period in find_consolidation_periods(candles, config):
        first = period.end_idx + 1
        if first >= n:
            continue
        window = candles[first : first + config.breakout_confirmation_candles]
        breakout = detect_breakout(window, period.support, period.resistance)
        if breakout is None:
            continue
        direction, candle = breakout
        raw.append(
            ConsolidationCandidate(
                support=period.support,
                resistance=period.resistance,
                start_idx=period.start_idx,
                end_idx=period.end_idx,
                breakout_direction=direction,
                breakout_timestamp=candle.timestamp,
                breakout_close=candle.close,
                range_percent=period.range_percent,
                quality_score=quality_score(period.support, period.resistance, period.candle_count),
            )
        )

    unique = deduplicate(raw, config)
    logger.debug("Consolidation candidates: %d unique from %d total", len(unique), len(raw))
    return unique


# ---------------------------------------------------------------------------
# Opportunity pricing
# ---------------------------------------------------------------------------


def build_opportunity(
    consolidation: Consolidation,
    strategy: Strategy,
    config: AnalysisConfig,
    timestamp: float,
) -> Opportunity:
    """Entry at the broken level; stop a fixed percent away; target at reward/risk."""
    up = consolidation.breakout_direction == UP
    entry = consolidation.resistance_level if up else consolidation.support_level
    offset = config.stop_loss_percent / 100.0
    stop = entry * (1 - offset) if up else entry * (1 + offset)
    risk = abs(entry - stop)
    target = entry + config.reward_risk_ratio * risk if up else entry - config.reward_risk_ratio * risk
    signal = BUY if up else SELL

    session = session_display_name(session_at(consolidation.broken_at or consolidation.end_timestamp))
    return Opportunity(
        pair_id=consolidation.pair_id,
        strategy_id=strategy.id,
        consolidation_id=consolidation.id,
        signal_type=signal,
        entry_rate=entry,
        stop_loss_rate=stop,
        take_profit_rate=target,
        details=f"Consolidation breakout - {signal} signal ({session} session)",
        timestamp=timestamp,
    )


# ---------------------------------------------------------------------------
# Pair evaluation
# ---------------------------------------------------------------------------


@dataclass
class EvaluationResult:
    """What one pair evaluation found (and, outside dry runs, stored)."""

    pair_id: int
    candle_count: int = 0
    candidates: list[ConsolidationCandidate] = field(default_factory=list)
    consolidations: list[Consolidation] = field(default_factory=list)
    opportunities: list[Opportunity] = field(default_factory=list)
    skipped_existing: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "pair_id": self.pair_id,
            "candle_count": self.candle_count,
            "candidates": [c.to_dict() for c in self.candidates],
            "consolidations": [c.to_dict() for c in self.consolidations],
            "opportunities": [o.to_dict() for o in self.opportunities],
            "skipped_existing": self.skipped_existing,
            "error": self.error,
        }


class ConsolidationDetector:
    """Evaluates trending pairs for consolidation breakouts.

    Parameters
    ----------
    rates:
        Source of raw rate samples.
    consolidations, opportunities, strategies:
        Record stores.
    config:
        Thresholds.
    event_bus:
        Optional bus for :class:`~fxsignals.core.events.ConsolidationDetected`.
    clock:
        Returns "now" in epoch seconds; injectable for tests.
    """

    def __init__(
        self,
        rates: RateRepository,
        consolidations: ConsolidationRepository,
        opportunities: OpportunityRepository,
        strategies: StrategyRepository,
        config: AnalysisConfig,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rates = rates
        self._consolidations = consolidations
        self._opportunities = opportunities
        self._strategies = strategies
        self._config = config
        self._bus = event_bus
        self._clock = clock

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    def load_candles(
        self, pair_id: int, start: float | None = None, end: float | None = None
    ) -> list[Candle]:
        """Hourly candles for ``[start, end]``; defaults to the last ``lookback_hours``."""
        now = self._clock()
        if end is None:
            end = now
        if start is None:
            start = end - self._config.lookback_hours * SECONDS_PER_HOUR
        return get_candles_in_range(
            self._rates,
            pair_id,
            start,
            end,
            fetch_interval=self._config.fetch_interval_seconds,
            bucket_hours=self._config.bucket_hours,
            now=now,
        )

    def evaluate_pair(
        self,
        pair: Pair,
        start: float | None = None,
        end: float | None = None,
        dry_run: bool = False,
        require_trend: bool = True,
    ) -> EvaluationResult:
        """Find breakouts for *pair* and record them.

        *pair* carries the trend state to evaluate against.  With *dry_run*
        nothing is read from or written to the record stores (apart from
        the strategy lookup) and the existing-record check is skipped.
        ``require_trend=False`` analyses a non-trending pair as well; its
        breakouts never match a trend, so no opportunity is built.
        """
        result = EvaluationResult(pair_id=pair.id)
        if require_trend and not pair.is_trending:
            result.error = f"Pair {pair.symbol} is not trending"
            logger.debug(result.error)
            return result

        candles = self.load_candles(pair.id, start, end)
        result.candle_count = len(candles)
        needed = self._config.min_window_candles
        if len(candles) < needed:
            result.error = (
                f"Insufficient candles for consolidation analysis: {len(candles)}, "
                f"minimum {needed} required"
            )
            logger.debug("Pair %s: %s", pair.symbol, result.error)
            return result

        result.candidates = find_candidates(candles, self._config)
        logger.info(
            "Pair %s: %d consolidation candidates from %d candles",
            pair.symbol,
            len(result.candidates),
            len(candles),
        )

        existing = [] if dry_run else self._consolidations.find_by_pair(pair.id)
        for candidate in result.candidates:
            if any(
                c.covers_breakout(candidate.breakout_timestamp, EXISTING_RECORD_TOLERANCE_SECONDS)
                for c in existing
            ):
                result.skipped_existing += 1
                logger.debug(
                    "Pair %s: breakout at %d already recorded, skipping",
                    pair.symbol,
                    candidate.breakout_timestamp,
                )
                continue

            consolidation = self._record_consolidation(pair, candles, candidate, dry_run)
            result.consolidations.append(consolidation)
            if not dry_run:
                existing.append(consolidation)

            if candidate.breakout_direction == pair.trend_direction:
                opportunity = self._record_opportunity(consolidation, dry_run)
                if opportunity is not None:
                    result.opportunities.append(opportunity)

        logger.info(
            "Pair %s: %d consolidations, %d opportunities%s",
            pair.symbol,
            len(result.consolidations),
            len(result.opportunities),
            " (dry run)" if dry_run else "",
        )
        return result

    # -- record creation ------------------------------------------------------

    def _record_consolidation(
        self,
        pair: Pair,
        candles: Sequence[Candle],
        candidate: ConsolidationCandidate,
        dry_run: bool,
    ) -> Consolidation:
        record = Consolidation(
            pair_id=pair.id,
            trend_direction=pair.trend_direction or candidate.breakout_direction,
            start_timestamp=candles[candidate.start_idx].timestamp,
            end_timestamp=candidate.breakout_timestamp,
            resistance_level=candidate.resistance,
            support_level=candidate.support,
            broken_at=candidate.breakout_timestamp,
            breakout_direction=candidate.breakout_direction,
            is_trend_direction=candidate.breakout_direction == pair.trend_direction,
            created_at=self._clock(),
        )
        if dry_run:
            return record

        stored = self._consolidations.create(record)
        if self._bus is not None:
            self._bus.publish(ConsolidationDetected(consolidation=stored, timestamp=self._clock()))
        return stored

    def _record_opportunity(self, consolidation: Consolidation, dry_run: bool) -> Opportunity | None:
        strategy = self._strategies.find_by_name(STRATEGY_NAME)
        if strategy is None or not strategy.active:
            logger.debug("%s strategy missing or disabled; no opportunity", STRATEGY_NAME)
            return None

        opportunity = build_opportunity(consolidation, strategy, self._config, self._clock())
        if dry_run:
            return opportunity
        return self._opportunities.create(opportunity)
