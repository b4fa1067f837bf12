"""Historical replay of trend and consolidation analysis.

Replays never write: trend state, consolidations and opportunities are
computed and returned but not stored, and the existing-record check is
skipped.  Failures come back as an ``error`` field instead of raising.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from fxsignals.consolidation.engine import ConsolidationDetector, EvaluationResult
from fxsignals.core.database import PairRepository
from fxsignals.core.exceptions import FxSignalsError, PairNotFoundError
from fxsignals.models.consolidation import Consolidation
from fxsignals.models.pair import Pair
from fxsignals.trend.classifier import TrendDetector, TrendVerdict

logger = logging.getLogger(__name__)

PAIR_NOT_FOUND = "Pair not found"
ANALYSIS_FAILED = "Analysis failed"

_ANALYSIS_ERRORS = (FxSignalsError, ValueError, TypeError, KeyError, IndexError, ArithmeticError)


class ReplayService:
    """Runs the trend and consolidation analysis over a caller-chosen range."""

    def __init__(
        self,
        pairs: PairRepository,
        trend: TrendDetector,
        consolidation: ConsolidationDetector,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._pairs = pairs
        self._trend = trend
        self._consolidation = consolidation
        self._clock = clock

    # -- public API -----------------------------------------------------------

    def replay_trend(self, pair_id: int, start: float, end: float) -> dict[str, Any]:
        """Trend verdict for ``[start, end]`` (the window may extend backwards)."""
        result = self._base(pair_id, start, end)
        try:
            pair = self._pairs.get_pair(pair_id)
            verdict = self._trend.detect(pair, start, end, persist=False)
        except PairNotFoundError:
            result["error"] = PAIR_NOT_FOUND
            return result
        except _ANALYSIS_ERRORS:
            logger.exception("Trend replay failed for pair %d", pair_id)
            result["error"] = ANALYSIS_FAILED
            return result

        result.update(verdict.to_dict())
        return result

    def replay_consolidation(self, pair_id: int, start: float, end: float) -> dict[str, Any]:
        """Consolidations in ``[start, end]`` against the pair's stored trend.

        The pair does not have to be trending; its stored direction only
        decides ``is_trend_direction`` on the results.
        """
        result = self._base(pair_id, start, end)
        result["consolidations"] = []
        try:
            pair = self._pairs.get_pair(pair_id)
            evaluation = self._consolidation.evaluate_pair(
                pair, start, end, dry_run=True, require_trend=False
            )
        except PairNotFoundError:
            result["error"] = PAIR_NOT_FOUND
            return result
        except _ANALYSIS_ERRORS:
            logger.exception("Consolidation replay failed for pair %d", pair_id)
            result["error"] = ANALYSIS_FAILED
            return result

        result["consolidations"] = [_summarize(c) for c in evaluation.consolidations]
        result["candle_count"] = evaluation.candle_count
        if evaluation.error:
            result["error"] = evaluation.error
        return result

    def replay_full_flow(self, pair_id: int, start: float, end: float) -> dict[str, Any]:
        """Trend first, then consolidations against the replayed trend.

        A non-trending verdict returns early with empty consolidation and
        opportunity lists.
        """
        result = self._base(pair_id, start, end)
        result.update({"trend": None, "consolidations": [], "opportunities": []})
        try:
            pair = self._pairs.get_pair(pair_id)
            verdict = self._trend.detect(pair, start, end, persist=False)
            result["trend"] = verdict.to_dict()
            if not verdict.is_trending:
                logger.info("Pair %s not trending in replay range; skipping consolidations", pair.symbol)
                return result
            evaluation = self._evaluate_with(pair, verdict, start, end)
        except PairNotFoundError:
            result["error"] = PAIR_NOT_FOUND
            return result
        except _ANALYSIS_ERRORS:
            logger.exception("Full-flow replay failed for pair %d", pair_id)
            result["error"] = ANALYSIS_FAILED
            return result

        result["consolidations"] = [c.to_dict() for c in evaluation.consolidations]
        result["opportunities"] = [o.to_dict() for o in evaluation.opportunities]
        result["candidates"] = [c.to_dict() for c in evaluation.candidates]
        if evaluation.error:
            result["error"] = evaluation.error
        logger.info(
            "Replay %s: %d consolidations, %d opportunities",
            pair.symbol,
            len(evaluation.consolidations),
            len(evaluation.opportunities),
        )
        return result

    # -- helpers --------------------------------------------------------------

    def _evaluate_with(
        self, pair: Pair, verdict: TrendVerdict, start: float, end: float
    ) -> EvaluationResult:
        replayed = pair.with_trend(verdict.to_state(self._clock()))
        return self._consolidation.evaluate_pair(replayed, start, end, dry_run=True)

    def _base(self, pair_id: int, start: float, end: float) -> dict[str, Any]:
        return {
            "pair_id": pair_id,
            "start": start,
            "end": end,
            "analysis_timestamp": self._clock(),
            "error": None,
        }


def _summarize(consolidation: Consolidation) -> dict[str, Any]:
    return {
        "start_time": consolidation.start_timestamp,
        "end_time": consolidation.end_timestamp,
        "support": consolidation.support_level,
        "resistance": consolidation.resistance_level,
        "duration_hours": consolidation.duration_hours,
        "breakout_direction": consolidation.breakout_direction,
    }
