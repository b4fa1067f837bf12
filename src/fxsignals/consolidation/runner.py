"""Consolidation runner: periodic breakout evaluation for trending pairs."""

from __future__ import annotations

import logging
import threading

from fxsignals.consolidation.engine import ConsolidationDetector, EvaluationResult
from fxsignals.core.database import PairRepository
from fxsignals.core.exceptions import FxSignalsError
from fxsignals.core.health import HealthMonitor

logger = logging.getLogger(__name__)

_COMPONENT = "consolidation"


class ConsolidationRunner:
    """Runs :class:`ConsolidationDetector` over every active, trending pair.

    Non-trending pairs are skipped without loading any candles.  A failure
    on one pair is logged and recorded; the others are still evaluated.
    """

    def __init__(
        self,
        detector: ConsolidationDetector,
        pairs: PairRepository,
        health: HealthMonitor | None = None,
    ) -> None:
        self._detector = detector
        self._pairs = pairs
        self._health = health
        self._stop = threading.Event()

    def run(self) -> None:
        interval = self._detector.config.consolidation_interval_seconds
        logger.info("Consolidation runner started (every %ds)", interval)
        while not self._stop.is_set():
            self.step()
            self._stop.wait(interval)
        logger.info("Consolidation runner stopped")

    def step(self) -> dict[int, EvaluationResult]:
        """One pass; returns ``{pair_id: result}`` for the pairs evaluated."""
        results: dict[int, EvaluationResult] = {}
        try:
            trending = [p for p in self._pairs.get_active_pairs() if p.is_trending]
        except FxSignalsError as exc:
            logger.error("Could not load active pairs: %s", exc)
            self._record_error(exc)
            return results

        logger.info("Consolidation analysis for %d trending pairs", len(trending))
        for pair in trending:
            try:
                results[pair.id] = self._detector.evaluate_pair(pair)
            except FxSignalsError as exc:
                logger.error("Consolidation analysis failed for %s: %s", pair.symbol, exc)
                self._record_error(exc, pair.id)
            except (ValueError, TypeError, KeyError, IndexError, ArithmeticError) as exc:
                logger.error(
                    "Consolidation analysis failed for %s: %s", pair.symbol, exc, exc_info=True
                )
                self._record_error(exc, pair.id)

        found = sum(len(r.opportunities) for r in results.values())
        logger.info("Consolidation analysis complete: %d new opportunities", found)
        if self._health:
            self._health.record_heartbeat(_COMPONENT)
        return results

    def stop(self) -> None:
        self._stop.set()

    def _record_error(self, exc: BaseException, pair_id: int | None = None) -> None:
        if self._health:
            self._health.record_error(_COMPONENT, exc, pair_id)
