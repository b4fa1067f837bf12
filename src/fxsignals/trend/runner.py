"""Trend runner: periodic trend classification for every active pair.

A failure on one pair is logged and recorded in the health monitor; the
remaining pairs are still processed.
"""

from __future__ import annotations

import logging
import threading

from fxsignals.core.database import PairRepository
from fxsignals.core.exceptions import FxSignalsError
from fxsignals.core.health import HealthMonitor
from fxsignals.trend.classifier import TrendDetector, TrendVerdict

logger = logging.getLogger(__name__)

_COMPONENT = "trend"


class TrendRunner:
    """Runs :class:`TrendDetector` over all active pairs.

    Parameters
    ----------
    detector:
        Configured trend detector.
    pairs:
        Pair registry used to list active pairs.
    health:
        Optional health monitor for heartbeats and per-pair errors.
    """

    def __init__(
        self,
        detector: TrendDetector,
        pairs: PairRepository,
        health: HealthMonitor | None = None,
    ) -> None:
        self._detector = detector
        self._pairs = pairs
        self._health = health
        self._stop = threading.Event()

    # -- public API -----------------------------------------------------------

    def run(self) -> None:
        """Classify all pairs every ``trend_interval_seconds`` until :meth:`stop`."""
        interval = self._detector.config.trend_interval_seconds
        logger.info("Trend runner started (every %ds)", interval)
        while not self._stop.is_set():
            self.step()
            self._stop.wait(interval)
        logger.info("Trend runner stopped")

    def step(self) -> dict[int, TrendVerdict]:
        """One pass over all active pairs; returns ``{pair_id: verdict}``."""
        verdicts: dict[int, TrendVerdict] = {}
        try:
            active = self._pairs.get_active_pairs()
        except FxSignalsError as exc:
            logger.error("Could not load active pairs: %s", exc)
            self._record_error(exc)
            return verdicts

        logger.info("Trend detection for %d active pairs", len(active))
        for pair in active:
            try:
                verdicts[pair.id] = self._detector.detect(pair)
            except FxSignalsError as exc:
                logger.error("Trend detection failed for %s: %s", pair.symbol, exc)
                self._record_error(exc, pair.id)
            except (ValueError, TypeError, KeyError, IndexError, ArithmeticError) as exc:
                logger.error("Trend detection failed for %s: %s", pair.symbol, exc, exc_info=True)
                self._record_error(exc, pair.id)

        trending = sum(1 for v in verdicts.values() if v.is_trending)
        logger.info("Trend detection complete: %d/%d trending", trending, len(active))
        if self._health:
            self._health.record_heartbeat(_COMPONENT)
        return verdicts

    def stop(self) -> None:
        """Request the runner to stop after the current pass."""
        self._stop.set()

    def _record_error(self, exc: BaseException, pair_id: int | None = None) -> None:
        if self._health:
            self._health.record_error(_COMPONENT, exc, pair_id)
