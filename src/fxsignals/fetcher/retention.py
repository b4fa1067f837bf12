"""Daily pruning of old rate samples."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from fxsignals.core.constants import SECONDS_PER_DAY
from fxsignals.core.database import RateRepository
from fxsignals.core.exceptions import FxSignalsError
from fxsignals.core.health import HealthMonitor

logger = logging.getLogger(__name__)

_COMPONENT = "retention"


class RetentionJob:
    """Deletes rate samples older than *retention_days*."""

    def __init__(
        self,
        rates: RateRepository,
        retention_days: int,
        health: HealthMonitor | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if retention_days <= 0:
            raise ValueError("retention_days must be positive")
        self._rates = rates
        self._retention_days = retention_days
        self._health = health
        self._clock = clock

    def cutoff(self) -> float:
        return self._clock() - self._retention_days * SECONDS_PER_DAY

    def step(self) -> int:
        """Prune once; return the number of samples removed (0 on failure)."""
        cutoff = self.cutoff()
        try:
            removed = self._rates.delete_before(cutoff)
        except FxSignalsError as exc:
            logger.error("Rate retention failed: %s", exc)
            if self._health:
                self._health.record_error(_COMPONENT, exc)
            return 0

        logger.info("Deleted %d rate samples older than %d days", removed, self._retention_days)
        if self._health:
            self._health.record_heartbeat(_COMPONENT)
        return removed
