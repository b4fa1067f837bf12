"""Rate fetcher: pulls spot rates for every active pair and stores samples.

Pairs are grouped by base currency so one provider request covers every
target quoted against that base.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from fxsignals.core.config import AnalysisConfig
from fxsignals.core.database import PairRepository, RateRepository
from fxsignals.core.events import EventBus, RatesFetched
from fxsignals.core.exceptions import FxSignalsError
from fxsignals.core.health import HealthMonitor
from fxsignals.core.rate_client import RateClient
from fxsignals.models.candle import RateSample
from fxsignals.models.pair import Pair

logger = logging.getLogger(__name__)

_COMPONENT = "fetcher"


def group_by_base(pairs: list[Pair]) -> dict[str, list[Pair]]:
    """``{base_code: [pairs]}`` in first-seen order."""
    groups: dict[str, list[Pair]] = {}
    for pair in pairs:
        groups.setdefault(pair.base_code, []).append(pair)
    return groups


class FetcherRunner:
    """Fetches and stores one rate sample per active pair each cycle.

    Parameters
    ----------
    client:
        Rate provider.
    pairs, rates:
        Pair registry and sample store.
    config:
        Supplies ``fetch_interval_seconds`` for :meth:`run`.
    health:
        Optional health monitor.
    event_bus:
        Optional bus for :class:`~fxsignals.core.events.RatesFetched`.
    clock:
        Sample timestamp source.
    """

    def __init__(
        self,
        client: RateClient,
        pairs: PairRepository,
        rates: RateRepository,
        config: AnalysisConfig,
        health: HealthMonitor | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._pairs = pairs
        self._rates = rates
        self._config = config
        self._health = health
        self._bus = event_bus
        self._clock = clock
        self._stop = threading.Event()

    def run(self) -> None:
        interval = self._config.fetch_interval_seconds
        logger.info("Fetcher started (every %ds)", interval)
        while not self._stop.is_set():
            self.step()
            self._stop.wait(interval)
        logger.info("Fetcher stopped")

    def step(self) -> int:
        """Fetch every base currency once; return the number of samples stored."""
        try:
            active = self._pairs.get_active_pairs()
        except FxSignalsError as exc:
            logger.error("Could not load active pairs: %s", exc)
            self._record_error(exc)
            return 0

        stored = 0
        for base, group in group_by_base(active).items():
            try:
                stored += self._fetch_base(base, group)
            except FxSignalsError as exc:
                logger.error("Rate fetch failed for base %s: %s", base, exc)
                self._record_error(exc)

        logger.info("Fetched %d rates for %d active pairs", stored, len(active))
        if self._health:
            self._health.record_heartbeat(_COMPONENT)
        return stored

    def stop(self) -> None:
        self._stop.set()

    def _fetch_base(self, base: str, group: list[Pair]) -> int:
        quotes = self._client.fetch_multi(base, [p.target_code for p in group])
        now = self._clock()
        samples: list[RateSample] = []
        for pair in group:
            rate = quotes.get(pair.target_code)
            if rate is None:
                logger.warning("No quote for %s in provider response", pair.symbol)
                continue
            samples.append(RateSample(pair_id=pair.id, rate=rate, timestamp=now))

        if samples:
            self._rates.save_rates(samples)
            if self._bus is not None:
                self._bus.publish(RatesFetched(base_code=base, sample_count=len(samples), timestamp=now))
        return len(samples)

    def _record_error(self, exc: BaseException) -> None:
        if self._health:
            self._health.record_error(_COMPONENT, exc)
