"""Events announced by the analysis jobs.

The Telegram notifier (and tests) learn about new trend states,
consolidations and opportunities through an :class:`EventBus` instead of
being called by the analysis code.  The repositories stay the source of
truth.

Usage::

    bus = EventBus()
    bus.subscribe(OpportunityCreated, notifier.on_opportunity)
    bus.publish(OpportunityCreated(opportunity=opp, timestamp=time.time()))
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from fxsignals.models.consolidation import Consolidation
from fxsignals.models.opportunity import Opportunity
from fxsignals.models.pair import TrendState

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OpportunityCreated:
    """Emitted after an opportunity has been persisted."""

    opportunity: Opportunity
    timestamp: float


@dataclass(frozen=True)
class ConsolidationDetected:
    """Emitted after a consolidation with a breakout has been persisted."""

    consolidation: Consolidation
    timestamp: float


@dataclass(frozen=True)
class TrendUpdated:
    """Emitted when the trend classifier stores a new state for a pair."""

    pair_id: int
    state: TrendState
    timestamp: float


@dataclass(frozen=True)
class RatesFetched:
    """Emitted after the fetcher stored a batch of samples for one base currency."""

    base_code: str
    sample_count: int
    timestamp: float


Event = OpportunityCreated | ConsolidationDetected | TrendUpdated | RatesFetched
E = TypeVar("E")


class EventBus:
    """Synchronous pub/sub keyed by event class.

    Handlers run on the publishing thread in subscription order, after the
    write they announce has succeeded.  A failing handler is logged and
    skipped; publishing never raises into the analysis.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[type, list[Callable[[Any], None]]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        with self._lock:
            self._handlers[event_type].append(handler)

    def publish(self, event: Event) -> int:
        """Deliver *event*; return how many handlers completed without raising."""
        with self._lock:
            handlers = list(self._handlers.get(type(event), ()))

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "%s handler %s failed",
                    type(event).__name__,
                    getattr(handler, "__qualname__", handler),
                )
            else:
                delivered += 1
        return delivered
