"""Job health for the service loop.

Each scheduled job (``fetcher``, ``trend``, ``consolidation``,
``retention``) reports a heartbeat after every pass and an error for every
failed pair or provider call.  A job is stale once it has missed two of its
own intervals; per-pair error counts point at the pair that keeps failing.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter, deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

_MISSED_TICKS_BEFORE_STALE = 2


class HealthStatus(Enum):
    UNKNOWN = "unknown"  # no pass finished yet
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # failed recently, still running
    FAILING = "failing"
    STALE = "stale"


@dataclass
class ComponentHealth:
    """What one job has reported so far."""

    component: str
    interval: float | None = None
    status: HealthStatus = HealthStatus.UNKNOWN
    last_heartbeat: float | None = None
    heartbeat_count: int = 0
    error_count: int = 0
    last_error: str = ""
    pair_errors: Counter[int] = field(default_factory=Counter)

    def to_dict(self) -> dict[str, object]:
        return {
            "component": self.component,
            "status": self.status.value,
            "interval": self.interval,
            "last_heartbeat": self.last_heartbeat,
            "heartbeat_count": self.heartbeat_count,
            "error_count": self.error_count,
            "last_error": self.last_error,
            "pair_errors": dict(self.pair_errors),
        }


@dataclass(frozen=True)
class ErrorRecord:
    component: str
    message: str
    timestamp: float
    exc_type: str
    pair_id: int | None = None


class HealthMonitor:
    """Thread-safe heartbeat and error book for the service jobs.

    Parameters
    ----------
    max_errors:
        Recent errors kept for :meth:`get_recent_errors`.
    default_stale_after:
        Staleness limit for jobs registered without :meth:`expect`.
    error_window:
        Seconds an error keeps counting toward DEGRADED / FAILING.
    failing_threshold:
        Errors inside *error_window* that make a job FAILING.
    clock:
        Time source; injectable for tests.
    """

    def __init__(
        self,
        max_errors: int = 50,
        default_stale_after: float = 1800.0,
        error_window: float = 3600.0,
        failing_threshold: int = 5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._default_stale_after = default_stale_after
        self._error_window = error_window
        self._failing_threshold = failing_threshold
        self._clock = clock
        self._components: dict[str, ComponentHealth] = {}
        self._errors: deque[ErrorRecord] = deque(maxlen=max_errors)
        self._lock = threading.Lock()

    def expect(self, component: str, interval: float) -> None:
        """Declare that *component* should report every *interval* seconds."""
        with self._lock:
            self._component(component).interval = interval

    def record_heartbeat(self, component: str) -> None:
        with self._lock:
            health = self._component(component)
            health.last_heartbeat = self._clock()
            health.heartbeat_count += 1

    def record_error(self, component: str, error: BaseException, pair_id: int | None = None) -> None:
        """Book *error* against *component* and, when given, against *pair_id*."""
        record = ErrorRecord(
            component=component,
            message=f"{type(error).__name__}: {error}",
            timestamp=self._clock(),
            exc_type=type(error).__name__,
            pair_id=pair_id,
        )
        with self._lock:
            health = self._component(component)
            health.error_count += 1
            health.last_error = record.message
            if pair_id is not None:
                health.pair_errors[pair_id] += 1
            self._errors.append(record)

    def get_status(self) -> dict[str, ComponentHealth]:
        with self._lock:
            now = self._clock()
            for health in self._components.values():
                health.status = self._evaluate(health, now)
            return dict(self._components)

    def get_component_status(self, component: str) -> ComponentHealth:
        with self._lock:
            health = self._component(component)
            health.status = self._evaluate(health, self._clock())
            return health

    def get_recent_errors(self, component: str | None = None, limit: int = 20) -> list[ErrorRecord]:
        with self._lock:
            errors = [e for e in self._errors if component is None or e.component == component]
        return errors[-limit:]

    def log_summary(self) -> None:
        """One log line per job; anything but HEALTHY is logged as a warning."""
        for name, health in sorted(self.get_status().items()):
            healthy = health.status is HealthStatus.HEALTHY
            worst = ", ".join(f"pair {p} x{n}" for p, n in health.pair_errors.most_common(3))
            logger.log(
                logging.INFO if healthy else logging.WARNING,
                "health %s: %s (passes=%d errors=%d%s)%s",
                name,
                health.status.value,
                health.heartbeat_count,
                health.error_count,
                f"; {worst}" if worst else "",
                "" if healthy or not health.last_error else f" last: {health.last_error}",
            )

    # -- internal -------------------------------------------------------------

    def _component(self, component: str) -> ComponentHealth:
        """Caller must hold the lock."""
        if component not in self._components:
            self._components[component] = ComponentHealth(component=component)
        return self._components[component]

    def _stale_after(self, health: ComponentHealth) -> float:
        if health.interval is None:
            return self._default_stale_after
        return health.interval * _MISSED_TICKS_BEFORE_STALE

    def _evaluate(self, health: ComponentHealth, now: float) -> HealthStatus:
        if health.last_heartbeat is None:
            return HealthStatus.UNKNOWN
        if now - health.last_heartbeat > self._stale_after(health):
            return HealthStatus.STALE

        recent = sum(
            1
            for e in self._errors
            if e.component == health.component and now - e.timestamp < self._error_window
        )
        if recent >= self._failing_threshold:
            return HealthStatus.FAILING
        if recent:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY
