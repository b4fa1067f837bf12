"""Backoff and pacing for the outbound HTTP clients.

:func:`retry` wraps a FastForex or Telegram call so that provider faults get a
few more tries; :class:`RateLimiter` spaces FastForex requests out.  Nothing
in the analysis packages retries: an unavailable rate store fails the pair for
this pass and the next scheduler tick tries again.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

from fxsignals.core.exceptions import DataSourceError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def backoff_delays(base_delay: float, factor: float, cap: float) -> Iterator[float]:
    """Yield ``base_delay``, ``base_delay * factor``, ... never exceeding *cap*."""
    delay = min(base_delay, cap)
    while True:
        yield delay
        delay = min(delay * factor, cap)


def retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (DataSourceError,),
) -> Callable[[F], F]:
    """Call the wrapped function again when it raises one of *exceptions*.

    Parameters
    ----------
    max_retries:
        Extra calls after the first one fails; ``0`` disables retrying.
    base_delay, backoff_factor, max_delay:
        Sleep before retry *n* is ``base_delay * backoff_factor ** (n - 1)``,
        capped at *max_delay*.
    exceptions:
        Faults worth another try.  Anything else is raised at once, as is
        the last fault once the retries are used up.
    """

    def decorator(func: F) -> F:
        name = func.__qualname__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(base_delay, backoff_factor, max_delay)
            retries_left = max_retries
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    if retries_left <= 0:
                        logger.error("%s gave up after %d call(s): %s", name, max_retries + 1, exc)
                        raise
                    wait = next(delays)
                    logger.warning("%s failed (%s); %d retry(ies) left, sleeping %.1fs", name, exc, retries_left, wait)
                    retries_left -= 1
                    time.sleep(wait)

        return wrapper  # type: ignore[return-value]

    return decorator


class RateLimiter:
    """Keep at least ``1 / calls_per_second`` seconds between FastForex calls.

    One limiter is shared by every base-currency fetch of a client, so a
    fetcher pass with many bases is spread out instead of sent as a burst.
    """

    def __init__(self, calls_per_second: float = 2.0) -> None:
        if calls_per_second <= 0:
            raise ValueError("calls_per_second must be positive")
        self.min_interval = 1.0 / calls_per_second
        self._previous = float("-inf")
        self._lock = threading.Lock()

    def acquire(self) -> None:
        """Sleep until the gap since the previous call is long enough."""
        with self._lock:
            remaining = self._previous + self.min_interval - time.monotonic()
            if remaining > 0:
                time.sleep(remaining)
            self._previous = time.monotonic()
