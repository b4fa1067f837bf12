"""Single-threaded interval scheduler for the service jobs.

Jobs run sequentially in registration order on one thread, so a job
registered earlier always finishes before a later one starts in the same
tick.  A job that overruns simply delays the next tick.

Usage::

    scheduler = Scheduler()
    scheduler.add_job("fetcher", 60, fetcher.step)
    scheduler.add_job("trend", 300, trend.step)
    scheduler.add_job("consolidation", 900, consolidation.step)
    scheduler.run()
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_TICK_SECONDS = 1.0


@dataclass
class Job:
    name: str
    interval: float
    func: Callable[[], Any]
    next_run: float = 0.0
    run_count: int = 0


class Scheduler:
    """Runs registered jobs whenever their interval has elapsed.

    Parameters
    ----------
    clock:
        Time source for :meth:`run`; injectable for tests.
    tick:
        Seconds between due-checks in :meth:`run`.
    """

    def __init__(self, clock: Callable[[], float] = time.time, tick: float = _TICK_SECONDS) -> None:
        self._jobs: list[Job] = []
        self._clock = clock
        self._tick = tick
        self._stop = threading.Event()

    @property
    def jobs(self) -> list[Job]:
        return list(self._jobs)

    def add_job(self, name: str, interval: float, func: Callable[[], Any]) -> Job:
        """Register *func* to run every *interval* seconds, first on the next tick."""
        if interval <= 0:
            raise ValueError(f"Job {name!r}: interval must be positive")
        if any(j.name == name for j in self._jobs):
            raise ValueError(f"Job {name!r} is already registered")
        job = Job(name=name, interval=interval, func=func)
        self._jobs.append(job)
        return job

    def run_pending(self, now: float | None = None) -> list[str]:
        """Run every due job once, in registration order; return their names.

        A job that raises is logged and rescheduled like any other.
        """
        if now is None:
            now = self._clock()
        ran: list[str] = []
        for job in self._jobs:
            if now < job.next_run:
                continue
            try:
                job.func()
            except Exception:
                logger.exception("Job %s failed", job.name)
            job.run_count += 1
            job.next_run = now + job.interval
            ran.append(job.name)
        return ran

    def run(self) -> None:
        """Tick until :meth:`stop` is called."""
        logger.info("Scheduler started with %d jobs", len(self._jobs))
        while not self._stop.is_set():
            self.run_pending()
            self._stop.wait(self._tick)
        logger.info("Scheduler stopped")

    def stop(self) -> None:
        self._stop.set()
