"""Tests for fxsignals.scheduler."""

from __future__ import annotations

import pytest

from fxsignals.scheduler import Scheduler


class TestScheduler:
    def test_rejects_bad_jobs(self) -> None:
        scheduler = Scheduler()
        with pytest.raises(ValueError, match="positive"):
            scheduler.add_job("fetcher", 0, lambda: None)
        scheduler.add_job("fetcher", 60, lambda: None)
        with pytest.raises(ValueError, match="already registered"):
            scheduler.add_job("fetcher", 60, lambda: None)

    def test_registration_order(self) -> None:
        order: list[str] = []
        scheduler = Scheduler()
        scheduler.add_job("fetcher", 60, lambda: order.append("fetcher"))
        scheduler.add_job("trend", 300, lambda: order.append("trend"))
        scheduler.add_job("consolidation", 900, lambda: order.append("consolidation"))

        assert scheduler.run_pending(now=1000.0) == ["fetcher", "trend", "consolidation"]
        assert order == ["fetcher", "trend", "consolidation"]

    def test_intervals(self) -> None:
        scheduler = Scheduler()
        scheduler.add_job("fetcher", 60, lambda: None)
        scheduler.add_job("trend", 300, lambda: None)

        scheduler.run_pending(now=0.0)
        assert scheduler.run_pending(now=59.0) == []
        assert scheduler.run_pending(now=60.0) == ["fetcher"]
        assert scheduler.run_pending(now=300.0) == ["fetcher", "trend"]
        assert [j.run_count for j in scheduler.jobs] == [3, 2]

    def test_failing_job_rescheduled(self) -> None:
        calls: list[str] = []

        def boom() -> None:
            raise RuntimeError("boom")

        scheduler = Scheduler()
        scheduler.add_job("broken", 10, boom)
        scheduler.add_job("after", 10, lambda: calls.append("after"))

        assert scheduler.run_pending(now=0.0) == ["broken", "after"]
        assert calls == ["after"]
        assert scheduler.jobs[0].next_run == 10.0

    def test_stop_before_run(self) -> None:
        calls: list[int] = []
        scheduler = Scheduler(clock=lambda: 0.0, tick=0.01)
        scheduler.add_job("fetcher", 60, lambda: calls.append(1))
        scheduler.stop()
        scheduler.run()
        assert calls == []
