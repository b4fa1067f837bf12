"""Tests for fxsignals.trend.runner."""

from __future__ import annotations

import pytest

from fxsignals.core.health import HealthMonitor
from fxsignals.models.pair import Pair
from fxsignals.trend.classifier import TrendDetector
from fxsignals.trend.runner import TrendRunner

BASE_TS = 1704672000
HOUR = 3600


@pytest.fixture
def health() -> HealthMonitor:
    return HealthMonitor()


@pytest.fixture
def runner(rate_repo, pair_repo, config, health) -> TrendRunner:
    detector = TrendDetector(rate_repo, pair_repo, config, clock=lambda: BASE_TS + 41 * HOUR)
    return TrendRunner(detector, pair_repo, health=health)


class TestTrendRunner:
    def test_step_classifies_active_pairs(self, runner, pair_repo, load_candles, make_trend) -> None:
        pair_repo.save_pair(Pair(id=2, base_code="USD", target_code="JPY"))
        pair_repo.save_pair(Pair(id=3, base_code="USD", target_code="CHF", active=False))
        load_candles(1, make_trend(count=40))
        load_candles(2, make_trend(count=40, price=150.0, step=-0.002))

        verdicts = runner.step()

        assert set(verdicts) == {1, 2}
        assert verdicts[1].direction == "UP"
        assert verdicts[2].direction == "DOWN"
        assert pair_repo.get_pair(2).trend.direction == "DOWN"

    def test_source_failure_recorded(self, runner, rate_repo, health) -> None:
        rate_repo.fail = True

        verdicts = runner.step()

        assert verdicts == {}
        errors = health.get_recent_errors("trend")
        assert len(errors) == 1
        assert errors[0].pair_id == 1
        assert errors[0].exc_type == "DataSourceError"
        assert health.get_component_status("trend").heartbeat_count == 1

    def test_insufficient_data_is_a_verdict(self, runner, health) -> None:
        verdicts = runner.step()
        assert verdicts[1].error is not None
        assert health.get_recent_errors("trend") == []

    def test_stop_before_run(self, runner, health) -> None:
        runner.stop()
        runner.run()
        assert health.get_component_status("trend").heartbeat_count == 0
