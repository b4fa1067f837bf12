"""Tests for fxsignals.consolidation.runner."""

from __future__ import annotations

import pytest

from fxsignals.consolidation.engine import ConsolidationDetector
from fxsignals.consolidation.runner import ConsolidationRunner
from fxsignals.core.config import AnalysisConfig
from fxsignals.core.health import HealthMonitor
from fxsignals.models.pair import Pair

BASE_TS = 1704672000
HOUR = 3600


@pytest.fixture
def health() -> HealthMonitor:
    return HealthMonitor()


@pytest.fixture
def runner(rate_repo, pair_repo, consolidation_repo, opportunity_repo, strategy_repo, health) -> ConsolidationRunner:
    detector = ConsolidationDetector(
        rate_repo,
        consolidation_repo,
        opportunity_repo,
        strategy_repo,
        AnalysisConfig(),
        clock=lambda: BASE_TS + 23 * HOUR,
    )
    return ConsolidationRunner(detector, pair_repo, health=health)


class TestConsolidationRunner:
    def test_only_trending_pairs_evaluated(
        self, runner, pair_repo, eurusd, trending_up, load_candles, make_band, opportunity_repo
    ) -> None:
        pair_repo.save_pair(eurusd.with_trend(trending_up))
        pair_repo.save_pair(Pair(id=2, base_code="USD", target_code="JPY"))
        pair_repo.save_pair(Pair(id=3, base_code="GBP", target_code="USD", active=False).with_trend(trending_up))
        load_candles(1, make_band())
        load_candles(3, make_band())

        results = runner.step()

        assert set(results) == {1}
        assert len(results[1].opportunities) == 1
        assert [o.pair_id for o in opportunity_repo.find_all()] == [1]

    def test_failure_recorded_and_heartbeat_sent(
        self, runner, pair_repo, eurusd, trending_up, rate_repo, health
    ) -> None:
        pair_repo.save_pair(eurusd.with_trend(trending_up))
        rate_repo.fail = True

        results = runner.step()

        assert results == {}
        errors = health.get_recent_errors("consolidation")
        assert [(e.pair_id, e.exc_type) for e in errors] == [(1, "DataSourceError")]
        assert health.get_component_status("consolidation").heartbeat_count == 1

    def test_no_trending_pairs(self, runner, health) -> None:
        assert runner.step() == {}
        assert health.get_component_status("consolidation").heartbeat_count == 1

    def test_stop_before_run(self, runner, health) -> None:
        runner.stop()
        runner.run()
        assert health.get_component_status("consolidation").heartbeat_count == 0
