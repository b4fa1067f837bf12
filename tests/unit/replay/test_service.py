"""Tests for fxsignals.replay.service."""

from __future__ import annotations

import pytest

from fxsignals.consolidation.engine import ConsolidationDetector
from fxsignals.core.config import AnalysisConfig
from fxsignals.replay.service import ANALYSIS_FAILED, PAIR_NOT_FOUND, ReplayService
from fxsignals.trend.classifier import TrendDetector

BASE_TS = 1704672000
HOUR = 3600
NOW = BASE_TS + 70 * HOUR
END = BASE_TS + 63 * HOUR


@pytest.fixture
def service(rate_repo, pair_repo, consolidation_repo, opportunity_repo, strategy_repo) -> ReplayService:
    trend = TrendDetector(rate_repo, pair_repo, AnalysisConfig(required_candles=40), clock=lambda: NOW)
    consolidation = ConsolidationDetector(
        rate_repo, consolidation_repo, opportunity_repo, strategy_repo, AnalysisConfig(), clock=lambda: NOW
    )
    return ReplayService(pair_repo, trend, consolidation, clock=lambda: NOW)


@pytest.fixture
def trend_then_breakout(load_candles, make_trend, make_band) -> None:
    """40 rising candles, a 20-candle band at the top, then an upside breakout."""
    trend = make_trend(count=40)
    band = make_band(price=trend[-1].close, band=20, breakout=3, start=BASE_TS + 40 * HOUR)
    load_candles(1, trend + band)


class TestReplayTrend:
    def test_verdict_fields(self, service, load_candles, make_trend, pair_repo) -> None:
        load_candles(1, make_trend(count=40))

        result = service.replay_trend(1, BASE_TS, BASE_TS + 40 * HOUR)

        assert result["error"] is None
        assert result["is_trending"]
        assert result["direction"] == "UP"
        assert result["pair_id"] == 1
        assert result["analysis_timestamp"] == NOW
        assert pair_repo.trend_writes == 0

    def test_unknown_pair(self, service) -> None:
        assert service.replay_trend(42, BASE_TS, END)["error"] == PAIR_NOT_FOUND

    def test_source_failure(self, service, rate_repo) -> None:
        rate_repo.fail = True
        assert service.replay_trend(1, BASE_TS, END)["error"] == ANALYSIS_FAILED


class TestReplayConsolidation:
    def test_uses_stored_trend(self, service, trend_then_breakout, pair_repo, eurusd, trending_up, consolidation_repo) -> None:
        pair_repo.save_pair(eurusd.with_trend(trending_up))

        result = service.replay_consolidation(1, BASE_TS, END)

        assert result["error"] is None
        assert result["candle_count"] == 63
        [summary] = result["consolidations"]
        assert summary["start_time"] == BASE_TS + 40 * HOUR
        assert summary["end_time"] == BASE_TS + 60 * HOUR
        assert summary["duration_hours"] == 20.0
        assert summary["breakout_direction"] == "UP"
        assert consolidation_repo.find_all() == []

    def test_non_trending_pair_still_analysed(self, service, trend_then_breakout, consolidation_repo) -> None:
        result = service.replay_consolidation(1, BASE_TS, END)

        assert result["error"] is None
        assert result["candle_count"] == 63
        [summary] = result["consolidations"]
        assert summary["start_time"] == BASE_TS + 40 * HOUR
        assert summary["breakout_direction"] == "UP"
        assert consolidation_repo.find_all() == []


class TestReplayFullFlow:
    def test_trend_then_opportunity(
        self, service, trend_then_breakout, pair_repo, consolidation_repo, opportunity_repo
    ) -> None:
        result = service.replay_full_flow(1, BASE_TS, END)

        assert result["error"] is None
        assert result["trend"]["is_trending"]
        assert result["trend"]["direction"] == "UP"
        [consolidation] = result["consolidations"]
        assert consolidation["trend_direction"] == "UP"
        assert consolidation["is_trend_direction"]
        [opportunity] = result["opportunities"]
        assert opportunity["signal_type"] == "BUY"
        assert opportunity["consolidation_id"] is None
        # nothing is stored by a replay
        assert pair_repo.trend_writes == 0
        assert consolidation_repo.find_all() == []
        assert opportunity_repo.find_all() == []

    def test_not_trending_returns_early(self, service, load_candles, make_band) -> None:
        load_candles(1, make_band(band=60, breakout=0))

        result = service.replay_full_flow(1, BASE_TS, BASE_TS + 60 * HOUR)

        assert result["trend"]["is_trending"] is False
        assert result["consolidations"] == []
        assert result["opportunities"] == []
        assert "candidates" not in result

    def test_unknown_pair(self, service) -> None:
        result = service.replay_full_flow(42, BASE_TS, END)
        assert result["error"] == PAIR_NOT_FOUND
        assert result["trend"] is None
