"""Tests for fxsignals.fetcher.runner."""

from __future__ import annotations

import pytest

from fxsignals.core.config import AnalysisConfig
from fxsignals.core.events import RatesFetched
from fxsignals.core.exceptions import DataSourceError
from fxsignals.core.health import HealthMonitor
from fxsignals.core.rate_client import RateClient
from fxsignals.fetcher.runner import FetcherRunner, group_by_base
from fxsignals.models.pair import Pair

NOW = 1704700000.0


class FakeRateClient(RateClient):
    """Returns canned quotes per base; bases listed in *failing* raise."""

    def __init__(self, quotes: dict[str, dict[str, float]], failing: tuple[str, ...] = ()) -> None:
        self.quotes = quotes
        self.failing = failing
        self.calls: list[tuple[str, list[str]]] = []

    def fetch_multi(self, base: str, targets: list[str]) -> dict[str, float]:
        self.calls.append((base, targets))
        if base in self.failing:
            raise DataSourceError(f"{base} unavailable")
        return {t: r for t, r in self.quotes.get(base, {}).items() if t in targets}


@pytest.fixture
def health() -> HealthMonitor:
    return HealthMonitor()


@pytest.fixture
def pairs(pair_repo):
    pair_repo.save_pair(Pair(id=2, base_code="EUR", target_code="JPY"))
    pair_repo.save_pair(Pair(id=3, base_code="USD", target_code="CHF"))
    pair_repo.save_pair(Pair(id=4, base_code="GBP", target_code="USD", active=False))
    return pair_repo


def _runner(client, pairs, rate_repo, health, event_bus=None) -> FetcherRunner:
    return FetcherRunner(client, pairs, rate_repo, AnalysisConfig(), health=health, event_bus=event_bus, clock=lambda: NOW)


class TestGroupByBase:
    def test_first_seen_order(self) -> None:
        pairs = [
            Pair(id=1, base_code="USD", target_code="JPY"),
            Pair(id=2, base_code="EUR", target_code="USD"),
            Pair(id=3, base_code="USD", target_code="CHF"),
        ]
        groups = group_by_base(pairs)
        assert list(groups) == ["USD", "EUR"]
        assert [p.id for p in groups["USD"]] == [1, 3]


class TestFetcherRunner:
    def test_one_request_per_base(self, pairs, rate_repo, health, event_bus) -> None:
        client = FakeRateClient({"EUR": {"USD": 1.09, "JPY": 161.0}, "USD": {"CHF": 0.86}})
        fetched: list[RatesFetched] = []
        event_bus.subscribe(RatesFetched, fetched.append)

        stored = _runner(client, pairs, rate_repo, health, event_bus).step()

        assert stored == 3
        assert client.calls == [("EUR", ["USD", "JPY"]), ("USD", ["CHF"])]
        assert {(s.pair_id, s.rate, s.timestamp) for s in rate_repo.samples} == {
            (1, 1.09, NOW),
            (2, 161.0, NOW),
            (3, 0.86, NOW),
        }
        assert [(e.base_code, e.sample_count) for e in fetched] == [("EUR", 2), ("USD", 1)]
        assert health.get_component_status("fetcher").heartbeat_count == 1

    def test_missing_quote_skipped(self, pairs, rate_repo, health) -> None:
        client = FakeRateClient({"EUR": {"USD": 1.09}, "USD": {"CHF": 0.86}})
        assert _runner(client, pairs, rate_repo, health).step() == 2
        assert {s.pair_id for s in rate_repo.samples} == {1, 3}

    def test_failed_base_does_not_stop_others(self, pairs, rate_repo, health) -> None:
        client = FakeRateClient({"USD": {"CHF": 0.86}}, failing=("EUR",))

        stored = _runner(client, pairs, rate_repo, health).step()

        assert stored == 1
        errors = health.get_recent_errors("fetcher")
        assert [e.exc_type for e in errors] == ["DataSourceError"]
        assert health.get_component_status("fetcher").heartbeat_count == 1

    def test_stop_before_run(self, pairs, rate_repo, health) -> None:
        runner = _runner(FakeRateClient({}), pairs, rate_repo, health)
        runner.stop()
        runner.run()
        assert rate_repo.samples == []
