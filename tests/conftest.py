"""Shared pytest fixtures for fxsignals tests."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import pytest

from fxsignals.core.config import AnalysisConfig
from fxsignals.core.database import (
    ConsolidationRepository,
    OpportunityRepository,
    PairRepository,
    RateRepository,
    StrategyRepository,
)
from fxsignals.core.events import EventBus
from fxsignals.core.exceptions import DataSourceError
from fxsignals.models.candle import Candle, RateSample
from fxsignals.models.consolidation import Consolidation
from fxsignals.models.opportunity import Opportunity, Strategy
from fxsignals.models.pair import Pair, TrendState

# Monday 2024-01-08 00:00:00 UTC
BASE_TS = 1704672000
HOUR = 3600


# ---------------------------------------------------------------------------
# In-memory repositories
# ---------------------------------------------------------------------------


class InMemoryRateRepository(RateRepository):
    def __init__(self) -> None:
        self.samples: list[RateSample] = []
        self.fail = False

    def get_rates_in_range(self, pair_id: int, start: float, end: float) -> list[RateSample]:
        if self.fail:
            raise DataSourceError("rate store unavailable")
        found = [s for s in self.samples if s.pair_id == pair_id and start <= s.timestamp <= end]
        return sorted(found, key=lambda s: s.timestamp)

    def save_rates(self, samples: Iterable[RateSample]) -> None:
        self.samples.extend(samples)

    def delete_before(self, cutoff: float) -> int:
        before = len(self.samples)
        self.samples = [s for s in self.samples if s.timestamp >= cutoff]
        return before - len(self.samples)


class InMemoryPairRepository(PairRepository):
    def __init__(self, pairs: Iterable[Pair] = ()) -> None:
        self.pairs: dict[int, Pair] = {p.id: p for p in pairs}
        self.trend_writes = 0

    def get_all_pairs(self) -> list[Pair]:
        return [self.pairs[k] for k in sorted(self.pairs)]

    def save_pair(self, pair: Pair) -> None:
        self.pairs[pair.id] = pair

    def update_trend_state(self, pair_id: int, state: TrendState) -> Pair:
        self.trend_writes += 1
        return super().update_trend_state(pair_id, state)


class InMemoryStrategyRepository(StrategyRepository):
    def __init__(self, strategies: Iterable[Strategy] = ()) -> None:
        self.strategies: dict[int, Strategy] = {s.id: s for s in strategies}

    def get_all(self) -> list[Strategy]:
        return [self.strategies[k] for k in sorted(self.strategies)]

    def save(self, strategy: Strategy) -> None:
        self.strategies[strategy.id] = strategy


class InMemoryConsolidationRepository(ConsolidationRepository):
    def __init__(self) -> None:
        self.records: list[Consolidation] = []

    def find_all(self) -> list[Consolidation]:
        return list(self.records)

    def find_by_pair(self, pair_id: int) -> list[Consolidation]:
        return [c for c in self.records if c.pair_id == pair_id]

    def create(self, consolidation: Consolidation) -> Consolidation:
        stored = consolidation.with_id(len(self.records) + 1)
        self.records.append(stored)
        return stored

    def delete(self, consolidation_id: int) -> bool:
        before = len(self.records)
        self.records = [c for c in self.records if c.id != consolidation_id]
        return len(self.records) != before


class InMemoryOpportunityRepository(OpportunityRepository):
    def __init__(self) -> None:
        self.records: list[Opportunity] = []

    def find_all(self) -> list[Opportunity]:
        return list(self.records)

    def create(self, opportunity: Opportunity) -> Opportunity:
        stored = opportunity.with_id(len(self.records) + 1)
        self.records.append(stored)
        return stored

    def delete_by_consolidation(self, consolidation_id: int) -> int:
        before = len(self.records)
        self.records = [o for o in self.records if o.consolidation_id != consolidation_id]
        return before - len(self.records)


# ---------------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------------


def samples_for_candle(pair_id: int, candle: Candle) -> list[RateSample]:
    """60 one-minute samples that aggregate back into exactly *candle*."""
    rates = [candle.open, candle.high, candle.low] + [candle.close] * 57
    return [
        RateSample(pair_id=pair_id, rate=rate, timestamp=candle.timestamp + 30 + 60 * k)
        for k, rate in enumerate(rates)
    ]


def band_then_breakout(
    price: float = 1.1, band: int = 20, breakout: int = 3, start: int = BASE_TS
) -> list[Candle]:
    """*band* candles oscillating tightly around *price*, then closes 1% higher."""
    candles: list[Candle] = []
    for i in range(band):
        close = price * (1.001 if i % 2 == 0 else 0.999)
        candles.append(
            Candle(
                timestamp=start + i * HOUR,
                open=price,
                high=price * 1.0015,
                low=price * 0.9985,
                close=close,
            )
        )
    for j in range(breakout):
        candles.append(
            Candle(
                timestamp=start + (band + j) * HOUR,
                open=price * 1.005,
                high=price * 1.0105,
                low=price * 1.004,
                close=price * 1.01,
            )
        )
    return candles


def trending_candles(
    count: int = 40, price: float = 1.1, step: float = 0.002, start: int = BASE_TS
) -> list[Candle]:
    """Steady trend: each close moves by *step* (fractional) from the last."""
    candles: list[Candle] = []
    close = price
    for i in range(count):
        prev = close
        close = prev * (1 + step)
        hi, lo = max(prev, close), min(prev, close)
        candles.append(
            Candle(
                timestamp=start + i * HOUR,
                open=prev,
                high=hi * 1.0005,
                low=lo * 0.9995,
                close=close,
            )
        )
    return candles


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> AnalysisConfig:
    """Defaults, with a short trend window so tests need fewer candles."""
    return AnalysisConfig(required_candles=40)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def rate_repo() -> InMemoryRateRepository:
    return InMemoryRateRepository()


@pytest.fixture
def strategy_repo() -> InMemoryStrategyRepository:
    return InMemoryStrategyRepository([Strategy(id=1, name="Consolidation Breakout")])


@pytest.fixture
def consolidation_repo() -> InMemoryConsolidationRepository:
    return InMemoryConsolidationRepository()


@pytest.fixture
def opportunity_repo() -> InMemoryOpportunityRepository:
    return InMemoryOpportunityRepository()


@pytest.fixture
def eurusd() -> Pair:
    return Pair(id=1, base_code="EUR", target_code="USD")


@pytest.fixture
def trending_up() -> TrendState:
    return TrendState(is_trending=True, direction="UP", strength=30.0, detected_at=BASE_TS)


@pytest.fixture
def pair_repo(eurusd: Pair) -> InMemoryPairRepository:
    return InMemoryPairRepository([eurusd])


@pytest.fixture
def load_candles(rate_repo: InMemoryRateRepository) -> Callable[[int, list[Candle]], None]:
    """Store samples that rebuild the given candles for a pair."""

    def _load(pair_id: int, candles: list[Candle]) -> None:
        for candle in candles:
            rate_repo.save_rates(samples_for_candle(pair_id, candle))

    return _load


@pytest.fixture
def sample_settings_dict() -> dict[str, Any]:
    """Raw settings.json-style dict for config loading tests."""
    return {
        "lookback_hours": 72,
        "min_consolidation_candles": 8,
        "max_consolidation_range_percent": 0.4,
        "dedup_strategy": "proportional",
        "required_candles": 96,
        "stop_loss_percent": 0.25,
    }


@pytest.fixture
def settings_file(tmp_path: Path, sample_settings_dict: dict[str, Any]) -> Path:
    p = tmp_path / "settings.json"
    p.write_text(json.dumps(sample_settings_dict, indent=2), encoding="utf-8")
    return p


@pytest.fixture
def make_band() -> Callable[..., list[Candle]]:
    return band_then_breakout


@pytest.fixture
def make_trend() -> Callable[..., list[Candle]]:
    return trending_candles
