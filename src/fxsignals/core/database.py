"""Repository interfaces for persistent storage.

Abstracts data access behind small interfaces so the analysis code never
touches files directly and tests can substitute in-memory fakes.  The file
implementations keep everything under one data directory::

    <base_dir>/pairs.json
    <base_dir>/strategies.json
    <base_dir>/consolidations.jsonl
    <base_dir>/opportunities.jsonl
    <base_dir>/rates/<pair_id>.jsonl

Usage::

    pairs = FilePairRepository(Path("data"))
    for pair in pairs.get_active_pairs():
        ...
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from fxsignals.core.constants import (
    CONSOLIDATIONS_FILENAME,
    OPPORTUNITIES_FILENAME,
    PAIRS_FILENAME,
    RATES_DIRNAME,
    STRATEGIES_FILENAME,
)
from fxsignals.core.events import EventBus, OpportunityCreated
from fxsignals.core.exceptions import DataCorruptionError, PairNotFoundError
from fxsignals.core.storage import FileStore
from fxsignals.core.symbols import parse_pair_symbol, to_pair_symbol
from fxsignals.models.candle import RateSample
from fxsignals.models.consolidation import Consolidation
from fxsignals.models.opportunity import Opportunity, Strategy
from fxsignals.models.pair import Pair, TrendState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------------


class RateRepository(ABC):
    """Raw rate samples, one stream per pair."""

    @abstractmethod
    def get_rates_in_range(self, pair_id: int, start: float, end: float) -> list[RateSample]:
        """Return samples with ``start <= timestamp <= end``, oldest first."""

    @abstractmethod
    def save_rates(self, samples: Iterable[RateSample]) -> None:
        """Persist a batch of samples (any mix of pairs)."""

    @abstractmethod
    def delete_before(self, cutoff: float) -> int:
        """Delete samples older than *cutoff*; return how many were removed."""


class FileRateRepository(RateRepository):
    """JSONL file per pair under ``<base_dir>/rates/``."""

    def __init__(self, base_dir: Path) -> None:
        self._dir = base_dir / RATES_DIRNAME
        self._lock = threading.Lock()

    def get_rates_in_range(self, pair_id: int, start: float, end: float) -> list[RateSample]:
        samples: list[RateSample] = []
        for record in FileStore.read_jsonl(self._pair_path(pair_id)):
            try:
                sample = RateSample.from_dict(record)
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping malformed rate record for pair %d: %s", pair_id, exc)
                continue
            if start <= sample.timestamp <= end:
                samples.append(sample)
        samples.sort(key=lambda s: s.timestamp)
        return samples

    def save_rates(self, samples: Iterable[RateSample]) -> None:
        by_pair: dict[int, list[dict[str, object]]] = {}
        for sample in samples:
            by_pair.setdefault(sample.pair_id, []).append(sample.to_dict())
        with self._lock:
            for pair_id, records in by_pair.items():
                FileStore.append_jsonl(self._pair_path(pair_id), records)

    def delete_before(self, cutoff: float) -> int:
        if not self._dir.is_dir():
            return 0
        removed = 0
        with self._lock:
            for path in sorted(self._dir.glob("*.jsonl")):
                records = FileStore.read_jsonl(path)
                kept = [r for r in records if float(r.get("timestamp", 0.0)) >= cutoff]
                if len(kept) != len(records):
                    FileStore.write_jsonl(path, kept)
                    removed += len(records) - len(kept)
        return removed

    def _pair_path(self, pair_id: int) -> Path:
        return self._dir / f"{pair_id}.jsonl"


# ---------------------------------------------------------------------------
# Pairs
# ---------------------------------------------------------------------------


class PairRepository(ABC):
    """Pair registry plus the trend state stored on each pair."""

    @abstractmethod
    def get_all_pairs(self) -> list[Pair]:
        """Return every pair ordered by id."""

    def get_active_pairs(self) -> list[Pair]:
        return [p for p in self.get_all_pairs() if p.active]

    def get_pair(self, pair_id: int) -> Pair:
        """Return the pair with *pair_id*.

        Raises
        ------
        PairNotFoundError
            If no pair has that id.
        """
        for pair in self.get_all_pairs():
            if pair.id == pair_id:
                return pair
        raise PairNotFoundError(f"pair {pair_id} not found")

    def find_by_symbol(self, symbol: str) -> Pair:
        """Return the pair written as *symbol* (``EUR/USD``, ``eur-usd``, ``EURUSD``).

        Raises
        ------
        ValueError
            If *symbol* is not a currency pair symbol.
        PairNotFoundError
            If no pair has those codes.
        """
        wanted = to_pair_symbol(*parse_pair_symbol(symbol))
        for pair in self.get_all_pairs():
            if pair.symbol == wanted:
                return pair
        raise PairNotFoundError(f"pair {wanted} not found")

    @abstractmethod
    def save_pair(self, pair: Pair) -> None:
        """Insert or replace *pair* (matched by id)."""

    def update_trend_state(self, pair_id: int, state: TrendState) -> Pair:
        """Replace the stored trend state of *pair_id* and return the updated pair."""
        updated = self.get_pair(pair_id).with_trend(state)
        self.save_pair(updated)
        return updated


class FilePairRepository(PairRepository):
    """``pairs.json`` holding a list of pair objects."""

    def __init__(self, base_dir: Path) -> None:
        self._path = base_dir / PAIRS_FILENAME
        self._lock = threading.Lock()

    def get_all_pairs(self) -> list[Pair]:
        raw = FileStore.read_json(self._path, default=[])
        if not isinstance(raw, list):
            raise DataCorruptionError(f"{self._path} must hold a JSON list")
        pairs: list[Pair] = []
        for item in raw:
            try:
                pairs.append(Pair.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed pair record %r: %s", item, exc)
        pairs.sort(key=lambda p: p.id)
        return pairs

    def save_pair(self, pair: Pair) -> None:
        with self._lock:
            pairs = {p.id: p for p in self.get_all_pairs()}
            pairs[pair.id] = pair
            ordered = sorted(pairs.values(), key=lambda p: p.id)
            FileStore.write_json(self._path, [p.to_dict() for p in ordered])


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class StrategyRepository(ABC):
    @abstractmethod
    def get_all(self) -> list[Strategy]:
        """Return every strategy ordered by id."""

    def find_by_name(self, name: str) -> Strategy | None:
        """Case-insensitive lookup; ``None`` if no strategy has that name."""
        wanted = name.strip().lower()
        for strategy in self.get_all():
            if strategy.name.strip().lower() == wanted:
                return strategy
        return None

    @abstractmethod
    def save(self, strategy: Strategy) -> None:
        """Insert or replace *strategy* (matched by id)."""

    def ensure(self, name: str, description: str = "") -> Strategy:
        """Return the strategy called *name*, creating an active one if missing."""
        existing = self.find_by_name(name)
        if existing is not None:
            return existing
        strategy = Strategy(
            id=max((s.id for s in self.get_all()), default=0) + 1,
            name=name,
            description=description,
        )
        self.save(strategy)
        logger.info("Strategy %r created with id %d", name, strategy.id)
        return strategy


class FileStrategyRepository(StrategyRepository):
    """``strategies.json`` holding a list of strategy objects."""

    def __init__(self, base_dir: Path) -> None:
        self._path = base_dir / STRATEGIES_FILENAME
        self._lock = threading.Lock()

    def get_all(self) -> list[Strategy]:
        raw = FileStore.read_json(self._path, default=[])
        if not isinstance(raw, list):
            raise DataCorruptionError(f"{self._path} must hold a JSON list")
        strategies: list[Strategy] = []
        for item in raw:
            try:
                strategies.append(Strategy.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed strategy record %r: %s", item, exc)
        strategies.sort(key=lambda s: s.id)
        return strategies

    def save(self, strategy: Strategy) -> None:
        with self._lock:
            by_id = {s.id: s for s in self.get_all()}
            by_id[strategy.id] = strategy
            ordered = sorted(by_id.values(), key=lambda s: s.id)
            FileStore.write_json(self._path, [s.to_dict() for s in ordered])


# ---------------------------------------------------------------------------
# Consolidations
# ---------------------------------------------------------------------------


class ConsolidationRepository(ABC):
    @abstractmethod
    def find_by_pair(self, pair_id: int) -> list[Consolidation]:
        """Return the consolidations recorded for *pair_id*, oldest first."""

    @abstractmethod
    def create(self, consolidation: Consolidation) -> Consolidation:
        """Persist *consolidation* and return it with its assigned id."""

    def get(self, consolidation_id: int) -> Consolidation | None:
        for record in self.find_all():
            if record.id == consolidation_id:
                return record
        return None

    @abstractmethod
    def find_all(self) -> list[Consolidation]:
        """Return every stored consolidation."""

    @abstractmethod
    def delete(self, consolidation_id: int) -> bool:
        """Remove one consolidation; ``False`` if it did not exist."""


class FileConsolidationRepository(ConsolidationRepository):
    """Append-only ``consolidations.jsonl``; ids increase monotonically."""

    def __init__(self, base_dir: Path) -> None:
        self._path = base_dir / CONSOLIDATIONS_FILENAME
        self._lock = threading.Lock()

    def find_all(self) -> list[Consolidation]:
        return _load_records(self._path, Consolidation.from_dict, "consolidation")

    def find_by_pair(self, pair_id: int) -> list[Consolidation]:
        return [c for c in self.find_all() if c.pair_id == pair_id]

    def create(self, consolidation: Consolidation) -> Consolidation:
        with self._lock:
            stored = consolidation.with_id(_next_id(self.find_all()))
            FileStore.append_jsonl(self._path, [stored.to_dict()])
        logger.info(
            "Consolidation %d stored for pair %d (%s breakout)",
            stored.id,
            stored.pair_id,
            stored.breakout_direction,
        )
        return stored

    def delete(self, consolidation_id: int) -> bool:
        with self._lock:
            records = self.find_all()
            kept = [c for c in records if c.id != consolidation_id]
            if len(kept) == len(records):
                return False
            FileStore.write_jsonl(self._path, [c.to_dict() for c in kept])
        logger.info("Consolidation %d deleted", consolidation_id)
        return True


# ---------------------------------------------------------------------------
# Opportunities
# ---------------------------------------------------------------------------


class OpportunityRepository(ABC):
    @abstractmethod
    def create(self, opportunity: Opportunity) -> Opportunity:
        """Persist *opportunity* and return it with its assigned id."""

    @abstractmethod
    def find_all(self) -> list[Opportunity]:
        """Return every stored opportunity, oldest first."""

    def find_by_pair(self, pair_id: int) -> list[Opportunity]:
        return [o for o in self.find_all() if o.pair_id == pair_id]

    @abstractmethod
    def delete_by_consolidation(self, consolidation_id: int) -> int:
        """Remove opportunities created from *consolidation_id*; return how many."""


class FileOpportunityRepository(OpportunityRepository):
    """Append-only ``opportunities.jsonl``.

    When an :class:`~fxsignals.core.events.EventBus` is given, an
    :class:`~fxsignals.core.events.OpportunityCreated` event is published
    after every successful write.
    """

    def __init__(self, base_dir: Path, event_bus: EventBus | None = None) -> None:
        self._path = base_dir / OPPORTUNITIES_FILENAME
        self._bus = event_bus
        self._lock = threading.Lock()

    def find_all(self) -> list[Opportunity]:
        return _load_records(self._path, Opportunity.from_dict, "opportunity")

    def create(self, opportunity: Opportunity) -> Opportunity:
        with self._lock:
            stored = opportunity.with_id(_next_id(self.find_all()))
            FileStore.append_jsonl(self._path, [stored.to_dict()])
        logger.info(
            "Opportunity %d stored: %s pair %d entry=%.5f",
            stored.id,
            stored.signal_type,
            stored.pair_id,
            stored.entry_rate,
        )
        if self._bus is not None:
            self._bus.publish(OpportunityCreated(opportunity=stored, timestamp=time.time()))
        return stored

    def delete_by_consolidation(self, consolidation_id: int) -> int:
        with self._lock:
            records = self.find_all()
            kept = [o for o in records if o.consolidation_id != consolidation_id]
            removed = len(records) - len(kept)
            if removed:
                FileStore.write_jsonl(self._path, [o.to_dict() for o in kept])
        return removed


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_records(path: Path, factory, label: str) -> list:
    records = []
    for data in FileStore.read_jsonl(path):
        try:
            records.append(factory(data))
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed %s record: %s", label, exc)
    return records


def _next_id(records: Iterable[Consolidation | Opportunity]) -> int:
    return max((r.id or 0 for r in records), default=0) + 1
