"""Re-run level and trap analysis around a stored consolidation.

Used by ``scripts/consolidation_tool.py`` to explain why a consolidation was
recorded: the candles analysed, the significant levels over a longer
history, and any price trap whose levels coincide with the stored range.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fxsignals.analysis.candles import get_candles_in_range
from fxsignals.analysis.indicators import TrendStrength, analyze_trend_strength
from fxsignals.analysis.swings import find_significant_levels
from fxsignals.analysis.traps import find_price_traps_between_levels
from fxsignals.core.config import AnalysisConfig
from fxsignals.core.constants import SECONDS_PER_DAY, SECONDS_PER_HOUR
from fxsignals.core.database import RateRepository
from fxsignals.models.candle import Candle
from fxsignals.models.consolidation import Consolidation
from fxsignals.models.levels import PriceTrap, SignificantLevel

logger = logging.getLogger(__name__)

HISTORY_DAYS = 30
LEVEL_MATCH_TOLERANCE = 0.0001

MIN_BREAKOUT_PERCENT = 0.1
MAX_DURATION_SHARE_PERCENT = 70.0
MAX_TRAP_RANGE_PERCENT = 2.0


@dataclass
class TrapCheck:
    """Plausibility checks for a trap matching the consolidation."""

    trap: PriceTrap
    duration_share_percent: float
    range_percent: float

    @property
    def strong_breakout(self) -> bool:
        return self.trap.breakout_strength >= MIN_BREAKOUT_PERCENT

    @property
    def reasonable_duration(self) -> bool:
        return self.duration_share_percent <= MAX_DURATION_SHARE_PERCENT

    @property
    def reasonable_range(self) -> bool:
        return self.range_percent <= MAX_TRAP_RANGE_PERCENT

    @property
    def passes(self) -> bool:
        return self.strong_breakout and self.reasonable_duration and self.reasonable_range


@dataclass
class ConsolidationDiagnosis:
    consolidation: Consolidation
    candles: list[Candle] = field(default_factory=list)
    levels: list[SignificantLevel] = field(default_factory=list)
    traps: list[PriceTrap] = field(default_factory=list)
    match: TrapCheck | None = None
    trend: TrendStrength | None = None

    def summary_lines(self) -> list[str]:
        c = self.consolidation
        lines = [
            f"Consolidation {c.id} (pair {c.pair_id})",
            f"Range: {c.support_level:.5f} - {c.resistance_level:.5f} ({c.range_percent:.3f}%)",
            f"Breakout: {c.breakout_direction} at {c.broken_at}",
            f"Analysed {len(self.candles)} candles; {len(self.levels)} significant levels;"
            f" {len(self.traps)} traps",
        ]
        if self.trend is not None:
            lines.append(
                f"Net move: {self.trend.direction} {self.trend.strength:.2f}% over {self.trend.periods}"
                f" candles (max pullback {self.trend.max_pullback:.2f}%)"
            )
        if self.match is None:
            lines.append("No trap matches the stored range")
            return lines
        t = self.match.trap
        lines += [
            f"Matching trap: {t.lower_level:.5f} - {t.upper_level:.5f},"
            f" {t.duration} candles (indices {t.start_index}-{t.end_index})",
            f"Trap breakout: {t.breakout_direction} ({t.breakout_strength:.4f}%), quality {t.quality:.2f}",
            f"Breakout >= {MIN_BREAKOUT_PERCENT}%: {_mark(self.match.strong_breakout)}",
            f"Duration <= {MAX_DURATION_SHARE_PERCENT:.0f}%: {_mark(self.match.reasonable_duration)}"
            f" ({self.match.duration_share_percent:.1f}%)",
            f"Range <= {MAX_TRAP_RANGE_PERCENT}%: {_mark(self.match.reasonable_range)}"
            f" ({self.match.range_percent:.2f}%)",
            f"Meets criteria: {_mark(self.match.passes)}",
        ]
        return lines


def diagnose_consolidation(
    consolidation: Consolidation, rates: RateRepository, config: AnalysisConfig
) -> ConsolidationDiagnosis:
    """Rebuild the analysis window of *consolidation* and look for a matching trap."""
    end = consolidation.end_timestamp
    start = end - config.lookback_hours * SECONDS_PER_HOUR
    candles = get_candles_in_range(
        rates, consolidation.pair_id, start, end, config.fetch_interval_seconds, config.bucket_hours
    )
    history = get_candles_in_range(
        rates,
        consolidation.pair_id,
        consolidation.start_timestamp - HISTORY_DAYS * SECONDS_PER_DAY,
        end,
        config.fetch_interval_seconds,
        config.bucket_hours,
    )

    diagnosis = ConsolidationDiagnosis(consolidation=consolidation, candles=candles)
    diagnosis.levels = find_significant_levels(history)
    diagnosis.traps = find_price_traps_between_levels(candles, diagnosis.levels)
    diagnosis.trend = analyze_trend_strength(history)

    for trap in diagnosis.traps:
        if (
            abs(trap.lower_level - consolidation.support_level) < LEVEL_MATCH_TOLERANCE
            and abs(trap.upper_level - consolidation.resistance_level) < LEVEL_MATCH_TOLERANCE
        ):
            diagnosis.match = TrapCheck(
                trap=trap,
                duration_share_percent=trap.duration / len(candles) * 100.0,
                range_percent=(trap.upper_level - trap.lower_level) / trap.lower_level * 100.0,
            )
            break

    logger.debug(
        "Diagnosed consolidation %s: %d candles, %d levels, %d traps",
        consolidation.id,
        len(candles),
        len(diagnosis.levels),
        len(diagnosis.traps),
    )
    return diagnosis


def _mark(ok: bool) -> str:
    return "yes" if ok else "no"
