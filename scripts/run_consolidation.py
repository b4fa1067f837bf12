#!/usr/bin/env python3
"""Entry point for the consolidation and breakout detector.

Usage::

    python scripts/run_consolidation.py
"""

from __future__ import annotations

from pathlib import Path


def main() -> None:
    from fxsignals.consolidation.engine import ConsolidationDetector
    from fxsignals.consolidation.runner import ConsolidationRunner
    from fxsignals.core.config import AnalysisConfig
    from fxsignals.core.constants import SETTINGS_FILENAME, STRATEGY_DESCRIPTION, STRATEGY_NAME
    from fxsignals.core.database import (
        FileConsolidationRepository,
        FileOpportunityRepository,
        FilePairRepository,
        FileRateRepository,
        FileStrategyRepository,
    )
    from fxsignals.core.logging_setup import setup_logger

    base_dir = Path.cwd()
    setup_logger("consolidation", base_dir / "logs")
    setup_logger("fxsignals", base_dir / "logs")

    config = AnalysisConfig.from_file(base_dir / SETTINGS_FILENAME)
    pairs = FilePairRepository(base_dir)
    strategies = FileStrategyRepository(base_dir)
    strategies.ensure(STRATEGY_NAME, STRATEGY_DESCRIPTION)
    detector = ConsolidationDetector(
        rates=FileRateRepository(base_dir),
        consolidations=FileConsolidationRepository(base_dir),
        opportunities=FileOpportunityRepository(base_dir),
        strategies=strategies,
        config=config,
    )

    ConsolidationRunner(detector, pairs).run()


if __name__ == "__main__":
    main()
