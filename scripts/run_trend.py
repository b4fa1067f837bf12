#!/usr/bin/env python3
"""Entry point for the trend classifier.

Usage::

    python scripts/run_trend.py
"""

from __future__ import annotations

from pathlib import Path


def main() -> None:
    from fxsignals.core.config import AnalysisConfig
    from fxsignals.core.constants import SETTINGS_FILENAME
    from fxsignals.core.database import FilePairRepository, FileRateRepository
    from fxsignals.core.logging_setup import setup_logger
    from fxsignals.trend.classifier import TrendDetector
    from fxsignals.trend.runner import TrendRunner

    base_dir = Path.cwd()
    setup_logger("trend", base_dir / "logs")
    setup_logger("fxsignals", base_dir / "logs")

    config = AnalysisConfig.from_file(base_dir / SETTINGS_FILENAME)
    pairs = FilePairRepository(base_dir)
    detector = TrendDetector(rates=FileRateRepository(base_dir), pairs=pairs, config=config)

    TrendRunner(detector, pairs).run()


if __name__ == "__main__":
    main()
