#!/usr/bin/env python3
"""Inspect or remove a stored consolidation.

Usage::

    python scripts/consolidation_tool.py debug 757
    python scripts/consolidation_tool.py debug 757 --chart out/757.png
    python scripts/consolidation_tool.py cleanup 758
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


def main() -> None:
    parser = argparse.ArgumentParser(description="Consolidation debugging tool")
    parser.add_argument("operation", choices=("debug", "cleanup"))
    parser.add_argument("consolidation_id", type=int)
    parser.add_argument("--chart", type=Path, help="write a PNG chart (debug only)")
    args = parser.parse_args()

    from fxsignals.core.config import AnalysisConfig
    from fxsignals.core.constants import SETTINGS_FILENAME
    from fxsignals.core.database import (
        FileConsolidationRepository,
        FileOpportunityRepository,
        FileRateRepository,
    )
    from fxsignals.core.logging_setup import setup_logger
    from fxsignals.tools.diagnose import diagnose_consolidation

    base_dir = Path.cwd()
    setup_logger("fxsignals", base_dir / "logs", console=False)

    consolidations = FileConsolidationRepository(base_dir)
    consolidation = consolidations.get(args.consolidation_id)
    if consolidation is None:
        print(f"Consolidation {args.consolidation_id} not found")
        sys.exit(1)

    if args.operation == "cleanup":
        removed = FileOpportunityRepository(base_dir).delete_by_consolidation(consolidation.id)
        consolidations.delete(consolidation.id)
        print(f"Deleted {removed} opportunities and consolidation {consolidation.id}")
        return

    config = AnalysisConfig.from_file(base_dir / SETTINGS_FILENAME)
    diagnosis = diagnose_consolidation(consolidation, FileRateRepository(base_dir), config)
    for line in diagnosis.summary_lines():
        print(line)

    if args.chart:
        from fxsignals.tools.chart import render_consolidation_chart

        render_consolidation_chart(
            diagnosis.candles,
            consolidation,
            args.chart,
            title=f"Consolidation {consolidation.id}",
            levels=diagnosis.levels,
        )
        print(f"Chart written to {args.chart}")


if __name__ == "__main__":
    main()
