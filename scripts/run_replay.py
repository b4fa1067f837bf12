#!/usr/bin/env python3
"""Replay trend and consolidation analysis over a historical range.

Nothing is written; the result is printed as JSON.

Usage::

    python scripts/run_replay.py 3 2024-05-01T00:00 2024-05-08T00:00
    python scripts/run_replay.py EURUSD 2024-05-01T00:00 2024-05-08T00:00 --mode trend
"""

from __future__ import annotations

import argparse
import json
from datetime import datetime, timezone
from pathlib import Path


def _parse_utc(value: str) -> float:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay fxsignals analysis over a date range")
    parser.add_argument("pair", help="pair id or symbol such as EUR/USD")
    parser.add_argument("start", type=_parse_utc, help="ISO datetime, UTC if no offset")
    parser.add_argument("end", type=_parse_utc, help="ISO datetime, UTC if no offset")
    parser.add_argument(
        "--mode", choices=("trend", "consolidation", "full"), default="full"
    )
    args = parser.parse_args()

    from fxsignals.consolidation.engine import ConsolidationDetector
    from fxsignals.core.config import AnalysisConfig
    from fxsignals.core.constants import SETTINGS_FILENAME
    from fxsignals.core.database import (
        FileConsolidationRepository,
        FileOpportunityRepository,
        FilePairRepository,
        FileRateRepository,
        FileStrategyRepository,
    )
    from fxsignals.core.exceptions import PairNotFoundError
    from fxsignals.core.logging_setup import setup_logger
    from fxsignals.replay.service import ReplayService
    from fxsignals.trend.classifier import TrendDetector

    base_dir = Path.cwd()
    setup_logger("fxsignals", base_dir / "logs", console=False)

    config = AnalysisConfig.from_file(base_dir / SETTINGS_FILENAME)
    pairs = FilePairRepository(base_dir)
    rates = FileRateRepository(base_dir)
    try:
        pair_id = int(args.pair) if args.pair.isdigit() else pairs.find_by_symbol(args.pair).id
    except (ValueError, PairNotFoundError) as exc:
        parser.error(str(exc))

    service = ReplayService(
        pairs,
        TrendDetector(rates, pairs, config),
        ConsolidationDetector(
            rates,
            FileConsolidationRepository(base_dir),
            FileOpportunityRepository(base_dir),
            FileStrategyRepository(base_dir),
            config,
        ),
    )

    if args.mode == "trend":
        result = service.replay_trend(pair_id, args.start, args.end)
    elif args.mode == "consolidation":
        result = service.replay_consolidation(pair_id, args.start, args.end)
    else:
        result = service.replay_full_flow(pair_id, args.start, args.end)
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
