#!/usr/bin/env python3
"""Entry point for the rate fetcher.

Usage::

    python scripts/run_fetcher.py
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    from fxsignals.core.config import AnalysisConfig
    from fxsignals.core.constants import SETTINGS_FILENAME
    from fxsignals.core.credentials import FastForexCredentials
    from fxsignals.core.database import FilePairRepository, FileRateRepository
    from fxsignals.core.exceptions import ConfigError
    from fxsignals.core.logging_setup import setup_logger
    from fxsignals.core.rate_client import FastForexClient
    from fxsignals.fetcher.runner import FetcherRunner

    base_dir = Path.cwd()
    setup_logger("fetcher", base_dir / "logs")
    setup_logger("fxsignals", base_dir / "logs")

    config = AnalysisConfig.from_file(base_dir / SETTINGS_FILENAME)
    try:
        creds = FastForexCredentials.require(base_dir)
    except ConfigError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)

    runner = FetcherRunner(
        client=FastForexClient(creds.api_key),
        pairs=FilePairRepository(base_dir),
        rates=FileRateRepository(base_dir),
        config=config,
    )
    runner.run()


if __name__ == "__main__":
    main()
