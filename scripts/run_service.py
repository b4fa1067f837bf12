#!/usr/bin/env python3
"""Entry point for the combined service: fetch, trend, consolidation, retention.

All jobs share one scheduler thread, so each cycle's trend pass completes
before its consolidation pass.

Usage::

    python scripts/run_service.py
    python scripts/run_service.py --no-fetch     # analyse existing samples only
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    from fxsignals.consolidation.engine import ConsolidationDetector
    from fxsignals.consolidation.runner import ConsolidationRunner
    from fxsignals.core.config import AnalysisConfig
    from fxsignals.core.constants import (
        RETENTION_INTERVAL_SECONDS,
        SETTINGS_FILENAME,
        STRATEGY_DESCRIPTION,
        STRATEGY_NAME,
    )
    from fxsignals.core.credentials import FastForexCredentials, TelegramCredentials
    from fxsignals.core.database import (
        FileConsolidationRepository,
        FileOpportunityRepository,
        FilePairRepository,
        FileRateRepository,
        FileStrategyRepository,
    )
    from fxsignals.core.events import EventBus, OpportunityCreated
    from fxsignals.core.exceptions import ConfigError
    from fxsignals.core.health import HealthMonitor
    from fxsignals.core.logging_setup import setup_logger
    from fxsignals.core.rate_client import FastForexClient
    from fxsignals.fetcher.retention import RetentionJob
    from fxsignals.fetcher.runner import FetcherRunner
    from fxsignals.notify.telegram import TelegramNotifier
    from fxsignals.scheduler import Scheduler
    from fxsignals.trend.classifier import TrendDetector
    from fxsignals.trend.runner import TrendRunner

    base_dir = Path.cwd()
    logger = setup_logger("service", base_dir / "logs")
    setup_logger("fxsignals", base_dir / "logs")

    config = AnalysisConfig.from_file(base_dir / SETTINGS_FILENAME)
    bus = EventBus()
    health = HealthMonitor()

    pairs = FilePairRepository(base_dir)
    rates = FileRateRepository(base_dir)
    consolidations = FileConsolidationRepository(base_dir)
    opportunities = FileOpportunityRepository(base_dir, event_bus=bus)
    strategies = FileStrategyRepository(base_dir)
    strategies.ensure(STRATEGY_NAME, STRATEGY_DESCRIPTION)

    notifier = None
    telegram = TelegramCredentials.load(base_dir)
    if telegram.is_valid:
        notifier = TelegramNotifier(telegram, pairs, consolidations)
        bus.subscribe(OpportunityCreated, notifier.on_opportunity)
    else:
        logger.warning("Telegram not configured; opportunities will not be announced")

    scheduler = Scheduler()

    if "--no-fetch" not in sys.argv:
        try:
            creds = FastForexCredentials.require(base_dir)
        except ConfigError as exc:
            print(f"ERROR: {exc} (or pass --no-fetch)")
            sys.exit(1)
        fetcher = FetcherRunner(
            FastForexClient(creds.api_key), pairs, rates, config, health=health, event_bus=bus
        )
        scheduler.add_job("fetcher", config.fetch_interval_seconds, fetcher.step)

    trend = TrendRunner(TrendDetector(rates, pairs, config, event_bus=bus), pairs, health=health)
    consolidation = ConsolidationRunner(
        ConsolidationDetector(rates, consolidations, opportunities, strategies, config, event_bus=bus),
        pairs,
        health=health,
    )
    retention = RetentionJob(rates, config.retention_days, health=health)

    scheduler.add_job("trend", config.trend_interval_seconds, trend.step)
    scheduler.add_job("consolidation", config.consolidation_interval_seconds, consolidation.step)
    scheduler.add_job("retention", RETENTION_INTERVAL_SECONDS, retention.step)
    for job in scheduler.jobs:
        health.expect(job.name, job.interval)
    scheduler.add_job("health", config.trend_interval_seconds, health.log_summary)

    try:
        scheduler.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        scheduler.stop()
    finally:
        if notifier is not None:
            notifier.close()


if __name__ == "__main__":
    main()
