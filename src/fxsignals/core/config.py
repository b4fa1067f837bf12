"""Validated analysis configuration loaded from ``settings.json``."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fxsignals.core.constants import (
    DEDUP_STRATEGIES,
    DEDUP_STRICT,
    DEFAULT_ADX_PERIOD,
    DEFAULT_ADX_THRESHOLD,
    DEFAULT_BREAKOUT_CONFIRMATION_CANDLES,
    DEFAULT_BUCKET_HOURS,
    DEFAULT_CONSOLIDATION_INTERVAL_SECONDS,
    DEFAULT_EMA_LONG_PERCENT,
    DEFAULT_EMA_SHORT_PERCENT,
    DEFAULT_FETCH_INTERVAL_SECONDS,
    DEFAULT_LOOKBACK_HOURS,
    DEFAULT_MAX_CONSOLIDATION_CANDLES,
    DEFAULT_MAX_OVERLAP_RATIO,
    DEFAULT_MAX_RANGE_PERCENT,
    DEFAULT_MAX_VOLATILITY_PERCENT,
    DEFAULT_MIN_CONSOLIDATION_CANDLES,
    DEFAULT_MIN_DIRECTION_CHANGES,
    DEFAULT_MIN_RANGE_PERCENT,
    DEFAULT_REQUIRED_CANDLES,
    DEFAULT_RETENTION_DAYS,
    DEFAULT_REWARD_RISK_RATIO,
    DEFAULT_STOP_LOSS_PERCENT,
    DEFAULT_TREND_INTERVAL_SECONDS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisConfig:
    """Immutable snapshot of every tunable threshold.

    Build from a ``settings.json`` file via :meth:`from_file`, or construct
    directly for testing.  Percent fields are expressed in percent
    (``0.5`` means 0.5%), matching how the values are logged.
    """

    # -- candles ----------------------------------------------------------
    fetch_interval_seconds: int = DEFAULT_FETCH_INTERVAL_SECONDS
    bucket_hours: int = DEFAULT_BUCKET_HOURS

    # -- consolidation ----------------------------------------------------
    lookback_hours: int = DEFAULT_LOOKBACK_HOURS
    min_consolidation_candles: int = DEFAULT_MIN_CONSOLIDATION_CANDLES
    max_consolidation_candles: int = DEFAULT_MAX_CONSOLIDATION_CANDLES
    min_consolidation_range_percent: float = DEFAULT_MIN_RANGE_PERCENT
    max_consolidation_range_percent: float = DEFAULT_MAX_RANGE_PERCENT
    max_consolidation_volatility_percent: float = DEFAULT_MAX_VOLATILITY_PERCENT
    min_direction_changes: int = DEFAULT_MIN_DIRECTION_CHANGES
    min_oscillations: int | None = None
    breakout_confirmation_candles: int = DEFAULT_BREAKOUT_CONFIRMATION_CANDLES
    dedup_strategy: str = DEDUP_STRICT
    max_overlap_ratio: float = DEFAULT_MAX_OVERLAP_RATIO

    # -- trend ------------------------------------------------------------
    ema_short_percent: float = DEFAULT_EMA_SHORT_PERCENT
    ema_long_percent: float = DEFAULT_EMA_LONG_PERCENT
    adx_period: int = DEFAULT_ADX_PERIOD
    adx_threshold: float = DEFAULT_ADX_THRESHOLD
    required_candles: int = DEFAULT_REQUIRED_CANDLES

    # -- opportunities ----------------------------------------------------
    stop_loss_percent: float = DEFAULT_STOP_LOSS_PERCENT
    reward_risk_ratio: float = DEFAULT_REWARD_RISK_RATIO

    # -- services ---------------------------------------------------------
    trend_interval_seconds: int = DEFAULT_TREND_INTERVAL_SECONDS
    consolidation_interval_seconds: int = DEFAULT_CONSOLIDATION_INTERVAL_SECONDS
    retention_days: int = DEFAULT_RETENTION_DAYS

    # -- derived ----------------------------------------------------------

    @property
    def effective_min_oscillations(self) -> int:
        """Minimum oscillation segments; one more than direction changes unless set."""
        if self.min_oscillations is not None:
            return self.min_oscillations
        return self.min_direction_changes + 1

    @property
    def min_window_candles(self) -> int:
        """Fewest candles a consolidation analysis can work with."""
        return self.min_consolidation_candles + self.breakout_confirmation_candles

    # -- factory ----------------------------------------------------------

    @classmethod
    def from_file(cls, path: Path) -> AnalysisConfig:
        """Load from a ``settings.json`` file with validation.

        Missing or unparseable values fall back to defaults, as do
        non-positive intervals and bucket widths.  Validation warnings are
        logged but never raise.
        """
        try:
            raw = path.read_text(encoding="utf-8")
            data: dict[str, Any] = json.loads(raw) or {}
            if not isinstance(data, dict):
                data = {}
        except (OSError, json.JSONDecodeError, TypeError) as exc:
            logger.warning("Could not read config from %s: %s", path, exc)
            data = {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisConfig:
        """Build from a plain mapping, coercing each known key to its field type."""
        defaults = cls()
        kwargs: dict[str, Any] = {}
        for name in _INT_FIELDS:
            kwargs[name] = _safe_int(data.get(name), getattr(defaults, name))
        for name in _POSITIVE_INT_FIELDS:
            if kwargs[name] <= 0:
                logger.warning(
                    "Config: %s=%s must be > 0, using %s", name, kwargs[name], getattr(defaults, name)
                )
                kwargs[name] = getattr(defaults, name)
        for name in _FLOAT_FIELDS:
            kwargs[name] = _safe_float(data.get(name), getattr(defaults, name))

        min_osc = data.get("min_oscillations")
        kwargs["min_oscillations"] = None if min_osc is None else _safe_int(min_osc, 0) or None

        strategy = str(data.get("dedup_strategy", DEDUP_STRICT) or DEDUP_STRICT).strip().lower()
        kwargs["dedup_strategy"] = strategy if strategy in DEDUP_STRATEGIES else DEDUP_STRICT

        cfg = cls(**kwargs)
        for err in cfg.validate():
            logger.warning("Config validation: %s", err)
        return cfg

    # -- validation -------------------------------------------------------

    def validate(self) -> list[str]:
        """Return a list of human-readable validation warnings (empty = OK).

        An unsatisfiable combination is reported here but still usable: the
        engine simply finds no candidates with it.
        """
        errors: list[str] = []
        if self.fetch_interval_seconds <= 0:
            errors.append(f"fetch_interval_seconds={self.fetch_interval_seconds} must be > 0.")
        if self.bucket_hours <= 0:
            errors.append(f"bucket_hours={self.bucket_hours} must be > 0.")
        if self.lookback_hours <= 0:
            errors.append(f"lookback_hours={self.lookback_hours} must be > 0.")
        if self.min_consolidation_candles < 2:
            errors.append(
                f"min_consolidation_candles={self.min_consolidation_candles} must be >= 2."
            )
        if self.max_consolidation_candles < self.min_consolidation_candles:
            errors.append(
                f"max_consolidation_candles={self.max_consolidation_candles} is below "
                f"min_consolidation_candles={self.min_consolidation_candles}."
            )
        if self.min_consolidation_range_percent < 0:
            errors.append(
                f"min_consolidation_range_percent={self.min_consolidation_range_percent} "
                "must be >= 0."
            )
        if self.max_consolidation_range_percent < self.min_consolidation_range_percent:
            errors.append(
                f"max_consolidation_range_percent={self.max_consolidation_range_percent} is "
                f"below min_consolidation_range_percent={self.min_consolidation_range_percent}."
            )
        if self.max_consolidation_volatility_percent <= 0:
            errors.append(
                "max_consolidation_volatility_percent="
                f"{self.max_consolidation_volatility_percent} must be > 0."
            )
        if self.min_direction_changes < 0:
            errors.append(f"min_direction_changes={self.min_direction_changes} must be >= 0.")
        if self.breakout_confirmation_candles < 1:
            errors.append(
                f"breakout_confirmation_candles={self.breakout_confirmation_candles} must be >= 1."
            )
        if not 0.0 <= self.max_overlap_ratio <= 1.0:
            errors.append(f"max_overlap_ratio={self.max_overlap_ratio} outside 0-1 range.")
        if not 0.0 < self.ema_short_percent < self.ema_long_percent <= 1.0:
            errors.append(
                f"ema_short_percent={self.ema_short_percent} and ema_long_percent="
                f"{self.ema_long_percent} must satisfy 0 < short < long <= 1."
            )
        if self.adx_period < 1:
            errors.append(f"adx_period={self.adx_period} must be >= 1.")
        if not 0.0 <= self.adx_threshold <= 100.0:
            errors.append(f"adx_threshold={self.adx_threshold} outside 0-100 range.")
        if self.required_candles < 2 * self.adx_period:
            errors.append(
                f"required_candles={self.required_candles} is below 2 * adx_period; "
                "ADX will never be computable."
            )
        if self.stop_loss_percent <= 0:
            errors.append(f"stop_loss_percent={self.stop_loss_percent} must be > 0.")
        if self.reward_risk_ratio <= 0:
            errors.append(f"reward_risk_ratio={self.reward_risk_ratio} must be > 0.")
        if self.retention_days < 1:
            errors.append(f"retention_days={self.retention_days} must be >= 1.")
        return errors


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_INT_FIELDS: tuple[str, ...] = (
    "fetch_interval_seconds",
    "bucket_hours",
    "lookback_hours",
    "min_consolidation_candles",
    "max_consolidation_candles",
    "min_direction_changes",
    "breakout_confirmation_candles",
    "adx_period",
    "required_candles",
    "trend_interval_seconds",
    "consolidation_interval_seconds",
    "retention_days",
)

# divisors and loop intervals; a non-positive value falls back to the default
_POSITIVE_INT_FIELDS: tuple[str, ...] = (
    "fetch_interval_seconds",
    "bucket_hours",
    "trend_interval_seconds",
    "consolidation_interval_seconds",
)

_FLOAT_FIELDS: tuple[str, ...] = (
    "min_consolidation_range_percent",
    "max_consolidation_range_percent",
    "max_consolidation_volatility_percent",
    "max_overlap_ratio",
    "ema_short_percent",
    "ema_long_percent",
    "adx_threshold",
    "stop_loss_percent",
    "reward_risk_ratio",
)


def _safe_int(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(float(str(value).replace("%", "").strip()))
    except (TypeError, ValueError):
        return default


def _safe_float(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(str(value).replace("%", "").strip())
    except (TypeError, ValueError):
        return default
