"""Shared constants for fxsignals.

Every threshold the analysis pipeline uses has its default here so there is a
single source of truth for :class:`~fxsignals.core.config.AnalysisConfig`.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------
SECONDS_PER_HOUR: int = 3600
SECONDS_PER_DAY: int = 24 * SECONDS_PER_HOUR

# ---------------------------------------------------------------------------
# Directions and signal types
# ---------------------------------------------------------------------------
UP: str = "UP"
DOWN: str = "DOWN"
DIRECTIONS: frozenset[str] = frozenset({UP, DOWN})

BUY: str = "BUY"
SELL: str = "SELL"
SIGNAL_TYPES: frozenset[str] = frozenset({BUY, SELL})

SWING_HIGH: str = "high"
SWING_LOW: str = "low"

# ---------------------------------------------------------------------------
# Candle building
# ---------------------------------------------------------------------------
DEFAULT_FETCH_INTERVAL_SECONDS: int = 60  # nominal gap between rate samples
DEFAULT_BUCKET_HOURS: int = 1
MIN_BUCKET_FILL_RATIO: float = 0.8  # share of expected samples a bucket needs

# Weekend window where FX quotes go flat (UTC).  weekday(): Monday=0 .. Sunday=6
WEEKEND_START_WEEKDAY: int = 5  # Saturday
WEEKEND_START_HOUR: int = 1
WEEKEND_END_WEEKDAY: int = 6  # Sunday
WEEKEND_END_HOUR: int = 23  # inclusive

# ---------------------------------------------------------------------------
# Swing & level analysis
# ---------------------------------------------------------------------------
DEFAULT_SWING_LOOKBACK: int = 2
LEVEL_GROUP_TOLERANCE: float = 0.001  # 0.1% of the running group mean
LEVEL_TOUCH_TOLERANCE: float = 0.002  # 0.2% of the level
ZIGZAG_DEVIATION_PERCENT: float = 5.0
MAX_SIGNIFICANT_LEVELS: int = 8
MIN_ZIGZAG_CANDLES: int = 50
MIN_ZIGZAG_POINTS: int = 4
MIN_FALLBACK_CANDLES: int = 20
FALLBACK_WINDOW_CANDLES: int = 100
FALLBACK_SWING_LOOKBACK: int = 5
RECENCY_WINDOW_RATIO: float = 0.7  # touches after 70% of the window are "recent"
RECENCY_BONUS: int = 2

# Price traps (diagnostics only)
TRAP_MAX_LEVEL_DISTANCE_PERCENT: float = 3.0
TRAP_MIN_DURATION_CANDLES: int = 6
TRAP_LEVEL_TOLERANCE_RATIO: float = 0.05
TRAP_MAX_INTERNAL_VOLATILITY: float = 0.3
TRAP_BREAKOUT_CANDLES: int = 5

# ---------------------------------------------------------------------------
# Trend classification
# ---------------------------------------------------------------------------
DEFAULT_REQUIRED_CANDLES: int = 120
DEFAULT_EMA_SHORT_PERCENT: float = 0.2
DEFAULT_EMA_LONG_PERCENT: float = 0.5
DEFAULT_ADX_PERIOD: int = 14
DEFAULT_ADX_THRESHOLD: float = 25.0
TREND_WINDOW_RETRIES: int = 5
TREND_WINDOW_EXTENSION_HOURS: int = 24
TREND_CANDLE_SHORTFALL_ALLOWANCE: int = 10

# ---------------------------------------------------------------------------
# Consolidation & breakout
# ---------------------------------------------------------------------------
DEFAULT_LOOKBACK_HOURS: int = 48
DEFAULT_MIN_CONSOLIDATION_CANDLES: int = 6
DEFAULT_MAX_CONSOLIDATION_CANDLES: int = 48
DEFAULT_MIN_RANGE_PERCENT: float = 0.1
DEFAULT_MAX_RANGE_PERCENT: float = 0.5
DEFAULT_MAX_VOLATILITY_PERCENT: float = 0.6
DEFAULT_MIN_DIRECTION_CHANGES: int = 2
DEFAULT_BREAKOUT_CONFIRMATION_CANDLES: int = 1

QUALITY_TIGHTNESS_WEIGHT: float = 0.5
QUALITY_SIZE_WEIGHT: float = 0.3
QUALITY_BREAKOUT_WEIGHT: float = 0.2
QUALITY_BEST_RANGE_PERCENT: float = 0.25
QUALITY_SIZE_SATURATION: int = 24
QUALITY_NEUTRAL_BREAKOUT: float = 0.5

DEDUP_STRICT: str = "strict"
DEDUP_PROPORTIONAL: str = "proportional"
DEDUP_STRATEGIES: frozenset[str] = frozenset({DEDUP_STRICT, DEDUP_PROPORTIONAL})
DEFAULT_MAX_OVERLAP_RATIO: float = 0.4

EXISTING_RECORD_TOLERANCE_SECONDS: int = SECONDS_PER_HOUR

# ---------------------------------------------------------------------------
# Opportunities
# ---------------------------------------------------------------------------
STRATEGY_NAME: str = "Consolidation Breakout"
STRATEGY_DESCRIPTION: str = "Breakout from a tight range in the trend direction"
DEFAULT_STOP_LOSS_PERCENT: float = 0.5
DEFAULT_REWARD_RISK_RATIO: float = 2.0

# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------
DEFAULT_TREND_INTERVAL_SECONDS: int = 300
DEFAULT_CONSOLIDATION_INTERVAL_SECONDS: int = 900
DEFAULT_RETENTION_DAYS: int = 30
RETENTION_INTERVAL_SECONDS: int = SECONDS_PER_DAY

# ---------------------------------------------------------------------------
# File names
# ---------------------------------------------------------------------------
SETTINGS_FILENAME: str = "settings.json"
PAIRS_FILENAME: str = "pairs.json"
STRATEGIES_FILENAME: str = "strategies.json"
CONSOLIDATIONS_FILENAME: str = "consolidations.jsonl"
OPPORTUNITIES_FILENAME: str = "opportunities.jsonl"
RATES_DIRNAME: str = "rates"

FASTFOREX_BASE_URL: str = "https://api.fastforex.io"
TELEGRAM_API_URL: str = "https://api.telegram.org"
