"""fxsignals exception hierarchy.

All application-specific exceptions inherit from :class:`FxSignalsError`.
Running short of candles is not an error: analysis code returns a result
with an ``error`` message instead, and only real faults are raised.
"""

from __future__ import annotations


class FxSignalsError(Exception):
    """Base exception for all fxsignals errors."""


# -- Configuration ----------------------------------------------------------


class ConfigError(FxSignalsError):
    """Invalid or missing configuration."""


# -- Data sources -----------------------------------------------------------


class DataSourceError(FxSignalsError):
    """Rate source or storage failure (network, I/O, unexpected response)."""


class RateLimitError(DataSourceError):
    """Rate provider API quota or rate limit exceeded."""


# -- Data integrity ---------------------------------------------------------


class DataCorruptionError(FxSignalsError):
    """Stored data is corrupted or in an unexpected format."""


class PairNotFoundError(FxSignalsError):
    """A pair id does not exist in the pair registry."""


# -- Delivery ---------------------------------------------------------------


class NotificationError(FxSignalsError):
    """A notification channel rejected or failed to deliver a message."""
