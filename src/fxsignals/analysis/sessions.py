"""FX trading sessions by UTC hour.

London and New York overlap between 13:00 and 16:00 UTC; those hours are
reported as London.
"""

from __future__ import annotations

from datetime import datetime, timezone

LONDON = "london"
NEW_YORK = "new_york"
ASIAN = "asian"
OVERNIGHT = "overnight"

_WEIGHTS = {LONDON: 1.0, NEW_YORK: 0.9, ASIAN: 0.6, OVERNIGHT: 0.3}
_DISPLAY_NAMES = {LONDON: "London", NEW_YORK: "New York", ASIAN: "Asian", OVERNIGHT: "Overnight"}


def session_at(timestamp: float) -> str:
    """Session active at *timestamp* (epoch seconds)."""
    hour = datetime.fromtimestamp(timestamp, tz=timezone.utc).hour
    if 8 <= hour < 16:
        return LONDON
    if 13 <= hour < 21:
        return NEW_YORK
    if 0 <= hour < 8:
        return ASIAN
    return OVERNIGHT


def session_weight(session: str) -> float:
    """Liquidity weight of *session*; ``0.5`` for unknown names."""
    return _WEIGHTS.get(session, 0.5)


def is_high_quality_session(session: str) -> bool:
    return session in (LONDON, NEW_YORK)


def session_display_name(session: str) -> str:
    return _DISPLAY_NAMES.get(session, "Unknown")
