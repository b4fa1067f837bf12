"""Tests for fxsignals.tools.chart."""

from __future__ import annotations

from pathlib import Path

import pytest

from fxsignals.models.consolidation import Consolidation
from fxsignals.models.levels import SignificantLevel
from fxsignals.tools.chart import _index_at, render_consolidation_chart

BASE_TS = 1704672000
HOUR = 3600
P = 1.1

_PNG_MAGIC = b"\x89PNG"


@pytest.fixture
def consolidation() -> Consolidation:
    return Consolidation(
        id=1,
        pair_id=1,
        trend_direction="UP",
        start_timestamp=BASE_TS,
        end_timestamp=BASE_TS + 20 * HOUR,
        resistance_level=P * 1.0015,
        support_level=P * 0.9985,
        broken_at=BASE_TS + 20 * HOUR,
        breakout_direction="UP",
        is_trend_direction=True,
    )


class TestRenderChart:
    def test_writes_png(self, tmp_path: Path, consolidation, make_band) -> None:
        out = tmp_path / "charts" / "eurusd.png"
        levels = [SignificantLevel(level=P, significance=2.0, last_touch=5, swing_type="high")]

        result = render_consolidation_chart(make_band(), consolidation, out, title="EUR/USD", levels=levels)

        assert result == out
        assert out.read_bytes()[:4] == _PNG_MAGIC

    def test_empty_candles(self, tmp_path: Path, consolidation) -> None:
        out = render_consolidation_chart([], consolidation, tmp_path / "empty.png", title="EUR/USD")
        assert out.read_bytes()[:4] == _PNG_MAGIC


class TestIndexAt:
    def test_last_candle_not_after(self) -> None:
        timestamps = [0, 3600, 7200]
        assert _index_at(timestamps, 3600) == 1
        assert _index_at(timestamps, 5000) == 1
        assert _index_at(timestamps, -1) == 0
        assert _index_at(timestamps, 99999) == 2
