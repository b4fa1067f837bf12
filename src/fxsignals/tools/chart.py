"""Offline candlestick chart of a consolidation and its breakout."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from matplotlib.figure import Figure
from matplotlib.patches import Rectangle
from matplotlib.transforms import blended_transform_factory

from fxsignals.core.constants import UP
from fxsignals.models.candle import Candle
from fxsignals.models.consolidation import Consolidation
from fxsignals.models.levels import SignificantLevel

logger = logging.getLogger(__name__)

_BG = "#0b0f14"
_PANEL = "#111823"
_FG = "#d6dde6"
_GRID = "#2a3442"


def _style(fig: Figure, ax) -> None:
    fig.patch.set_facecolor(_BG)
    ax.set_facecolor(_PANEL)
    ax.tick_params(colors=_FG)
    for spine in ax.spines.values():
        spine.set_color(_GRID)
    ax.grid(True, color=_GRID, linewidth=0.6, alpha=0.35)


def render_consolidation_chart(
    candles: Sequence[Candle],
    consolidation: Consolidation,
    output: Path,
    title: str = "",
    levels: Sequence[SignificantLevel] = (),
) -> Path:
    """Draw *candles* with the consolidation box and breakout to a PNG at *output*.

    Significant levels, when given, are drawn as thin dashed lines.
    Returns *output*.
    """
    fig = Figure(figsize=(12, 6), dpi=100)
    fig.subplots_adjust(bottom=0.15, right=0.87, top=0.9)
    ax = fig.add_subplot(111)
    _style(fig, ax)
    ax.set_title(title or "Consolidation", color=_FG)

    if not candles:
        ax.set_title(f"{title} - no candles", color=_FG)
        output.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output, facecolor=fig.get_facecolor())
        return output

    for i, c in enumerate(candles):
        color = "green" if c.close >= c.open else "red"
        ax.plot([i, i], [c.low, c.high], linewidth=1, color=color)
        height = max(abs(c.close - c.open), 1e-12)
        ax.add_patch(
            Rectangle(
                (i - 0.35, min(c.open, c.close)), 0.7, height,
                facecolor=color, edgecolor=color, linewidth=1, alpha=0.9,
            )
        )

    y_low = min(c.low for c in candles)
    y_high = max(c.high for c in candles)
    pad = (y_high - y_low) * 0.03
    if not math.isfinite(pad) or pad <= 0:
        pad = max(abs(y_low) * 0.001, 1e-6)
    ax.set_ylim(y_low - pad, y_high + pad)

    timestamps = [c.timestamp for c in candles]
    start_x = _index_at(timestamps, consolidation.start_timestamp)
    end_x = _index_at(timestamps, consolidation.end_timestamp)
    ax.add_patch(
        Rectangle(
            (start_x - 0.5, consolidation.support_level),
            end_x - start_x + 1,
            consolidation.resistance_level - consolidation.support_level,
            facecolor="cyan", edgecolor="cyan", alpha=0.12,
        )
    )
    ax.axhline(y=consolidation.support_level, linewidth=1.2, color="blue", alpha=0.9)
    ax.axhline(y=consolidation.resistance_level, linewidth=1.2, color="orange", alpha=0.9)

    for level in levels:
        ax.axhline(y=level.level, linewidth=0.8, linestyle="--", color="gray", alpha=0.6)

    if consolidation.broken_at is not None:
        bx = _index_at(timestamps, consolidation.broken_at)
        marker = "^" if consolidation.breakout_direction == UP else "v"
        ax.scatter([bx], [candles[bx].close], s=60, marker=marker, color="yellow", zorder=6)

    trans = blended_transform_factory(ax.transAxes, ax.transData)
    for y, tag, color in (
        (consolidation.resistance_level, "RES", "orange"),
        (consolidation.support_level, "SUP", "blue"),
    ):
        ax.text(
            1.01, y, f"{tag} {y:.5f}",
            transform=trans, ha="left", va="center", fontsize=8, color=color,
            bbox=dict(facecolor=_BG, edgecolor=color, boxstyle="round,pad=0.18", alpha=0.85),
            clip_on=False,
        )

    step = max(1, len(candles) // 8)
    ticks = list(range(0, len(candles), step))
    ax.set_xticks(ticks)
    ax.set_xticklabels(
        [datetime.fromtimestamp(timestamps[i], tz=timezone.utc).strftime("%m-%d %H:%M") for i in ticks]
    )
    ax.tick_params(axis="x", labelsize=8)

    output.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output, facecolor=fig.get_facecolor())
    logger.info("Chart written to %s", output)
    return output


def _index_at(timestamps: Sequence[int], ts: float) -> int:
    """Index of the last candle starting at or before *ts* (clamped)."""
    idx = 0
    for i, t in enumerate(timestamps):
        if t <= ts:
            idx = i
        else:
            break
    return idx
