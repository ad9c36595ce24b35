# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Terminal-friendly visualizations using Unicode characters.

These functions return Rich-markup strings for load gauges, spike
timelines and sparklines.
"""

from __future__ import annotations

_BLOCKS = " ▁▂▃▄▅▆▇█"


def _load_color(pct: float) -> str:
    if pct >= 85:
        return "red"
    if pct >= 50:
        return "yellow"
    return "green"


def load_gauge(pct: float, width: int = 10) -> str:
    """Compact percentage gauge for inline use in tables.

    Hotter readings are drawn in warmer colors:
        [yellow]██████░░░░[/] 62%
    """
    clamped = max(0.0, min(100.0, pct))
    filled = int(clamped / 100 * width)
    bar = "█" * filled + "░" * (width - filled)
    color = _load_color(clamped)
    return f"[{color}]{bar}[/] {clamped:.0f}%"


def sparkline(values: list[float], width: int | None = None) -> str:
    """Render a sparkline using Unicode block characters.

    Each value maps to one of 9 block heights.  If *width* is given and
    there are more values than that, values are downsampled by averaging.
    """
    if not values:
        return ""

    if width and len(values) > width:
        step = len(values) / width
        sampled = []
        for i in range(width):
            start = int(i * step)
            end = int((i + 1) * step)
            sampled.append(sum(values[start:end]) / (end - start))
        values = sampled

    min_v = min(values)
    max_v = max(values)
    range_v = max_v - min_v or 1

    return "".join(_BLOCKS[int((v - min_v) / range_v * 8)] for v in values)


def spike_strip(multipliers: list[float]) -> str:
    """One cell per tick: dim dot while normal, colored block during a spike."""
    cells = []
    for m in multipliers:
        if m <= 1.0:
            cells.append("[dim]·[/]")
        elif m >= 1.4:
            cells.append("[red]█[/]")
        else:
            cells.append("[yellow]█[/]")
    return "".join(cells)
