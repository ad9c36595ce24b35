# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Headline statistics and the rolling chart history."""

from __future__ import annotations

import math
import threading
from collections import deque

from thermamind.config import SimulationConfig
from thermamind.data.models import ChartPoint, FleetSnapshot, StatsSnapshot

NEUTRAL_PUE = 1.0

CHART_DATASET_LABELS = ("GPU Load %", "Cooling %", "Energy Savings %")


class MetricsAggregator:
    """Reduce fleet snapshots to statistics.  Holds no state of its own."""

    def __init__(self, config: SimulationConfig | None = None) -> None:
        self.config = config or SimulationConfig()

    def compute_stats(self, snapshot: FleetSnapshot) -> StatsSnapshot:
        """Headline statistics for *snapshot*.

        ``energy_savings_pct`` is deliberately unclamped: a heavy spike
        can push the draw above baseline and the value below zero.
        """
        c = self.config
        it_power_kw = sum(cl.total_power_kw for cl in snapshot.clusters)
        cooling_power_kw = sum(cl.total_cooling_power_kw for cl in snapshot.clusters)

        power_draw_mw = it_power_kw / 1000.0
        if it_power_kw > 0:
            pue = (it_power_kw + cooling_power_kw) / it_power_kw
        else:
            pue = NEUTRAL_PUE

        savings = (c.baseline_power_mw - power_draw_mw) / c.baseline_power_mw * 100

        return StatsSnapshot(
            energy_savings_pct=round(savings, 2),
            # Halves round up.
            co2_offset_kg=int(math.floor(power_draw_mw * c.co2_kg_per_mwh + 0.5)),
            power_draw_mw=round(power_draw_mw, 4),
            cooling_pue=round(pue, 3),
        )

    def chart_point(self, snapshot: FleetSnapshot) -> ChartPoint:
        """Node-level fleet averages for one chart entry."""
        c = self.config
        nodes = snapshot.nodes
        if nodes:
            avg_load = sum(n.gpu_load for n in nodes) / len(nodes)
            avg_cooling = sum(n.cooling for n in nodes) / len(nodes)
        else:
            avg_load = avg_cooling = 0.0

        if avg_cooling > 0:
            savings = c.chart_savings_floor + (1 - avg_load / avg_cooling) * c.chart_savings_span
        else:
            savings = c.chart_savings_floor
        savings = min(c.chart_savings_floor + c.chart_savings_span, max(c.chart_savings_floor, savings))

        return ChartPoint(
            time_label=snapshot.timestamp.strftime("%H:%M:%S"),
            avg_gpu_load=round(avg_load, 1),
            avg_cooling=round(avg_cooling, 1),
            energy_savings=round(savings, 1),
        )


class ChartHistory:
    """Bounded, thread-safe ring buffer of :class:`ChartPoint` entries.

    Shared by every session's push loop; appends evict the oldest entry
    once ``capacity`` is reached.
    """

    def __init__(self, capacity: int = 20) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._points: deque[ChartPoint] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._points)

    def append(self, point: ChartPoint) -> list[ChartPoint]:
        """Append *point* and return the resulting history, oldest first."""
        with self._lock:
            self._points.append(point)
            return list(self._points)

    def snapshot(self) -> list[ChartPoint]:
        with self._lock:
            return list(self._points)

    def clear(self) -> None:
        with self._lock:
            self._points.clear()

    def to_chart(self) -> dict:
        return chart_datasets(self.snapshot())


def chart_datasets(points: list[ChartPoint]) -> dict:
    """Chart structure with the three datasets in their fixed order."""
    return {
        "labels": [p.time_label for p in points],
        "datasets": [
            {"label": CHART_DATASET_LABELS[0], "data": [p.avg_gpu_load for p in points]},
            {"label": CHART_DATASET_LABELS[1], "data": [p.avg_cooling for p in points]},
            {"label": CHART_DATASET_LABELS[2], "data": [p.energy_savings for p in points]},
        ],
    }
