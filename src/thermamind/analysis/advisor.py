# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Rule-based cooling advice for a single load/cooling reading."""

from __future__ import annotations

from thermamind.data.models import Cluster, NodeStatus

OVERCOOLED_MARGIN_PCT = 10
HIGH_LOAD_PCT = 90
IDLE_LOAD_PCT = 50
IDLE_COOLING_PCT = 50

NO_ACTION = "No optimization needed."


def recommend_action(gpu_load: float, cooling: float) -> str:
    """Return one operator action for the given percentages."""
    if cooling > gpu_load + OVERCOOLED_MARGIN_PCT:
        return "Reduce cooling power: overcooled."
    if gpu_load > HIGH_LOAD_PCT:
        return "High GPU load detected: scale resources."
    if gpu_load < IDLE_LOAD_PCT and cooling > IDLE_COOLING_PCT:
        return "Lower cooling and idle GPUs."
    return NO_ACTION


def savings_estimate(gpu_load: float, cooling: float) -> int:
    """Rough percent of cooling power recoverable, 0-20.

    Only cooling in excess of the ideal headroom counts, scaled to the
    20% ceiling a retuned air loop typically recovers.
    """
    excess = max(0.0, cooling - (gpu_load + 5))
    return int(min(20, round(excess * 0.8)))


def cooling_gap(cluster: Cluster) -> float:
    """Cooling minus load; positive means over-cooled."""
    return cluster.avg_cooling - cluster.avg_gpu_load


def efficiency_note(cluster: Cluster) -> str:
    """One-phrase efficiency verdict used in analysis prompts."""
    if cluster.status is NodeStatus.offline:
        return "offline"
    gap = cooling_gap(cluster)
    if gap > 15:
        return f"over-cooled by {gap:.0f}%"
    if gap < -15:
        return f"under-cooled by {-gap:.0f}%"
    return "well matched"
