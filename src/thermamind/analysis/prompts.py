# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Prompt builders for the natural-language analysis service."""

from __future__ import annotations

from thermamind.analysis.advisor import efficiency_note
from thermamind.data.models import FleetSnapshot, StatsSnapshot

SYSTEM_PROMPT = (
    "You are ThermaMind AI, an expert data center optimization assistant. "
    "You reason only from the telemetry you are given."
)


def _fleet_lines(snapshot: FleetSnapshot) -> str:
    lines = []
    for c in snapshot.clusters:
        lines.append(
            f"- {c.name} ({c.profile.site}, {c.profile.workload}): {c.activity.value.upper()}\n"
            f"  GPU load {c.avg_gpu_load:.0f}%, cooling {c.avg_cooling:.0f}%, "
            f"power {c.total_power_kw:.1f} kW, "
            f"{c.active_node_count}/{c.node_count} nodes online, {efficiency_note(c)}"
            + (" [SPIKE]" if c.spike_active else "")
        )
    return "\n".join(lines)


def _stats_lines(snapshot: FleetSnapshot, stats: StatsSnapshot) -> str:
    return (
        f"- Energy savings: {stats.energy_savings_pct:.1f}% vs baseline\n"
        f"- Power draw: {stats.power_draw_mw:.2f} MW across {snapshot.node_count} GPU nodes\n"
        f"- Cooling efficiency (PUE): {stats.cooling_pue:.2f} (ideal is 1.0)\n"
        f"- CO2 offset: {stats.co2_offset_kg} kg"
    )


def build_analysis_prompt(
    snapshot: FleetSnapshot, stats: StatsSnapshot, max_words: int = 150
) -> str:
    """Status summary request for the current fleet."""
    return (
        "Analyze this real-time telemetry and provide actionable insights.\n\n"
        f"CLUSTER STATUS:\n{_fleet_lines(snapshot)}\n\n"
        f"OVERALL METRICS:\n{_stats_lines(snapshot, stats)}\n\n"
        "TASK:\n"
        "1. Summarize the current data center status in 2-3 sentences.\n"
        "2. Identify the most critical efficiency issue, if any.\n"
        "3. Give one specific recommendation with estimated energy savings.\n\n"
        f"Keep the response under {max_words} words."
    )


def build_question_prompt(
    question: str, snapshot: FleetSnapshot, stats: StatsSnapshot
) -> str:
    """Free-text question answered against the current fleet."""
    return (
        f'QUESTION: "{question}"\n\n'
        f"CURRENT STATE:\n{_fleet_lines(snapshot)}\n{_stats_lines(snapshot, stats)}\n\n"
        "Answer in 2-3 sentences and reference actual cluster data. "
        "If the data cannot answer the question, say so."
    )
