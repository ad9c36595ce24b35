# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Per data-center reduction of cluster telemetry for analytics consumers."""

from __future__ import annotations

from thermamind.data.models import Cluster, NodeStatus, RegionSummary


def group_by_data_center(clusters: list[Cluster]) -> list[RegionSummary]:
    """Summarise *clusters* by the data center their site reports into.

    Groups are returned in order of first appearance.  The reduction is
    pure: the same clusters always give the same summaries.
    """
    grouped: dict[str, list[Cluster]] = {}
    for cluster in clusters:
        center = cluster.profile.data_center or "Unknown"
        grouped.setdefault(center, []).append(cluster)

    summaries: list[RegionSummary] = []
    for center, members in grouped.items():
        n = len(members)
        online = sum(1 for c in members if c.status is NodeStatus.online)
        summaries.append(
            RegionSummary(
                data_center=center,
                site_count=n,
                avg_gpu_load=round(sum(c.avg_gpu_load for c in members) / n),
                avg_cooling=round(sum(c.avg_cooling for c in members) / n),
                avg_power_kw=round(sum(c.total_power_kw for c in members) / n),
                avg_temperature_c=round(sum(c.avg_temperature_c for c in members) / n, 1),
                online_clusters=online,
                offline_clusters=n - online,
                active_spikes=sum(1 for c in members if c.spike_active),
            )
        )
    return summaries
