# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Fleet data models, cluster profiles, and the telemetry synthesizer."""

from thermamind.data.models import (
    ChartPoint,
    Cluster,
    ClusterProfile,
    FleetSnapshot,
    LoadSpikeState,
    Node,
    NodeStatus,
    RegionSummary,
    SpikeStatus,
    StatsSnapshot,
)
from thermamind.data.profiles import (
    CLUSTER_PROFILES,
    SPIKE_TABLE,
    SpikeProfile,
    get_cluster_profile,
)
from thermamind.data.generator import TelemetrySynthesizer

__all__ = [
    "CLUSTER_PROFILES",
    "ChartPoint",
    "Cluster",
    "ClusterProfile",
    "FleetSnapshot",
    "LoadSpikeState",
    "Node",
    "NodeStatus",
    "RegionSummary",
    "SPIKE_TABLE",
    "SpikeProfile",
    "SpikeStatus",
    "StatsSnapshot",
    "TelemetrySynthesizer",
    "get_cluster_profile",
]
