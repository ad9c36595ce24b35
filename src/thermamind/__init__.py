# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""ThermaMind - simulated GPU fleet telemetry with cooling analysis."""

__version__ = "0.1.0"

from thermamind.data.models import (
    Cluster,
    ClusterProfile,
    FleetSnapshot,
    LoadSpikeState,
    Node,
    RegionSummary,
    SpikeStatus,
    StatsSnapshot,
)
from thermamind.data.profiles import CLUSTER_PROFILES, get_cluster_profile
from thermamind.data.generator import TelemetrySynthesizer
from thermamind.engine.state_machine import LoadSpikeStateMachine
from thermamind.engine.aggregator import ChartHistory, MetricsAggregator
from thermamind.engine.simulation import SimulationEngine

__all__ = [
    "CLUSTER_PROFILES",
    "ChartHistory",
    "Cluster",
    "ClusterProfile",
    "FleetSnapshot",
    "LoadSpikeState",
    "LoadSpikeStateMachine",
    "MetricsAggregator",
    "Node",
    "RegionSummary",
    "SimulationEngine",
    "SpikeStatus",
    "StatsSnapshot",
    "TelemetrySynthesizer",
    "get_cluster_profile",
]
