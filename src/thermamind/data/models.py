# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Core Pydantic v2 data models for the fleet simulator.

This module defines the value objects produced by the synthesizer and
consumed by the aggregator, regional grouping, broadcast sessions, and
CLI layers.  Snapshot objects are built fresh on every synthesis call
and are never mutated afterwards.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, computed_field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SpikeStatus(str, Enum):
    """Phase of the regional load-spike state machine."""

    normal = "normal"
    spike = "spike"


class NodeStatus(str, Enum):
    """Availability of a node or cluster."""

    online = "online"
    offline = "offline"


class ClusterActivity(str, Enum):
    """Dashboard vocabulary for a cluster."""

    active = "active"
    idle = "idle"
    optimizing = "optimizing"


class NodeActivity(str, Enum):
    """Dashboard vocabulary for a single GPU node."""

    active = "active"
    hot = "hot"
    idle = "idle"


GLOBAL_REGION = "global"

# Dashboard classification thresholds
IDLE_CLUSTER_LOAD_PCT = 30
OVERCOOLED_MARGIN_PCT = 10
IDLE_NODE_LOAD_PCT = 20
HOT_NODE_LOAD_PCT = 85
HOT_NODE_TEMP_C = 37.0


# ---------------------------------------------------------------------------
# Static configuration
# ---------------------------------------------------------------------------

class ClusterProfile(BaseModel):
    """Static characteristics of one GPU cluster."""

    model_config = {"frozen": True}

    name: str = Field(..., description="Identity letter, e.g. 'A'")
    gpu_bias: float = Field(..., description="Load offset applied to every node (percentage points)")
    location: str = Field(..., description="Short site label, e.g. 'Houston'")
    workload: str = Field(..., description="Workload label shown to operators")
    site: str = Field(..., description="Full site name, e.g. 'Houston, USA'")
    data_center: str = Field(..., description="Data center the site reports into")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def matches_region(self, region: str) -> bool:
        """Whether a spike scoped to *region* applies to this cluster."""
        if region == GLOBAL_REGION:
            return True
        needle = region.lower()
        return needle in self.site.lower() or needle in self.location.lower()


# ---------------------------------------------------------------------------
# Load-spike state
# ---------------------------------------------------------------------------

class LoadSpikeState(BaseModel):
    """Immutable view of the regional load-spike state machine."""

    model_config = {"frozen": True}

    status: SpikeStatus = Field(default=SpikeStatus.normal)
    multiplier: float = Field(default=1.0, ge=1.0)
    affected_region: str = Field(default=GLOBAL_REGION)
    ticks_remaining: int = Field(default=0, ge=0)
    ticks_until_spike: int = Field(
        default=0, ge=0, description="Countdown to the next automatic spike"
    )

    @model_validator(mode="after")
    def _normal_is_neutral(self) -> "LoadSpikeState":
        if self.status is SpikeStatus.normal and (
            self.multiplier != 1.0 or self.ticks_remaining != 0
        ):
            raise ValueError("normal state requires multiplier 1.0 and no remaining ticks")
        return self

    @property
    def is_spike(self) -> bool:
        return self.status is SpikeStatus.spike


# ---------------------------------------------------------------------------
# Snapshot models
# ---------------------------------------------------------------------------

class Node(BaseModel):
    """A single GPU node as observed in one synthesis tick."""

    model_config = {"frozen": True}

    id: int = Field(..., ge=1, description="Fleet-wide node id")
    label: str = Field(..., description="Cluster letter plus ordinal, e.g. 'A1'")
    cluster_name: str = Field(..., description="Owning cluster letter")
    gpu_load: int = Field(..., ge=0, le=100, description="GPU load percentage")
    cooling: int = Field(..., ge=0, le=100, description="Cooling output percentage")
    temperature_c: float = Field(..., ge=0, description="Node temperature in Celsius")
    power_kw: float = Field(..., ge=0, description="IT power draw in kW")
    cooling_power_kw: float = Field(
        default=0.0, ge=0, description="Facility cooling draw attributed to this node"
    )
    status: NodeStatus = Field(default=NodeStatus.online)

    @property
    def is_online(self) -> bool:
        return self.status is NodeStatus.online

    @property
    def activity(self) -> NodeActivity:
        """Dashboard state: idle, hot, or active."""
        if not self.is_online or self.gpu_load < IDLE_NODE_LOAD_PCT:
            return NodeActivity.idle
        if self.gpu_load >= HOT_NODE_LOAD_PCT or self.temperature_c >= HOT_NODE_TEMP_C:
            return NodeActivity.hot
        return NodeActivity.active


class Cluster(BaseModel):
    """A cluster of GPU nodes with derived roll-ups.

    Offline nodes report zero for every metric and therefore pull the
    means down rather than being excluded from them.
    """

    model_config = {"frozen": True}

    profile: ClusterProfile
    nodes: list[Node] = Field(default_factory=list)
    spike_active: bool = Field(
        default=False, description="True while a spike covering this cluster is active"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def name(self) -> str:
        return f"Cluster {self.profile.name}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def active_node_count(self) -> int:
        """Number of online nodes."""
        return sum(1 for n in self.nodes if n.is_online)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> NodeStatus:
        """Offline only when every node is offline."""
        if self.active_node_count == 0:
            return NodeStatus.offline
        return NodeStatus.online

    @computed_field  # type: ignore[prop-decorator]
    @property
    def avg_gpu_load(self) -> float:
        if not self.nodes:
            return 0.0
        return round(sum(n.gpu_load for n in self.nodes) / len(self.nodes), 2)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def avg_cooling(self) -> float:
        if not self.nodes:
            return 0.0
        return round(sum(n.cooling for n in self.nodes) / len(self.nodes), 2)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def avg_temperature_c(self) -> float:
        if not self.nodes:
            return 0.0
        return round(sum(n.temperature_c for n in self.nodes) / len(self.nodes), 2)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_power_kw(self) -> float:
        return round(sum(n.power_kw for n in self.nodes), 2)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_cooling_power_kw(self) -> float:
        return round(sum(n.cooling_power_kw for n in self.nodes), 2)

    @property
    def activity(self) -> ClusterActivity:
        """Dashboard state.

        Offline or lightly loaded clusters are idle; clusters whose
        cooling runs well ahead of load are being optimized.
        """
        if self.active_node_count == 0 or self.avg_gpu_load < IDLE_CLUSTER_LOAD_PCT:
            return ClusterActivity.idle
        if self.avg_cooling - self.avg_gpu_load > OVERCOOLED_MARGIN_PCT:
            return ClusterActivity.optimizing
        return ClusterActivity.active


class FleetSnapshot(BaseModel):
    """Every cluster of the fleet at one instant."""

    model_config = {"frozen": True}

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    spike: LoadSpikeState = Field(
        default_factory=LoadSpikeState,
        description="Spike state the snapshot was synthesized against",
    )
    clusters: list[Cluster] = Field(default_factory=list)

    @property
    def nodes(self) -> list[Node]:
        """All nodes across clusters, in cluster order."""
        return [n for c in self.clusters for n in c.nodes]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def node_count(self) -> int:
        return sum(len(c.nodes) for c in self.clusters)


# ---------------------------------------------------------------------------
# Derived statistics
# ---------------------------------------------------------------------------

class StatsSnapshot(BaseModel):
    """Headline statistics derived from a FleetSnapshot."""

    model_config = {"frozen": True}

    energy_savings_pct: float = Field(
        ..., description="Savings versus the baseline draw; may be negative"
    )
    co2_offset_kg: int = Field(..., ge=0)
    power_draw_mw: float = Field(..., ge=0)
    cooling_pue: float = Field(..., ge=1.0)


class ChartPoint(BaseModel):
    """One entry of the rolling chart history."""

    model_config = {"frozen": True}

    time_label: str
    avg_gpu_load: float
    avg_cooling: float
    energy_savings: float = Field(
        ..., description="Chart savings heuristic, distinct from StatsSnapshot.energy_savings_pct"
    )


class RegionSummary(BaseModel):
    """Per data-center reduction of cluster metrics."""

    data_center: str
    site_count: int = Field(..., ge=1)
    avg_gpu_load: int
    avg_cooling: int
    avg_power_kw: int
    avg_temperature_c: float
    online_clusters: int = Field(..., ge=0)
    offline_clusters: int = Field(..., ge=0)
    active_spikes: int = Field(..., ge=0)
