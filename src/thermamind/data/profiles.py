"""Cluster profile presets for the simulated GPU fleet.

Each profile pins a cluster to a global site and biases the load its
nodes are generated with.  The spike table lists the regional demand
surges the state machine chooses from.
"""

from __future__ import annotations

from typing import NamedTuple

from thermamind.data.models import GLOBAL_REGION, ClusterProfile


# ---------------------------------------------------------------------------
# Profile definitions
# ---------------------------------------------------------------------------

CLUSTER_PROFILES: tuple[ClusterProfile, ...] = (
    ClusterProfile(
        name="A", gpu_bias=20, location="Houston", workload="Training",
        site="Houston, USA", data_center="North America Data Center",
        latitude=29.7604, longitude=-95.3698,
    ),
    ClusterProfile(
        name="B", gpu_bias=-15, location="Calgary", workload="Inference",
        site="Calgary, Canada", data_center="Canadian AI Hub",
        latitude=51.0447, longitude=-114.0719,
    ),
    ClusterProfile(
        name="C", gpu_bias=5, location="Stavanger", workload="Training",
        site="Stavanger, Norway", data_center="Nordic Energy Cluster",
        latitude=58.9700, longitude=5.7331,
    ),
    ClusterProfile(
        name="D", gpu_bias=-20, location="Doha", workload="Development",
        site="Doha, Qatar", data_center="MENA Operations Hub",
        latitude=25.2854, longitude=51.5310,
    ),
    ClusterProfile(
        name="E", gpu_bias=15, location="Perth", workload="Seismic Analysis",
        site="Perth, Australia", data_center="Asia-Pacific Cluster",
        latitude=-31.9505, longitude=115.8605,
    ),
    ClusterProfile(
        name="F", gpu_bias=-10, location="Jakarta", workload="Field Data",
        site="Jakarta, Indonesia", data_center="Indonesia Field Systems",
        latitude=-6.2088, longitude=106.8456,
    ),
    ClusterProfile(
        name="G", gpu_bias=10, location="Anchorage", workload="Research",
        site="Anchorage, Alaska", data_center="Arctic Compute Node",
        latitude=61.2181, longitude=-149.9003,
    ),
    ClusterProfile(
        name="H", gpu_bias=0, location="Beijing", workload="AI Models",
        site="Beijing, China", data_center="China AI Operations",
        latitude=39.9042, longitude=116.4074,
    ),
)

# First matching substring wins.
SITE_TEMPERATURE_BIAS: tuple[tuple[str, float], ...] = (
    ("Norway", -3.0),
    ("Alaska", -3.0),
    ("Canada", -2.0),
    ("Houston", 2.0),
    ("Qatar", 2.0),
)


class SpikeProfile(NamedTuple):
    """A regional demand surge the state machine can enter."""

    region: str
    multiplier: float
    duration_ticks: int


SPIKE_TABLE: tuple[SpikeProfile, ...] = (
    SpikeProfile("Houston", 1.4, 15),
    SpikeProfile("Stavanger", 1.3, 10),
    SpikeProfile("Perth", 1.5, 12),
    SpikeProfile("Doha", 1.35, 8),
    SpikeProfile("Beijing", 1.25, 10),
    SpikeProfile(GLOBAL_REGION, 1.2, 6),
)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

PROFILES: dict[str, ClusterProfile] = {p.name: p for p in CLUSTER_PROFILES}


def get_cluster_profile(name: str) -> ClusterProfile:
    """Return the cluster profile with identity letter *name*.

    Raises
    ------
    KeyError
        If *name* does not match any registered profile.
    """
    try:
        return PROFILES[name]
    except KeyError:
        available = ", ".join(sorted(PROFILES.keys()))
        raise KeyError(
            f"Unknown cluster '{name}'. Available clusters: {available}"
        ) from None


def fleet_profiles(cluster_count: int) -> list[ClusterProfile]:
    """Return *cluster_count* profiles for the fleet.

    The canonical table covers eight clusters.  Larger fleets reuse the
    table's sites and biases round-robin under fresh identity letters.
    """
    if cluster_count < 1:
        raise ValueError("cluster_count must be at least 1")
    if cluster_count > 26:
        raise ValueError("cluster_count is limited to 26 identity letters")

    profiles: list[ClusterProfile] = []
    for idx in range(cluster_count):
        base = CLUSTER_PROFILES[idx % len(CLUSTER_PROFILES)]
        letter = chr(ord("A") + idx)
        if letter == base.name:
            profiles.append(base)
        else:
            profiles.append(base.model_copy(update={"name": letter}))
    return profiles


def temperature_bias(site: str) -> float:
    """Regional temperature offset for *site* in Celsius."""
    for needle, bias in SITE_TEMPERATURE_BIAS:
        if needle in site:
            return bias
    return 0.0
