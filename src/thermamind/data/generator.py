# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Simulated GPU fleet telemetry synthesizer.

Given the current :class:`LoadSpikeState`, this module produces one
complete :class:`FleetSnapshot`: every cluster with its nodes' load,
cooling, temperature, and power.  Nothing carries over between calls.

All randomness flows through a single random source.  By default that
is a seeded :class:`numpy.random.Generator`, so identical seeds always
produce identical fleets; tests may pass any object exposing
``uniform(low, high)`` and ``random()``.

Each node consumes exactly six draws, always in this order:

1. load noise        ``uniform(-load_noise, load_noise)``
2. cooling branch    ``random()``
3. overcool pick     ``random()``
4. cooling noise     ``uniform(-cooling_noise, cooling_noise)``
5. temperature noise ``uniform(-temp_noise, temp_noise)``
6. offline draw      ``random()``
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Protocol

import numpy as np

from thermamind.config import SimulationConfig
from thermamind.data.models import (
    Cluster,
    ClusterProfile,
    FleetSnapshot,
    LoadSpikeState,
    Node,
    NodeStatus,
)
from thermamind.data.profiles import fleet_profiles, temperature_bias


class RandomSource(Protocol):
    """The subset of :class:`numpy.random.Generator` the synthesizer uses."""

    def uniform(self, low: float, high: float) -> float: ...

    def random(self) -> float: ...


def _clamp_pct(value: float) -> int:
    return int(min(100, max(0, math.floor(value))))


class TelemetrySynthesizer:
    """Generate a fully-populated :class:`FleetSnapshot` per call.

    Parameters
    ----------
    config:
        Simulation constants; defaults to :class:`SimulationConfig`.
    profiles:
        Cluster profiles to synthesize, in order.  Defaults to
        ``fleet_profiles(config.cluster_count)``.
    rng:
        Random source.  Takes precedence over *seed*.
    seed:
        Optional RNG seed for reproducibility.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        profiles: list[ClusterProfile] | None = None,
        rng: RandomSource | None = None,
        seed: int | None = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self.profiles = profiles or fleet_profiles(self.config.cluster_count)
        self.rng: RandomSource = rng if rng is not None else np.random.default_rng(seed)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def synthesize(
        self,
        spike: LoadSpikeState | None = None,
        timestamp: datetime | None = None,
    ) -> FleetSnapshot:
        """Produce one snapshot biased by *spike* (neutral when omitted)."""
        spike = spike or LoadSpikeState()
        per_cluster = self.config.nodes_per_cluster

        clusters = [
            self._make_cluster(profile, idx * per_cluster, spike)
            for idx, profile in enumerate(self.profiles)
        ]
        return FleetSnapshot(
            timestamp=timestamp or datetime.now(timezone.utc),
            spike=spike,
            clusters=clusters,
        )

    # ------------------------------------------------------------------
    # Clusters
    # ------------------------------------------------------------------

    def _make_cluster(
        self, profile: ClusterProfile, id_offset: int, spike: LoadSpikeState
    ) -> Cluster:
        is_affected = profile.matches_region(spike.affected_region)
        multiplier = spike.multiplier if is_affected else 1.0
        site_bias = temperature_bias(profile.site)

        nodes = [
            self._make_node(profile, id_offset + seq + 1, seq, multiplier, site_bias)
            for seq in range(self.config.nodes_per_cluster)
        ]
        return Cluster(
            profile=profile,
            nodes=nodes,
            spike_active=is_affected and spike.is_spike,
        )

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def _make_node(
        self,
        profile: ClusterProfile,
        node_id: int,
        seq: int,
        multiplier: float,
        site_bias: float,
    ) -> Node:
        """Create a single node; offline nodes discard every computed value."""
        rng = self.rng
        c = self.config

        # --- draws (fixed order) --------------------------------------
        load_noise = float(rng.uniform(-c.load_noise_pct, c.load_noise_pct))
        branch = float(rng.random())
        overcool_pick = float(rng.random())
        cooling_noise = float(rng.uniform(-c.cooling_noise_pct, c.cooling_noise_pct))
        temp_noise = float(rng.uniform(-c.temp_noise_c, c.temp_noise_c))
        offline_draw = float(rng.random())

        label = f"{profile.name}{seq + 1}"

        if offline_draw < c.offline_probability:
            return Node(
                id=node_id,
                label=label,
                cluster_name=profile.name,
                gpu_load=0,
                cooling=0,
                temperature_c=0.0,
                power_kw=0.0,
                cooling_power_kw=0.0,
                status=NodeStatus.offline,
            )

        # --- load -----------------------------------------------------
        raw_load = c.base_load_pct + profile.gpu_bias + load_noise
        gpu_load = _clamp_pct(raw_load * multiplier)

        # --- cooling (thermal inertia) --------------------------------
        if branch < c.optimized_cooling_probability:
            cooling_target = gpu_load + c.cooling_headroom_pct + math.floor(cooling_noise)
        elif overcool_pick < c.mild_overcool_probability:
            cooling_target = gpu_load + c.mild_overcool_penalty_pct
        else:
            cooling_target = gpu_load + c.severe_overcool_penalty_pct
        cooling = _clamp_pct(cooling_target)

        # --- temperature ----------------------------------------------
        temperature = c.ambient_temp_c + c.temp_per_load_pct * gpu_load + temp_noise + site_bias

        # --- power ----------------------------------------------------
        power = (
            c.base_power_kw
            + (gpu_load / 100) * c.load_power_range_kw
            + (cooling / 100) * c.cooling_fan_power_kw
        )
        cooling_power = (cooling / 100) * c.cooling_plant_kw

        return Node(
            id=node_id,
            label=label,
            cluster_name=profile.name,
            gpu_load=gpu_load,
            cooling=cooling,
            temperature_c=round(max(0.0, temperature), 1),
            power_kw=round(power, 2),
            cooling_power_kw=round(cooling_power, 3),
            status=NodeStatus.online,
        )
