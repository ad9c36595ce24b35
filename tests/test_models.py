"""Tests for core Pydantic data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from thermamind.data.models import (
    Cluster,
    ClusterActivity,
    FleetSnapshot,
    LoadSpikeState,
    Node,
    NodeActivity,
    NodeStatus,
    SpikeStatus,
)
from thermamind.data.profiles import get_cluster_profile


def make_node(**overrides) -> Node:
    defaults = {
        "id": 1,
        "label": "A1",
        "cluster_name": "A",
        "gpu_load": 60,
        "cooling": 65,
        "temperature_c": 32.0,
        "power_kw": 4.72,
        "cooling_power_kw": 0.78,
    }
    defaults.update(overrides)
    return Node(**defaults)


def offline_node(**overrides) -> Node:
    return make_node(
        gpu_load=0, cooling=0, temperature_c=0.0, power_kw=0.0,
        cooling_power_kw=0.0, status=NodeStatus.offline, **overrides,
    )


class TestLoadSpikeState:
    def test_default_is_normal(self):
        state = LoadSpikeState()
        assert state.status is SpikeStatus.normal
        assert state.multiplier == 1.0
        assert state.ticks_remaining == 0
        assert not state.is_spike

    def test_normal_with_multiplier_rejected(self):
        with pytest.raises(ValidationError):
            LoadSpikeState(multiplier=1.3)

    def test_normal_with_remaining_ticks_rejected(self):
        with pytest.raises(ValidationError):
            LoadSpikeState(ticks_remaining=4)

    def test_multiplier_below_one_rejected(self):
        with pytest.raises(ValidationError):
            LoadSpikeState(status=SpikeStatus.spike, multiplier=0.8, ticks_remaining=2)

    def test_frozen(self):
        state = LoadSpikeState()
        with pytest.raises(ValidationError):
            state.multiplier = 2.0


class TestNode:
    def test_load_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            make_node(gpu_load=101)

    @pytest.mark.parametrize("overrides,expected", [
        ({"gpu_load": 10}, NodeActivity.idle),
        ({"gpu_load": 90}, NodeActivity.hot),
        ({"gpu_load": 60, "temperature_c": 38.5}, NodeActivity.hot),
        ({"gpu_load": 60}, NodeActivity.active),
    ])
    def test_activity(self, overrides, expected):
        assert make_node(**overrides).activity is expected

    def test_offline_node_is_idle(self):
        assert offline_node().activity is NodeActivity.idle


class TestCluster:
    def _cluster(self, nodes: list[Node]) -> Cluster:
        return Cluster(profile=get_cluster_profile("A"), nodes=nodes)

    def test_name(self):
        assert self._cluster([make_node()]).name == "Cluster A"

    def test_offline_nodes_count_as_zero_in_means(self):
        cluster = self._cluster([make_node(gpu_load=80, cooling=90), offline_node(id=2)])
        assert cluster.avg_gpu_load == 40.0
        assert cluster.avg_cooling == 45.0
        assert cluster.active_node_count == 1
        assert cluster.status is NodeStatus.online

    def test_all_offline_cluster_is_offline(self):
        cluster = self._cluster([offline_node(), offline_node(id=2)])
        assert cluster.status is NodeStatus.offline
        assert cluster.total_power_kw == 0.0
        assert cluster.activity is ClusterActivity.idle

    def test_empty_cluster_means_are_zero(self):
        cluster = self._cluster([])
        assert cluster.avg_gpu_load == 0.0
        assert cluster.avg_temperature_c == 0.0

    @pytest.mark.parametrize("load,cooling,expected", [
        (20, 30, ClusterActivity.idle),
        (50, 70, ClusterActivity.optimizing),
        (70, 75, ClusterActivity.active),
    ])
    def test_activity(self, load, cooling, expected):
        cluster = self._cluster([make_node(gpu_load=load, cooling=cooling)])
        assert cluster.activity is expected

    def test_totals(self):
        cluster = self._cluster([
            make_node(power_kw=4.0, cooling_power_kw=0.5),
            make_node(id=2, power_kw=5.5, cooling_power_kw=0.7),
        ])
        assert cluster.total_power_kw == 9.5
        assert cluster.total_cooling_power_kw == 1.2

    def test_computed_fields_serialize(self):
        data = self._cluster([make_node()]).model_dump()
        assert data["name"] == "Cluster A"
        assert data["avg_gpu_load"] == 60.0
        assert data["status"] == NodeStatus.online


class TestFleetSnapshot:
    def test_nodes_flattened_in_cluster_order(self):
        a = Cluster(profile=get_cluster_profile("A"), nodes=[make_node(id=1), make_node(id=2)])
        b = Cluster(profile=get_cluster_profile("B"), nodes=[make_node(id=3, cluster_name="B")])
        snap = FleetSnapshot(clusters=[a, b])
        assert [n.id for n in snap.nodes] == [1, 2, 3]
        assert snap.node_count == 3
