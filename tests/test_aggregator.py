"""Tests for headline statistics and the chart history."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from thermamind.config import SimulationConfig
from thermamind.data.models import ChartPoint, Cluster, FleetSnapshot, Node, NodeStatus
from thermamind.data.profiles import get_cluster_profile
from thermamind.engine.aggregator import (
    CHART_DATASET_LABELS,
    ChartHistory,
    MetricsAggregator,
    chart_datasets,
)


def snapshot_of(*nodes: Node) -> FleetSnapshot:
    cluster = Cluster(profile=get_cluster_profile("A"), nodes=list(nodes))
    return FleetSnapshot(
        timestamp=datetime(2025, 3, 1, 12, 30, 5, tzinfo=timezone.utc),
        clusters=[cluster],
    )


def node(load: int, cooling: int, power_kw: float, cooling_power_kw: float = 0.0, **kw) -> Node:
    return Node(
        id=kw.pop("id", 1), label="A1", cluster_name="A",
        gpu_load=load, cooling=cooling, temperature_c=30.0,
        power_kw=power_kw, cooling_power_kw=cooling_power_kw, **kw,
    )


def point(i: int) -> ChartPoint:
    return ChartPoint(
        time_label=f"00:00:{i:02d}", avg_gpu_load=float(i), avg_cooling=float(i), energy_savings=32.0,
    )


class TestComputeStats:
    def setup_method(self):
        self.aggregator = MetricsAggregator()

    def test_baseline_draw_means_zero_savings(self):
        stats = self.aggregator.compute_stats(snapshot_of(node(50, 55, 2770.0)))
        assert stats.power_draw_mw == 2.77
        assert stats.energy_savings_pct == 0.0
        assert stats.co2_offset_kg == 770
        assert stats.cooling_pue == 1.0

    def test_co2_halves_round_up(self):
        aggregator = MetricsAggregator(SimulationConfig(co2_kg_per_mwh=1.0))
        assert aggregator.compute_stats(snapshot_of(node(50, 55, 2500.0))).co2_offset_kg == 3
        assert aggregator.compute_stats(snapshot_of(node(50, 55, 3500.0))).co2_offset_kg == 4

    def test_pue_includes_cooling_power(self):
        stats = self.aggregator.compute_stats(
            snapshot_of(node(50, 55, 4.0, 1.0), node(50, 55, 6.0, 1.5, id=2))
        )
        assert stats.cooling_pue == 1.25

    def test_draw_above_baseline_goes_negative(self):
        stats = self.aggregator.compute_stats(snapshot_of(node(100, 100, 3047.0)))
        assert stats.energy_savings_pct == pytest.approx(-10.0, abs=0.01)

    def test_all_offline(self):
        offline = Node(
            id=1, label="A1", cluster_name="A", gpu_load=0, cooling=0,
            temperature_c=0.0, power_kw=0.0, status=NodeStatus.offline,
        )
        stats = self.aggregator.compute_stats(snapshot_of(offline))
        assert stats.power_draw_mw == 0.0
        assert stats.cooling_pue == 1.0
        assert stats.co2_offset_kg == 0
        assert stats.energy_savings_pct == 100.0

    def test_idempotent(self, snapshot):
        assert self.aggregator.compute_stats(snapshot) == self.aggregator.compute_stats(snapshot)

    def test_seeded_fleet_is_plausible(self, snapshot):
        stats = self.aggregator.compute_stats(snapshot)
        assert 0 < stats.power_draw_mw < 1
        assert 1.0 < stats.cooling_pue < 1.5


class TestChartPoint:
    def setup_method(self):
        self.aggregator = MetricsAggregator()

    def test_averages_and_label(self):
        p = self.aggregator.chart_point(snapshot_of(node(50, 75, 5.0), node(50, 75, 5.0, id=2)))
        assert p.time_label == "12:30:05"
        assert p.avg_gpu_load == 50.0
        assert p.avg_cooling == 75.0
        assert p.energy_savings == 37.0

    def test_savings_floor_when_load_exceeds_cooling(self):
        p = self.aggregator.chart_point(snapshot_of(node(90, 60, 5.0)))
        assert p.energy_savings == 32.0

    def test_savings_floor_when_no_cooling(self):
        p = self.aggregator.chart_point(snapshot_of(node(0, 0, 0.0)))
        assert p.energy_savings == 32.0

    def test_savings_ceiling(self):
        p = self.aggregator.chart_point(snapshot_of(node(0, 100, 2.3)))
        assert p.energy_savings == 47.0


class TestChartHistory:
    def test_append_returns_oldest_first(self):
        history = ChartHistory(capacity=5)
        history.append(point(1))
        result = history.append(point(2))
        assert [p.time_label for p in result] == ["00:00:01", "00:00:02"]

    def test_eviction_keeps_most_recent(self):
        history = ChartHistory(capacity=20)
        for i in range(23):
            history.append(point(i))
        points = history.snapshot()
        assert len(history) == 20
        assert points[0].time_label == "00:00:03"
        assert points[-1].time_label == "00:00:22"

    def test_snapshot_is_a_copy(self):
        history = ChartHistory(capacity=3)
        history.append(point(1))
        copy = history.snapshot()
        copy.clear()
        assert len(history) == 1

    def test_clear(self):
        history = ChartHistory()
        history.append(point(1))
        history.clear()
        assert len(history) == 0

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            ChartHistory(capacity=0)

    def test_to_chart(self):
        history = ChartHistory()
        history.append(point(4))
        chart = history.to_chart()
        assert chart["labels"] == ["00:00:04"]
        assert [d["label"] for d in chart["datasets"]] == list(CHART_DATASET_LABELS)
        assert chart["datasets"][0]["data"] == [4.0]

    def test_empty_chart(self):
        chart = chart_datasets([])
        assert chart["labels"] == []
        assert all(d["data"] == [] for d in chart["datasets"])
