# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Load-spike state machine, aggregation, and the simulation engine."""

from thermamind.engine.state_machine import LoadSpikeStateMachine
from thermamind.engine.aggregator import ChartHistory, MetricsAggregator
from thermamind.engine.grouping import group_by_data_center
from thermamind.engine.simulation import SimulationEngine, TelemetryFrame

__all__ = [
    "ChartHistory",
    "LoadSpikeStateMachine",
    "MetricsAggregator",
    "SimulationEngine",
    "TelemetryFrame",
    "group_by_data_center",
]
