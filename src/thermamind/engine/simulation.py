# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""The simulation engine: single owner of all shared simulation state.

One :class:`SimulationEngine` is constructed at startup and handed to
every session and route.  It owns the load-spike state machine, the
synthesizer (and its random source), and the shared chart history.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import NamedTuple

import numpy as np

from thermamind.config import SimulationConfig
from thermamind.data.generator import TelemetrySynthesizer
from thermamind.data.models import (
    GLOBAL_REGION,
    ChartPoint,
    FleetSnapshot,
    LoadSpikeState,
    RegionSummary,
    StatsSnapshot,
)
from thermamind.engine.aggregator import ChartHistory, MetricsAggregator
from thermamind.engine.grouping import group_by_data_center
from thermamind.engine.state_machine import LoadSpikeStateMachine

logger = logging.getLogger(__name__)


class TelemetryFrame(NamedTuple):
    """Everything one telemetry push needs, computed from one synthesis."""

    snapshot: FleetSnapshot
    stats: StatsSnapshot
    chart: list[ChartPoint]
    regions: list[RegionSummary]


class SimulationEngine:
    """Wire the state machine, synthesizer, aggregator, and chart history.

    Parameters
    ----------
    config:
        Simulation constants shared by every component.
    seed:
        Optional seed; the synthesizer and state machine draw from
        independent streams spawned from it.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        seed: int | None = None,
        synthesizer: TelemetrySynthesizer | None = None,
        state_machine: LoadSpikeStateMachine | None = None,
        aggregator: MetricsAggregator | None = None,
        history: ChartHistory | None = None,
    ) -> None:
        self.config = config or SimulationConfig()
        synth_seq, spike_seq = np.random.SeedSequence(seed).spawn(2)

        self.synthesizer = synthesizer or TelemetrySynthesizer(
            self.config, rng=np.random.default_rng(synth_seq)
        )
        self.state_machine = state_machine or LoadSpikeStateMachine(
            self.config, rng=np.random.default_rng(spike_seq)
        )
        self.aggregator = aggregator or MetricsAggregator(self.config)
        self.history = history or ChartHistory(self.config.chart_capacity)
        self._synth_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def spike_state(self) -> LoadSpikeState:
        return self.state_machine.current()

    def snapshot(self) -> FleetSnapshot:
        """Synthesize the fleet against the current spike state."""
        spike = self.state_machine.current()
        with self._synth_lock:
            return self.synthesizer.synthesize(spike)

    def stats(self, snapshot: FleetSnapshot) -> StatsSnapshot:
        return self.aggregator.compute_stats(snapshot)

    def regions(self, snapshot: FleetSnapshot) -> list[RegionSummary]:
        return group_by_data_center(snapshot.clusters)

    def build_frame(self, record_history: bool = True) -> TelemetryFrame:
        """Synthesize, aggregate, and group one frame.

        Push loops record a chart point; one-shot snapshots only read
        the current history.
        """
        snapshot = self.snapshot()
        stats = self.aggregator.compute_stats(snapshot)
        if record_history:
            chart = self.history.append(self.aggregator.chart_point(snapshot))
        else:
            chart = self.history.snapshot()
        return TelemetryFrame(
            snapshot=snapshot,
            stats=stats,
            chart=chart,
            regions=group_by_data_center(snapshot.clusters),
        )

    def analysis_frame(self) -> tuple[FleetSnapshot, StatsSnapshot]:
        """One-off snapshot for the analysis service; leaves history untouched."""
        snapshot = self.snapshot()
        return snapshot, self.aggregator.compute_stats(snapshot)

    # ------------------------------------------------------------------
    # Spike control
    # ------------------------------------------------------------------

    def trigger_spike(
        self,
        multiplier: float | None = None,
        duration_ticks: int | None = None,
        region: str = GLOBAL_REGION,
    ) -> LoadSpikeState:
        return self.state_machine.trigger(multiplier, duration_ticks, region)

    async def run_spike_ticker(self, stop: asyncio.Event | None = None) -> None:
        """Tick the spike state machine until cancelled or *stop* is set."""
        period = self.config.spike_tick_seconds
        logger.info("Spike ticker started (every %.1fs)", period)
        try:
            while stop is None or not stop.is_set():
                await asyncio.sleep(period)
                self.state_machine.tick()
        finally:
            logger.info("Spike ticker stopped")
