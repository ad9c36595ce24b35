# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Regional load-spike state machine.

Two states: ``normal`` counts down to the next automatic spike, and
``spike`` counts down its remaining duration.  The current state is an
immutable :class:`LoadSpikeState` swapped under a lock, so readers always
see a consistent value and cannot mutate the shared instance.
"""

from __future__ import annotations

import logging
import threading

import numpy as np

from thermamind.config import SimulationConfig
from thermamind.data.models import GLOBAL_REGION, LoadSpikeState, SpikeStatus
from thermamind.data.profiles import SPIKE_TABLE, SpikeProfile

logger = logging.getLogger(__name__)


class LoadSpikeStateMachine:
    """Advance bursty regional demand on a fixed tick."""

    def __init__(
        self,
        config: SimulationConfig | None = None,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
        spike_table: tuple[SpikeProfile, ...] = SPIKE_TABLE,
        initial_countdown: int | None = None,
    ) -> None:
        if not spike_table:
            raise ValueError("spike_table must contain at least one entry")
        self.config = config or SimulationConfig()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.spike_table = spike_table
        self._lock = threading.Lock()

        countdown = (
            initial_countdown if initial_countdown is not None else self._draw_countdown()
        )
        self._state = LoadSpikeState(ticks_until_spike=max(1, countdown))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current(self) -> LoadSpikeState:
        """Return the current state (an immutable value)."""
        with self._lock:
            return self._state

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def tick(self) -> LoadSpikeState:
        """Advance one tick and return the resulting state."""
        with self._lock:
            state = self._state
            if state.is_spike:
                remaining = state.ticks_remaining - 1
                if remaining <= 0:
                    new_state = self._normal_state()
                    logger.info(
                        "Load spike in %s ended; next spike in %d ticks",
                        state.affected_region, new_state.ticks_until_spike,
                    )
                else:
                    new_state = state.model_copy(update={"ticks_remaining": remaining})
            else:
                countdown = state.ticks_until_spike - 1
                if countdown <= 0:
                    profile = self._choose_spike()
                    new_state = LoadSpikeState(
                        status=SpikeStatus.spike,
                        multiplier=profile.multiplier,
                        affected_region=profile.region,
                        ticks_remaining=profile.duration_ticks,
                    )
                    logger.info(
                        "Load spike started in %s (x%.2f for %d ticks)",
                        profile.region, profile.multiplier, profile.duration_ticks,
                    )
                else:
                    new_state = state.model_copy(update={"ticks_until_spike": countdown})
            self._state = new_state
            return new_state

    def trigger(
        self,
        multiplier: float | None = None,
        duration_ticks: int | None = None,
        region: str = GLOBAL_REGION,
    ) -> LoadSpikeState:
        """Force an immediate spike, overriding any countdown or active spike."""
        c = self.config
        state = LoadSpikeState(
            status=SpikeStatus.spike,
            multiplier=multiplier if multiplier is not None else c.manual_spike_multiplier,
            affected_region=region,
            ticks_remaining=(
                duration_ticks if duration_ticks is not None else c.manual_spike_duration_ticks
            ),
        )
        if state.ticks_remaining < 1:
            raise ValueError("duration_ticks must be at least 1")
        with self._lock:
            self._state = state
        logger.info(
            "Manual load spike triggered in %s (x%.2f for %d ticks)",
            state.affected_region, state.multiplier, state.ticks_remaining,
        )
        return state

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _draw_countdown(self) -> int:
        low, high = self.config.countdown_range_ticks
        return int(self.rng.integers(low, high + 1))

    def _choose_spike(self) -> SpikeProfile:
        idx = int(self.rng.integers(0, len(self.spike_table)))
        return self.spike_table[idx]

    def _normal_state(self) -> LoadSpikeState:
        return LoadSpikeState(ticks_until_spike=self._draw_countdown())
