# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Shared test fixtures for the thermamind test suite."""

from __future__ import annotations

from itertools import cycle

import pytest

from thermamind.analysis.gateway import AnalysisError, AnalysisGateway
from thermamind.config import AppConfig, SimulationConfig
from thermamind.data.models import FleetSnapshot, StatsSnapshot
from thermamind.engine.simulation import SimulationEngine
from thermamind.server.app import create_app


class ScriptedRandom:
    """Random source replaying fixed values, cycling when exhausted."""

    def __init__(self, uniform: list[float], random: list[float]) -> None:
        self._uniform = cycle(uniform)
        self._random = cycle(random)
        self.calls: list[str] = []

    def uniform(self, low: float, high: float) -> float:
        self.calls.append("uniform")
        return next(self._uniform)

    def random(self) -> float:
        self.calls.append("random")
        return next(self._random)


class FakeGateway(AnalysisGateway):
    """Deterministic gateway recording the questions it was asked."""

    supports_audio = True

    def __init__(self, audio: bytes | None = b"audio") -> None:
        self.audio = audio
        self.questions: list[str] = []

    async def analyze(self, snapshot: FleetSnapshot, stats: StatsSnapshot) -> str:
        return f"{len(snapshot.clusters)} clusters at PUE {stats.cooling_pue:.2f}"

    async def answer(self, question: str, snapshot: FleetSnapshot, stats: StatsSnapshot) -> str:
        self.questions.append(question)
        return f"answer: {question}"

    async def speak(self, text: str) -> bytes | None:
        return self.audio


class FailingGateway(AnalysisGateway):
    async def analyze(self, snapshot: FleetSnapshot, stats: StatsSnapshot) -> str:
        raise AnalysisError("Failed to generate AI analysis")

    async def answer(self, question: str, snapshot: FleetSnapshot, stats: StatsSnapshot) -> str:
        raise AnalysisError("Failed to generate AI response")


def make_app(gateway: AnalysisGateway | None = None, push_interval: float = 60.0, seed: int = 42):
    """Application with a slow push loop so control replies arrive first."""
    config = AppConfig(
        simulation=SimulationConfig(push_interval_seconds=push_interval),
        seed=seed,
    )
    return create_app(
        config,
        gateway=gateway or FakeGateway(),
        run_spike_ticker=False,
    )


@pytest.fixture()
def engine() -> SimulationEngine:
    """A default-sized SimulationEngine seeded with 42."""
    return SimulationEngine(seed=42)


@pytest.fixture()
def snapshot(engine: SimulationEngine) -> FleetSnapshot:
    return engine.snapshot()


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def app(gateway: FakeGateway):
    return make_app(gateway)
