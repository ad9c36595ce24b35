# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""FastAPI router with one-shot snapshot endpoints.

These endpoints read the same engine the WebSocket sessions use but
never record chart history, so polling them does not disturb the
streamed chart.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, Request

from thermamind import __version__
from thermamind.analysis.advisor import recommend_action, savings_estimate
from thermamind.data.models import LoadSpikeState
from thermamind.engine.simulation import SimulationEngine
from thermamind.server.models import (
    DashboardCO2,
    DashboardCooling,
    DashboardEnergy,
    DashboardPower,
    DashboardResponse,
    HealthResponse,
    OptimizeRequest,
    OptimizeResponse,
    SpikeRequest,
    SpikeResponse,
)
from thermamind.server.protocol import RegionView, build_telemetry_payload, dump_message
from thermamind.server.sessions import SessionManager

router = APIRouter(prefix="/api", tags=["telemetry"])


# ---------------------------------------------------------------------------
# Dependency injection
# ---------------------------------------------------------------------------

def get_engine(request: Request) -> SimulationEngine:
    """The engine installed on the application by :func:`create_app`."""
    return request.app.state.engine


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
async def health(sessions: SessionManager = Depends(get_sessions)) -> HealthResponse:
    """Liveness check."""
    return HealthResponse(status="ok", version=__version__, sessions=len(sessions.sessions))


@router.get("/telemetry")
async def telemetry(engine: SimulationEngine = Depends(get_engine)) -> dict:
    """The same payload a session push carries, without recording history."""
    frame = engine.build_frame(record_history=False)
    return dump_message(build_telemetry_payload(frame))


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(engine: SimulationEngine = Depends(get_engine)) -> DashboardResponse:
    """Headline statistics for a fresh snapshot."""
    stats = engine.stats(engine.snapshot())
    c = engine.config
    return DashboardResponse(
        energy=DashboardEnergy(percent=round(stats.energy_savings_pct, 1)),
        co2=DashboardCO2(
            kg=stats.co2_offset_kg,
            trees=round(stats.co2_offset_kg / c.kg_co2_per_tree),
        ),
        power=DashboardPower(current=round(stats.power_draw_mw, 2), target=c.power_target_mw),
        cooling=DashboardCooling(pue=round(stats.cooling_pue, 2)),
    )


@router.get("/regions")
async def regions(engine: SimulationEngine = Depends(get_engine)) -> list[dict]:
    """Per data-center summaries."""
    summaries = engine.regions(engine.snapshot())
    return [dump_message(RegionView.from_summary(s)) for s in summaries]


@router.get("/spike", response_model=LoadSpikeState)
async def spike_state(engine: SimulationEngine = Depends(get_engine)) -> LoadSpikeState:
    return engine.spike_state()


@router.post("/simulate-load-spike", response_model=SpikeResponse)
async def simulate_load_spike(
    body: SpikeRequest | None = Body(default=None),
    engine: SimulationEngine = Depends(get_engine),
) -> SpikeResponse:
    """Force an immediate spike (demo and testing)."""
    body = body or SpikeRequest()
    state = engine.trigger_spike(body.multiplier, body.duration_ticks, body.region)
    seconds = state.ticks_remaining * engine.config.spike_tick_seconds
    return SpikeResponse(
        message=f"Triggered load spike in {state.affected_region} for {seconds:g} seconds.",
        state=state,
    )


@router.post("/optimize", response_model=OptimizeResponse)
async def optimize(body: OptimizeRequest) -> OptimizeResponse:
    """Rule-based cooling advice for one reading."""
    return OptimizeResponse(
        action=recommend_action(body.gpu_load, body.cooling),
        savings_estimate=savings_estimate(body.gpu_load, body.cooling),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
