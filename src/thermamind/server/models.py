# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""API request/response Pydantic models for the REST interface."""

from __future__ import annotations

from pydantic import BaseModel, Field

from thermamind.data.models import GLOBAL_REGION, LoadSpikeState


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class SpikeRequest(BaseModel):
    """Optional body for ``POST /api/simulate-load-spike``."""

    model_config = {"populate_by_name": True}

    multiplier: float | None = Field(
        default=None, ge=1.0, le=3.0,
        description="Load multiplier; defaults to the configured manual value.",
    )
    duration_ticks: int | None = Field(
        default=None, ge=1, le=600, alias="durationTicks",
        description="Spike length in state-machine ticks.",
    )
    region: str = Field(
        default=GLOBAL_REGION, min_length=1,
        description="Site substring to affect, or 'global'.",
    )


class OptimizeRequest(BaseModel):
    """Request body for ``POST /api/optimize``."""

    model_config = {"populate_by_name": True}

    gpu_load: float = Field(..., ge=0, le=100, alias="gpuLoad")
    cooling: float = Field(..., ge=0, le=100)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    """Response body returned by ``GET /api/health``."""

    status: str = Field(..., description="Service health status (e.g. 'ok').")
    version: str = Field(..., description="Application version string.")
    sessions: int = Field(..., ge=0, description="Open telemetry sessions.")


class SpikeResponse(BaseModel):
    message: str
    state: LoadSpikeState


class OptimizeResponse(BaseModel):
    model_config = {"populate_by_name": True}

    action: str
    savings_estimate: int = Field(..., ge=0, le=100, alias="savingsEstimate")
    timestamp: str


class DashboardEnergy(BaseModel):
    percent: float


class DashboardCO2(BaseModel):
    kg: int
    trees: int


class DashboardPower(BaseModel):
    current: float
    target: float


class DashboardCooling(BaseModel):
    pue: float


class DashboardResponse(BaseModel):
    """Headline cards for ``GET /api/dashboard``."""

    energy: DashboardEnergy
    co2: DashboardCO2
    power: DashboardPower
    cooling: DashboardCooling
