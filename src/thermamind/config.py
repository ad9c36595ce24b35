# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Configuration models and YAML loader."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Credential handling
# ---------------------------------------------------------------------------

class CredentialRef(BaseModel):
    """Reference to a secret held in an env var, a file, or inline."""

    env_var: str | None = Field(default=None, description="Environment variable name")
    file_path: str | None = Field(default=None, description="Path to credentials file")
    value: str | None = Field(default=None, description="Inline value (dev only)")

    def resolve(self) -> str:
        """Resolve the credential to a plain string."""
        if self.env_var:
            val = os.environ.get(self.env_var)
            if val:
                return val
        if self.file_path:
            path = Path(self.file_path).expanduser()
            if path.exists():
                return path.read_text().strip()
        if self.value:
            return self.value
        raise ValueError(
            "Could not resolve credential: none of env_var, file_path, or value produced a result"
        )


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

class SimulationConfig(BaseModel):
    """Cardinality, timing, and model constants for the fleet simulator."""

    # Fleet shape
    cluster_count: int = Field(default=8, ge=1, le=26, description="Number of GPU clusters")
    nodes_per_cluster: int = Field(default=8, ge=1, description="GPU nodes in each cluster")

    # Timing
    push_interval_seconds: float = Field(
        default=2.0, gt=0, description="Period of each session's telemetry push"
    )
    spike_tick_seconds: float = Field(
        default=2.0, gt=0, description="Period of the load-spike state machine tick"
    )
    spike_countdown_min_seconds: float = Field(
        default=120.0, gt=0, description="Lower bound of the quiet period between spikes"
    )
    spike_countdown_max_seconds: float = Field(
        default=300.0, gt=0, description="Upper bound of the quiet period between spikes"
    )

    # Manual trigger
    manual_spike_multiplier: float = Field(default=1.5, ge=1.0)
    manual_spike_duration_ticks: int = Field(default=5, ge=1)

    # Load model
    base_load_pct: float = Field(default=50.0, description="Load before cluster bias and noise")
    load_noise_pct: float = Field(default=15.0, ge=0, description="Half-width of the load noise")

    # Cooling model
    cooling_headroom_pct: float = Field(default=5.0, description="Ideal cooling above load")
    cooling_noise_pct: float = Field(default=5.0, ge=0)
    optimized_cooling_probability: float = Field(default=0.7, ge=0, le=1)
    mild_overcool_probability: float = Field(default=0.7, ge=0, le=1)
    mild_overcool_penalty_pct: float = Field(default=15.0, ge=0)
    severe_overcool_penalty_pct: float = Field(default=25.0, ge=0)

    # Thermal model
    ambient_temp_c: float = Field(default=20.0)
    temp_per_load_pct: float = Field(default=0.2, ge=0)
    temp_noise_c: float = Field(default=2.0, ge=0)

    # Power model (kW per node)
    base_power_kw: float = Field(default=1.5, ge=0, description="Idle node draw")
    load_power_range_kw: float = Field(default=4.5, gt=0, description="Extra draw at 100% load")
    cooling_fan_power_kw: float = Field(default=0.8, gt=0, description="Fan draw at 100% cooling")
    cooling_plant_kw: float = Field(
        default=1.2, ge=0, description="Facility cooling draw attributed to a node at 100% cooling"
    )

    # Availability
    offline_probability: float = Field(default=0.02, ge=0, le=1)

    # Headline statistics
    baseline_power_mw: float = Field(default=2.77, gt=0)
    co2_kg_per_mwh: float = Field(default=278.0, ge=0)
    power_target_mw: float = Field(default=1.94, gt=0)
    kg_co2_per_tree: float = Field(default=22.0, gt=0)

    # Chart
    chart_capacity: int = Field(default=20, ge=1)
    chart_savings_floor: float = Field(default=32.0)
    chart_savings_span: float = Field(default=15.0, ge=0)

    @model_validator(mode="after")
    def _check_countdown_range(self) -> "SimulationConfig":
        if self.spike_countdown_min_seconds > self.spike_countdown_max_seconds:
            raise ValueError("spike_countdown_min_seconds must not exceed the maximum")
        return self

    @property
    def countdown_range_ticks(self) -> tuple[int, int]:
        """Quiet-period bounds converted to whole ticks (at least one)."""
        low = max(1, round(self.spike_countdown_min_seconds / self.spike_tick_seconds))
        high = max(low, round(self.spike_countdown_max_seconds / self.spike_tick_seconds))
        return low, high

    @property
    def node_count(self) -> int:
        return self.cluster_count * self.nodes_per_cluster


# ---------------------------------------------------------------------------
# Analysis service
# ---------------------------------------------------------------------------

class AnalysisConfig(BaseModel):
    """Settings for the natural-language analysis and speech services."""

    provider: str = Field(
        default="auto", pattern=r"^(auto|openai|rules)$",
        description="auto picks openai when a key resolves, else the rule-based fallback",
    )
    api_key: CredentialRef = Field(
        default_factory=lambda: CredentialRef(env_var="OPENAI_API_KEY")
    )
    base_url: str | None = Field(default=None, description="OpenAI-compatible endpoint")
    model: str = Field(default="gpt-4o-mini")
    tts_model: str = Field(default="tts-1")
    tts_voice: str = Field(default="alloy")
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_words: int = Field(default=150, ge=20)


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

class ServerConfig(BaseModel):
    """HTTP / WebSocket listener settings."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: str = Field(
        default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$"
    )
    websocket_path: str = Field(default="/ws")


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

class AppConfig(BaseModel):
    """Top-level configuration loaded from YAML."""

    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    seed: int | None = Field(default=None, description="Seed for reproducible simulation")


def load_config(path: str | Path) -> AppConfig:
    """Load an AppConfig from a YAML file."""
    import yaml

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    return AppConfig.model_validate(raw)
