"""Tests for configuration models and the YAML loader."""

from __future__ import annotations

import os

import pytest
from pydantic import ValidationError

from thermamind.config import (
    AnalysisConfig,
    AppConfig,
    CredentialRef,
    ServerConfig,
    SimulationConfig,
    load_config,
)


class TestSimulationConfig:
    def test_defaults(self):
        c = SimulationConfig()
        assert c.cluster_count == 8
        assert c.nodes_per_cluster == 8
        assert c.node_count == 64
        assert c.push_interval_seconds == 2.0
        assert c.baseline_power_mw == 2.77

    def test_countdown_range_ticks(self):
        assert SimulationConfig().countdown_range_ticks == (60, 150)

    def test_inverted_countdown_rejected(self):
        with pytest.raises(ValidationError):
            SimulationConfig(spike_countdown_min_seconds=400)

    def test_cluster_count_bounds(self):
        with pytest.raises(ValidationError):
            SimulationConfig(cluster_count=27)


class TestAppConfig:
    def test_defaults(self):
        cfg = AppConfig()
        assert cfg.server.port == 8080
        assert cfg.server.websocket_path == "/ws"
        assert cfg.analysis.provider == "auto"
        assert cfg.seed is None

    def test_bad_provider_rejected(self):
        with pytest.raises(ValidationError):
            AnalysisConfig(provider="anthropic")

    def test_bad_log_level_rejected(self):
        with pytest.raises(ValidationError):
            ServerConfig(log_level="LOUD")


class TestLoadConfig:
    def test_load_config_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "seed: 7\n"
            "simulation:\n  cluster_count: 4\n  offline_probability: 0.0\n"
            "server:\n  port: 9000\n"
            "analysis:\n  provider: rules\n"
        )
        cfg = load_config(path)
        assert cfg.seed == 7
        assert cfg.simulation.cluster_count == 4
        assert cfg.server.port == 9000
        assert cfg.analysis.provider == "rules"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == AppConfig()

    def test_config_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/path.yaml")


class TestCredentialRef:
    def test_credential_ref_value(self):
        assert CredentialRef(value="secret123").resolve() == "secret123"

    def test_credential_ref_env_var(self):
        os.environ["_TEST_CRED_VAR"] = "env_secret"
        try:
            assert CredentialRef(env_var="_TEST_CRED_VAR").resolve() == "env_secret"
        finally:
            del os.environ["_TEST_CRED_VAR"]

    def test_credential_ref_file(self, tmp_path):
        path = tmp_path / "key.txt"
        path.write_text("file_secret\n")
        assert CredentialRef(file_path=str(path)).resolve() == "file_secret"

    def test_credential_ref_none_raises(self):
        with pytest.raises(ValueError, match="Could not resolve"):
            CredentialRef().resolve()
