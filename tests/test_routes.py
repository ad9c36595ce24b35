"""Tests for the REST snapshot endpoints."""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from thermamind import __version__
from thermamind.config import AppConfig, SimulationConfig
from thermamind.server.app import create_app


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


class TestReadEndpoints:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__, "sessions": 0}

    def test_telemetry(self, client):
        data = client.get("/api/telemetry").json()
        assert len(data["clusters"]) == 8
        assert len(data["nodes"]) == 64
        assert "coolingPUE" in data["stats"]

    def test_telemetry_does_not_record_history(self, client):
        client.get("/api/telemetry")
        data = client.get("/api/telemetry").json()
        assert data["chart"]["labels"] == []

    def test_dashboard(self, client):
        data = client.get("/api/dashboard").json()
        assert set(data) == {"energy", "co2", "power", "cooling"}
        assert data["power"]["target"] == 1.94
        assert data["cooling"]["pue"] >= 1.0
        assert data["co2"]["trees"] == round(data["co2"]["kg"] / 22)

    def test_regions(self, client):
        data = client.get("/api/regions").json()
        assert len(data) == 8
        assert data[0]["dataCenter"] == "North America Data Center"

    def test_spike_state_starts_normal(self, client):
        data = client.get("/api/spike").json()
        assert data["status"] == "normal"
        assert data["multiplier"] == 1.0


class TestSpikeTrigger:
    def test_default_manual_spike(self, client):
        resp = client.post("/api/simulate-load-spike")
        assert resp.status_code == 200
        data = resp.json()
        assert data["state"]["status"] == "spike"
        assert data["state"]["multiplier"] == 1.5
        assert data["state"]["ticks_remaining"] == 5
        assert "10 seconds" in data["message"]
        assert client.get("/api/spike").json()["status"] == "spike"

    def test_regional_spike(self, client):
        resp = client.post(
            "/api/simulate-load-spike",
            json={"multiplier": 1.3, "durationTicks": 3, "region": "Perth"},
        )
        state = resp.json()["state"]
        assert state["affected_region"] == "Perth"
        assert state["ticks_remaining"] == 3

        telemetry = client.get("/api/telemetry").json()
        spiking = [r for r in telemetry["regions"] if r["activeSpikes"]]
        assert [r["dataCenter"] for r in spiking] == ["Asia-Pacific Cluster"]

    def test_invalid_multiplier_rejected(self, client):
        resp = client.post("/api/simulate-load-spike", json={"multiplier": 5})
        assert resp.status_code == 422


class TestOptimize:
    def test_overcooled(self, client):
        resp = client.post("/api/optimize", json={"gpuLoad": 40, "cooling": 80})
        assert resp.status_code == 200
        data = resp.json()
        assert data["action"] == "Reduce cooling power: overcooled."
        assert data["savingsEstimate"] == 20
        assert data["timestamp"]

    def test_missing_field(self, client):
        assert client.post("/api/optimize", json={"gpuLoad": 40}).status_code == 422


class TestLifespan:
    def test_spike_ticker_starts_and_stops(self, gateway):
        app = create_app(
            AppConfig(simulation=SimulationConfig(spike_tick_seconds=0.01)),
            gateway=gateway,
        )
        with TestClient(app) as client:
            before = client.get("/api/spike").json()["ticks_until_spike"]
            time.sleep(0.2)
            after = client.get("/api/spike").json()
        assert after["status"] == "spike" or after["ticks_until_spike"] < before
