# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""FastAPI application factory for the telemetry service."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket

from thermamind import __version__
from thermamind.analysis.gateway import AnalysisGateway, get_gateway
from thermamind.config import AppConfig
from thermamind.engine.simulation import SimulationEngine
from thermamind.server.routes import router
from thermamind.server.sessions import SessionManager

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig | None = None,
    engine: SimulationEngine | None = None,
    gateway: AnalysisGateway | None = None,
    run_spike_ticker: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    config:
        Application configuration; defaults to :class:`AppConfig`.
    engine, gateway:
        Pre-built collaborators, mainly for tests.
    run_spike_ticker:
        Start the load-spike tick task for the application's lifetime.

    Returns
    -------
    FastAPI
        An application exposing the REST routes under ``/api`` and the
        telemetry WebSocket at ``config.server.websocket_path``.
    """
    config = config or AppConfig()
    engine = engine or SimulationEngine(config.simulation, seed=config.seed)
    gateway = gateway or get_gateway(config.analysis)
    sessions = SessionManager(engine, gateway, config.simulation.push_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ticker: asyncio.Task | None = None
        if run_spike_ticker:
            ticker = asyncio.create_task(engine.run_spike_ticker(), name="spike-ticker")
        logger.info(
            "Telemetry service ready: %d clusters, push every %.1fs, analysis via %s",
            engine.config.cluster_count,
            sessions.push_interval,
            type(gateway).__name__,
        )
        yield
        logger.info("Shutting down %d open sessions", len(sessions.sessions))
        await sessions.close_all()
        if ticker is not None:
            ticker.cancel()
            try:
                await ticker
            except asyncio.CancelledError:
                pass

    app = FastAPI(
        title="ThermaMind Telemetry API",
        description=(
            "Simulated GPU fleet telemetry: live WebSocket stream plus "
            "one-shot snapshot endpoints."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.engine = engine
    app.state.sessions = sessions

    app.include_router(router)

    async def telemetry_socket(websocket: WebSocket) -> None:
        await sessions.serve(websocket)

    app.add_api_websocket_route(config.server.websocket_path, telemetry_socket)

    return app
