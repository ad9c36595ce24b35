# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Main CLI application for thermamind."""

from __future__ import annotations

import json
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from thermamind import __version__
from thermamind.config import AppConfig, load_config
from thermamind.engine.simulation import SimulationEngine
from thermamind.engine.state_machine import LoadSpikeStateMachine
from thermamind.reporting.terminal import TerminalRenderer


def _load_app_config(path: str | None) -> AppConfig:
    return load_config(path) if path else AppConfig()


def _configure_logging(level: str, console: Console) -> None:
    logging.basicConfig(
        level=level,
        format="%(name)s - %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_context
def cli(ctx: click.Context, no_color: bool) -> None:
    """thermamind: simulated GPU fleet telemetry and cooling analysis

    \b
      serve     Stream live telemetry over WebSocket plus REST snapshots
      snapshot  Print one synthesized fleet snapshot
      regions   Summarize the fleet per data center
      spikes    Walk the load-spike state machine tick by tick
    """
    ctx.ensure_object(dict)
    ctx.obj["console"] = Console(no_color=no_color)


@cli.command()
@click.option("--host", default=None, help="Bind host (overrides config)")
@click.option("--port", "-p", default=None, type=int, help="Bind port (overrides config)")
@click.option("--config", "-c", type=click.Path(exists=True), default=None,
              help="YAML config file")
@click.option("--log-level", default=None,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Log level (overrides config)")
@click.pass_context
def serve(
    ctx: click.Context,
    host: str | None,
    port: int | None,
    config: str | None,
    log_level: str | None,
) -> None:
    """Start the telemetry server."""
    console: Console = ctx.obj["console"]
    cfg = _load_app_config(config)
    host = host or cfg.server.host
    port = port or cfg.server.port
    level = (log_level or cfg.server.log_level).upper()

    _configure_logging(level, console)
    console.print(
        f"[bold cyan]Starting telemetry server on {host}:{port} "
        f"(WebSocket {cfg.server.websocket_path})...[/]"
    )

    from thermamind.server.app import create_app
    import uvicorn

    app = create_app(cfg)
    uvicorn.run(app, host=host, port=port, log_level=level.lower())


@cli.command()
@click.option("--seed", "-s", type=int, default=None, help="Random seed for reproducibility")
@click.option("--spike/--no-spike", default=False, help="Force a global load spike first")
@click.option("--json", "as_json", is_flag=True, default=False,
              help="Print the telemetry payload as JSON")
@click.option("--config", "-c", type=click.Path(exists=True), default=None,
              help="YAML config file")
@click.pass_context
def snapshot(
    ctx: click.Context,
    seed: int | None,
    spike: bool,
    as_json: bool,
    config: str | None,
) -> None:
    """Synthesize and display one fleet snapshot."""
    console: Console = ctx.obj["console"]
    cfg = _load_app_config(config)
    engine = SimulationEngine(cfg.simulation, seed=seed if seed is not None else cfg.seed)
    if spike:
        engine.trigger_spike()

    if as_json:
        from thermamind.server.protocol import build_telemetry_payload, dump_message

        payload = build_telemetry_payload(engine.build_frame())
        click.echo(json.dumps(dump_message(payload), indent=2))
        return

    with console.status("[bold cyan]Synthesizing fleet telemetry..."):
        frame = engine.build_frame()

    TerminalRenderer(console).render_snapshot(frame.snapshot, frame.stats)


@cli.command()
@click.option("--seed", "-s", type=int, default=None, help="Random seed for reproducibility")
@click.option("--config", "-c", type=click.Path(exists=True), default=None,
              help="YAML config file")
@click.pass_context
def regions(ctx: click.Context, seed: int | None, config: str | None) -> None:
    """Summarize one snapshot per data center."""
    console: Console = ctx.obj["console"]
    cfg = _load_app_config(config)
    engine = SimulationEngine(cfg.simulation, seed=seed if seed is not None else cfg.seed)
    summaries = engine.regions(engine.snapshot())
    TerminalRenderer(console).render_regions(summaries)


@cli.command()
@click.option("--ticks", "-n", type=click.IntRange(1, 100_000), default=300,
              help="Number of ticks to simulate")
@click.option("--seed", "-s", type=int, default=None, help="Random seed for reproducibility")
@click.pass_context
def spikes(ctx: click.Context, ticks: int, seed: int | None) -> None:
    """Walk the load-spike state machine without any telemetry."""
    console: Console = ctx.obj["console"]
    machine = LoadSpikeStateMachine(seed=seed)
    states = [machine.tick() for _ in range(ticks)]
    TerminalRenderer(console).render_spike_timeline(states)
