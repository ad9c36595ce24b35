# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Rich terminal renderer.

Composes Rich tables, panels and ASCII charts into the operator-facing
output of the ``thermamind`` command line.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from thermamind import __version__
from thermamind.analysis.advisor import efficiency_note
from thermamind.data.models import (
    ClusterActivity,
    FleetSnapshot,
    LoadSpikeState,
    NodeStatus,
    RegionSummary,
    StatsSnapshot,
)
from thermamind.reporting.ascii_charts import load_gauge, sparkline, spike_strip

_ACTIVITY_COLORS = {
    ClusterActivity.active: "green",
    ClusterActivity.idle: "dim",
    ClusterActivity.optimizing: "yellow",
}


class TerminalRenderer:
    """Renders fleet snapshots to the terminal using Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_snapshot(self, snapshot: FleetSnapshot, stats: StatsSnapshot) -> None:
        """Render the header, headline statistics and per-cluster table."""
        self._render_header(snapshot)
        self._render_stats(stats)
        self._render_clusters(snapshot)
        self._render_footer(snapshot)

    def render_regions(self, summaries: list[RegionSummary]) -> None:
        """Render one row per data center."""
        self.console.print()
        self.console.print(Rule("[bold]DATA CENTERS[/bold]"))

        table = Table(show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("Data Center", style="bold", min_width=18)
        table.add_column("Sites", justify="right")
        table.add_column("GPU Load", justify="center", min_width=15)
        table.add_column("Cooling", justify="center", min_width=15)
        table.add_column("Avg Power", justify="right")
        table.add_column("Avg Temp", justify="right")
        table.add_column("Online", justify="center")
        table.add_column("Spikes", justify="center")

        for s in summaries:
            online = f"{s.online_clusters}/{s.online_clusters + s.offline_clusters}"
            spikes = f"[red]{s.active_spikes}[/red]" if s.active_spikes else "0"
            table.add_row(
                s.data_center,
                str(s.site_count),
                load_gauge(s.avg_gpu_load),
                load_gauge(s.avg_cooling),
                f"{s.avg_power_kw} kW",
                f"{s.avg_temperature_c:.1f} °C",
                online,
                spikes,
            )

        self.console.print(table)

    def render_spike_timeline(self, states: list[LoadSpikeState]) -> None:
        """Render a tick-by-tick strip of spike states plus the transitions."""
        self.console.print()
        self.console.print(Rule("[bold]LOAD SPIKE TIMELINE[/bold]"))
        self.console.print(f"  {spike_strip([s.multiplier for s in states])}")

        previous: LoadSpikeState | None = None
        for tick, state in enumerate(states, start=1):
            if previous is not None and state.status is previous.status:
                previous = state
                continue
            if state.is_spike:
                self.console.print(
                    f"  [dim]tick {tick:>4}[/dim]  [red]spike[/red] "
                    f"x{state.multiplier:.2f} in {state.affected_region} "
                    f"for {state.ticks_remaining} ticks"
                )
            else:
                self.console.print(
                    f"  [dim]tick {tick:>4}[/dim]  [green]normal[/green] "
                    f"next spike in {state.ticks_until_spike} ticks"
                )
            previous = state

        spikes = sum(
            1
            for before, after in zip([None, *states], states)
            if after.is_spike and (before is None or not before.is_spike)
        )
        self.console.print(f"\n  [bold]Spikes started:[/bold] {spikes} in {len(states)} ticks")

    # ------------------------------------------------------------------
    # Private rendering methods
    # ------------------------------------------------------------------

    def _render_header(self, snapshot: FleetSnapshot) -> None:
        online = sum(1 for c in snapshot.clusters if c.status is NodeStatus.online)
        header_text = Text()
        header_text.append("THERMAMIND", style="bold cyan")
        header_text.append(" | ", style="dim")
        header_text.append(f"{len(snapshot.clusters)} clusters", style="bold")
        header_text.append(f" | {snapshot.node_count} nodes", style="")
        header_text.append(f" | {online} online", style="")
        if snapshot.spike.is_spike:
            header_text.append(" | ", style="dim")
            header_text.append(
                f"SPIKE x{snapshot.spike.multiplier:.2f} {snapshot.spike.affected_region}",
                style="bold red",
            )

        self.console.print()
        self.console.print(Panel(header_text, title="GPU Fleet Telemetry"))

    def _render_stats(self, stats: StatsSnapshot) -> None:
        table = Table(show_header=False, padding=(0, 2), box=None)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")

        savings_color = "green" if stats.energy_savings_pct >= 0 else "red"
        table.add_row(
            "Energy Savings", f"[{savings_color}]{stats.energy_savings_pct:.1f}%[/{savings_color}]"
        )
        table.add_row("CO2 Offset", f"{stats.co2_offset_kg:,} kg")
        table.add_row("Power Draw", f"{stats.power_draw_mw:.3f} MW")
        table.add_row("Cooling PUE", f"{stats.cooling_pue:.3f}")

        self.console.print()
        self.console.print(Panel(table, title="[bold]KEY METRICS[/bold]"))

    def _render_clusters(self, snapshot: FleetSnapshot) -> None:
        self.console.print()
        self.console.print(Rule("[bold]CLUSTERS[/bold]"))

        table = Table(show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("Cluster", style="bold")
        table.add_column("Site", min_width=14)
        table.add_column("State", justify="center")
        table.add_column("GPU Load", justify="center", min_width=15)
        table.add_column("Cooling", justify="center", min_width=15)
        table.add_column("Temp", justify="right")
        table.add_column("Power", justify="right")
        table.add_column("Node Load", min_width=8)
        table.add_column("Note")

        for c in snapshot.clusters:
            activity = c.activity
            color = _ACTIVITY_COLORS[activity]
            name = f"{c.name} [red]⚡[/red]" if c.spike_active else c.name
            table.add_row(
                name,
                c.profile.site,
                f"[{color}]{activity.value}[/{color}]",
                load_gauge(c.avg_gpu_load),
                load_gauge(c.avg_cooling),
                f"{c.avg_temperature_c:.1f} °C",
                f"{c.total_power_kw:.1f} kW",
                sparkline([float(n.gpu_load) for n in c.nodes]),
                f"[dim]{efficiency_note(c)}[/dim]",
            )

        self.console.print(table)

    def _render_footer(self, snapshot: FleetSnapshot) -> None:
        self.console.print()
        self.console.print(Rule(style="dim"))
        self.console.print(
            f"  [dim]Captured: {snapshot.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')} | "
            f"thermamind v{__version__}[/dim]"
        )
        self.console.print()
