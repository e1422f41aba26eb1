"""neuralgraph CLI — operate a station's capability graph.

    neuralgraph genesis            # seed the core nodes and edges
    neuralgraph status             # phase, counts, store health
    neuralgraph topology           # list nodes and edges
    neuralgraph evolve             # run one evolution cycle now
    neuralgraph pending            # proposals awaiting a decision
    neuralgraph approve <id>       # apply a proposal
    neuralgraph reject <id>        # discard a proposal
    neuralgraph route "text"       # show where a task would go
    neuralgraph serve              # HTTP API + evolution daemon
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine

import typer
from rich.console import Console
from rich.table import Table

from neuralgraph.config import settings
from neuralgraph.exceptions import NeuralGraphError

console = Console()

app = typer.Typer(
    name="neuralgraph",
    help="neuralgraph -- capability graph maturation and task routing.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run(action: Callable[[Any], Coroutine]) -> Any:
    """Run ``action(station)`` against the configured store, reporting engine errors."""
    from neuralgraph.cli.context import NeuralGraphContext, run_async

    ctx = NeuralGraphContext.get()

    async def _go():
        station = await ctx.ensure_station()
        return await action(station)

    try:
        return run_async(_go())
    except NeuralGraphError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)


@app.command("status")
def status():
    """Show the station's phase and graph health."""
    result = _run(lambda station: station.status())

    table = Table(title=f"Station {result.station_id}", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Phase", result.phase.value)
    table.add_row("Store", "[green]connected[/green]" if result.store_connected else "[red]unreachable[/red]")
    table.add_row("Nodes", str(result.node_count))
    table.add_row("Edges", f"{result.edge_count} ({result.myelinated_edges} myelinated)")
    table.add_row("Executions", str(result.execution_count))
    table.add_row("Pending proposals", str(result.pending_events))
    table.add_row("Avg fitness", f"{result.avg_fitness:.1f}")
    table.add_row(
        "Last cycle",
        result.last_cycle_at.strftime("%Y-%m-%d %H:%M") if result.last_cycle_at else "-",
    )
    console.print(table)


@app.command("topology")
def topology():
    """List nodes and edges."""
    result = _run(lambda station: station.topology())

    if not result.nodes:
        console.print("[dim]Graph is empty. Run 'neuralgraph genesis' first.[/dim]")
        return

    nodes = Table(title="Nodes")
    nodes.add_column("ID", style="cyan", no_wrap=True)
    nodes.add_column("Type", style="dim")
    nodes.add_column("Status")
    nodes.add_column("Activations", justify="right")
    nodes.add_column("Fitness", style="green", justify="right")
    for n in result.nodes:
        nodes.add_row(
            n.node_id, n.node_type.value, n.status.value,
            str(n.activation_count), f"{n.fitness_score:.1f}",
        )
    console.print(nodes)

    edges = Table(title="Edges")
    edges.add_column("ID", style="cyan", no_wrap=True)
    edges.add_column("Type", style="dim")
    edges.add_column("Weight", justify="right")
    edges.add_column("Activations", justify="right")
    edges.add_column("Myelin", style="magenta")
    for e in result.edges:
        edges.add_row(
            e.edge_id, e.edge_type.value, f"{e.weight:.2f}",
            str(e.activation_count), "yes" if e.myelinated else "",
        )
    console.print(edges)


@app.command("genesis")
def genesis():
    """Seed the core nodes and edges (safe to re-run)."""
    result = _run(lambda station: station.seed_genesis())
    console.print(
        f"[green]Genesis for {result.station_id}:[/green] "
        f"{result.nodes_created} nodes, {result.edges_created} edges created"
    )


@app.command("evolve")
def evolve():
    """Run one evolution cycle now."""
    summary = _run(lambda station: station.evolve())
    if summary is None:
        console.print("[yellow]An evolution cycle is already running.[/yellow]")
        return

    console.print(
        f"[bold]Cycle complete[/bold] ({summary.duration_ms:.0f}ms) "
        f"phase=[cyan]{summary.phase.value}[/cyan] "
        f"executions={summary.total_executions}"
    )
    console.print(
        f"  nodes rescored: {summary.nodes_updated}  "
        f"edges myelinated: {summary.edges_updated}  "
        f"proposals queued: {summary.pending_events_created}"
    )
    if summary.phase_transition:
        console.print(f"  [green]Entered {summary.phase.value} phase[/green]")


@app.command("pending")
def pending():
    """List proposals awaiting approval."""
    events = _run(lambda station: station.list_pending())
    if not events:
        console.print("[dim]No pending proposals.[/dim]")
        return

    table = Table(title="Pending Proposals")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Kind", style="yellow")
    table.add_column("Target", style="white")
    table.add_column("Reason")
    table.add_column("Proposed", style="dim", no_wrap=True)
    for e in events:
        table.add_row(
            e.event_id, e.kind.value, e.target_id, e.reason,
            e.proposed_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command("approve")
def approve(event_id: str = typer.Argument(help="Proposal ID")):
    """Approve a proposal and apply it to the graph."""
    event = _run(lambda station: station.approve(event_id))
    console.print(f"[green]Approved[/green] {event.kind.value} on {event.target_id}")


@app.command("reject")
def reject(event_id: str = typer.Argument(help="Proposal ID")):
    """Reject a proposal; the graph is left as it is."""
    event = _run(lambda station: station.reject(event_id))
    console.print(f"[dim]Rejected {event.kind.value} on {event.target_id}.[/dim]")


@app.command("route")
def route(
    description: str = typer.Argument("", help="Task description"),
    task_type: str = typer.Option("unknown", "--type", "-t", help="Known task type"),
):
    """Show which capability node a task would be routed to."""
    decision = _run(lambda station: station.route(
        task_type=task_type,
        task_description=description or None,
    ))
    console.print(
        f"[cyan]{decision.task_type}[/cyan] -> [bold]{decision.route}[/bold] "
        f"(confidence {decision.confidence:.2f}, {decision.latency_ms:.1f}ms)"
    )


@app.command("serve")
def serve(
    host: str = typer.Option(settings.api_host, "--host", help="Bind address"),
    port: int = typer.Option(settings.api_port, "--port", "-p", help="Port"),
    no_daemon: bool = typer.Option(False, "--no-daemon", help="Don't run scheduled evolution"),
):
    """Serve the HTTP API, running evolution cycles in the background."""
    import uvicorn

    from neuralgraph.api.router import create_app
    from neuralgraph.cli.context import NeuralGraphContext

    ctx = NeuralGraphContext.get()
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    api = create_app(ctx.station, run_daemon=not no_daemon)
    console.print(f"[bold]neuralgraph[/bold] serving {ctx.station.station_id} on http://{host}:{port}")
    uvicorn.run(api, host=host, port=port, log_level=settings.log_level.lower())


@app.command("version")
def version_cmd():
    """Show neuralgraph version."""
    from neuralgraph import __version__
    console.print(f"neuralgraph v{__version__}")
