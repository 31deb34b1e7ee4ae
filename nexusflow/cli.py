"""CLI entry point for the Nexus Flow engine.

Commands:
- nexusflow init: Write default engine configuration
- nexusflow run: Execute a workflow graph file
- nexusflow validate: Check a workflow graph file for structural problems
- nexusflow visualize: Show a workflow graph in the terminal
- nexusflow node-types: List registered node types
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
import pydantic
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from nexusflow import __version__
from nexusflow.cli_ui.graph_renderer import StatusTableRenderer, TerminalGraphRenderer
from nexusflow.cli_ui.live_monitor import LiveExecutionMonitor
from nexusflow.core.config import DEFAULT_CONFIG_YAML, config_path, load_config
from nexusflow.core.engine import ExecutionCoordinator
from nexusflow.core.errors import EngineError
from nexusflow.core.graph_schema import WorkflowGraph
from nexusflow.core.handlers import default_registry

console = Console()


def get_repo_path() -> Path:
    """Get the project path (current directory)."""
    return Path.cwd()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _logging_configured() -> bool:
    """True if the embedding process already installed root log handlers."""
    return bool(logging.getLogger().handlers)


def _load_workflow(workflow_file: str) -> WorkflowGraph:
    """Load a workflow graph from YAML or JSON, exiting with a message on error."""
    try:
        with open(workflow_file) as f:
            workflow_dict = yaml.safe_load(f)
        if not isinstance(workflow_dict, dict):
            console.print(
                f"[red]Error: Invalid content in '{escape(workflow_file)}'. "
                f"Expected a mapping, got {type(workflow_dict).__name__}.[/red]"
            )
            sys.exit(1)
        return WorkflowGraph(**workflow_dict)
    except yaml.YAMLError as e:
        console.print(f"[red]Error parsing workflow file '{escape(workflow_file)}':[/red]")
        console.print(f"  {escape(str(e))}")
        sys.exit(1)
    except pydantic.ValidationError as e:
        console.print("[red]Error validating workflow schema:[/red]")
        for err in e.errors():
            loc = ".".join(str(x) for x in err["loc"])
            console.print(f"  - {escape(loc)}: {escape(err['msg'])}")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Nexus Flow - workflow execution engine.

    Runs automation graphs node by node in dependency order.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        _configure_logging("DEBUG")


@main.command()
def init() -> None:
    """Write default engine configuration to .nexusflow/config.yaml."""
    path = config_path(get_repo_path())
    if path.exists():
        console.print("[yellow]Project already initialized[/yellow]")
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_YAML)
    console.print(f"[green]Project initialized![/green] Config written to {escape(str(path))}")


@main.command()
@click.argument("workflow_file", type=click.Path(exists=True))
@click.option("--no-latency", is_flag=True, help="Disable simulated handler latency")
@click.option("--show-logs", is_flag=True, help="Print every execution log entry")
@click.pass_context
def run(ctx: click.Context, workflow_file: str, no_latency: bool, show_logs: bool) -> None:
    """Execute a workflow graph file."""
    workflow = _load_workflow(workflow_file)

    try:
        config = load_config(get_repo_path())
    except (yaml.YAMLError, pydantic.ValidationError, ValueError) as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        sys.exit(1)
    if no_latency:
        config = config.model_copy(update={"min_latency_ms": 0.0, "max_latency_ms": 0.0})
    # --verbose has already configured DEBUG logging
    if not ctx.obj.get("verbose") and not _logging_configured():
        _configure_logging(config.log_level)

    registry = default_registry()
    monitor = LiveExecutionMonitor(console, show_logs=show_logs)
    coordinator = ExecutionCoordinator(
        workflow,
        registry=registry,
        observer=monitor,
        config=config,
        log_listener=monitor.on_log_entry,
    )

    console.print(
        f"[blue]Running '{escape(workflow.name)}'[/blue] "
        f"({len(workflow.nodes)} nodes, {len(workflow.connections)} connections)"
    )

    status_renderer = StatusTableRenderer(console)
    try:
        result = asyncio.run(coordinator.execute_workflow())
    except EngineError as e:
        if coordinator.execution_id:
            console.print(
                status_renderer.render_status_table(
                    workflow, coordinator.execution_id, monitor.statuses, coordinator.get_context()
                )
            )
        console.print(f"[red]Workflow failed:[/red] {escape(str(e))}")
        sys.exit(1)

    console.print(
        status_renderer.render_status_table(
            workflow, result.execution_id, monitor.statuses, result.context
        )
    )
    console.print(
        f"[green]Workflow completed successfully[/green] in {result.duration_ms:.0f} ms"
    )


@main.command()
@click.argument("workflow_file", type=click.Path(exists=True))
def validate(workflow_file: str) -> None:
    """Check a workflow graph file for structural problems."""
    workflow = _load_workflow(workflow_file)

    errors = workflow.validate_graph()
    if errors:
        console.print("[red]Validation errors:[/red]")
        for error in errors:
            console.print(f"  - {escape(error)}")
        sys.exit(1)

    registry = default_registry()
    unknown = sorted({n.type for n in workflow.nodes if n.type not in registry})
    console.print("[green]Workflow validation passed[/green]")
    console.print(f"  Nodes: {len(workflow.nodes)}")
    console.print(f"  Connections: {len(workflow.connections)}")
    if unknown:
        console.print(
            f"[yellow]  Unregistered types (generic handler): {escape(', '.join(unknown))}[/yellow]"
        )


@main.command()
@click.argument("workflow_file", type=click.Path(exists=True))
@click.option("--levels", is_flag=True, help="Show topological levels instead of a tree")
def visualize(workflow_file: str, levels: bool) -> None:
    """Visualize a workflow graph in the terminal."""
    workflow = _load_workflow(workflow_file)
    renderer = TerminalGraphRenderer(default_registry(), console)

    if levels:
        console.print(renderer.render_graph(workflow))
    else:
        console.print(renderer.render_as_tree(workflow))

    console.print()
    console.print(f"[bold]Nodes:[/] {len(workflow.nodes)}")
    console.print(f"[bold]Connections:[/] {len(workflow.connections)}")
    console.print(f"[bold]Entries:[/] {escape(', '.join(workflow.get_entry_nodes()) or '(none)')}")


@main.command("node-types")
def node_types() -> None:
    """List registered node types."""
    registry = default_registry()

    table = Table(title="Node Types")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Category", style="magenta")
    table.add_column("Input", justify="center")
    table.add_column("Output", justify="center")
    table.add_column("Defaults", style="white")

    for descriptor in registry.descriptors():
        defaults = ", ".join(f"{k}={v!r}" for k, v in descriptor.default_properties.items())
        table.add_row(
            descriptor.type,
            descriptor.category,
            "✓" if descriptor.has_input else "",
            "✓" if descriptor.has_output else "",
            escape(defaults),
        )

    console.print(table)
    console.print("[dim]Unregistered types fall back to the generic handler.[/dim]")


if __name__ == "__main__":
    main()
