"""Main CLI interface using Typer."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..core.config import ScanConfig
from ..core.context import RunContext
from ..core.errors import InventoryError
from ..core.inventory_service import InventoryService, build_client
from ..exporters import JsonLinesSink, get_exporter
from ..k8s.discovery import DiscoveryCache, ResourceTypeResolver
from ..k8s.registry import CUSTOM_RESOURCE_TABLE, KIND_TABLES, table_for
from ..model.export import ExportFormat
from ..model.report import RunStatus, RunSummary
from ..utils.logger import get_logger, set_log_level

# Create CLI app
app = typer.Typer(
    name="kube-inventory",
    help="Enumerate every resource a Kubernetes cluster serves",
    add_completion=True,
)

# stdout carries records; everything human-facing goes to stderr
console = Console(stderr=True)
logger = get_logger(__name__)

EXIT_CODES: Dict[RunStatus, int] = {
    RunStatus.COMPLETED: 0,
    RunStatus.FAILED: 1,
    RunStatus.PARTIAL_FAILURE: 2,
    RunStatus.INTERRUPTED: 3,
}

STATUS_STYLES: Dict[RunStatus, str] = {
    RunStatus.COMPLETED: "green",
    RunStatus.PARTIAL_FAILURE: "yellow",
    RunStatus.INTERRUPTED: "yellow",
    RunStatus.FAILED: "red",
}


def _print_summary(summary: RunSummary) -> None:
    """Print the run summary and per-table counts."""
    style = STATUS_STYLES.get(summary.status, "white")
    console.print(
        f"Status: [{style}]{summary.status.value}[/{style}]  "
        f"Items: [green]{summary.total_items}[/green]"
    )
    if summary.reason:
        console.print(f"Reason: {summary.reason}")
    if summary.error:
        console.print(f"[red]Error:[/red] {summary.error}")

    if summary.per_table_counts:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Table", style="cyan")
        table.add_column("Items", style="green", justify="right")
        for name, count in sorted(summary.per_table_counts.items()):
            table.add_row(name, str(count))
        console.print(table)

    if summary.failed_type_names:
        console.print("[yellow]Failed resource types:[/yellow]")
        for name in summary.failed_type_names:
            console.print(f"  - {name}")


def _load_config(config_file: Optional[Path]) -> ScanConfig:
    if config_file:
        return ScanConfig.from_file(config_file)
    return ScanConfig.from_mapping()


@app.command()
def scan(
    resource_type: Optional[str] = typer.Option(
        None,
        "--resource-type",
        "-r",
        help="Kind or resource name to list (e.g. Pod, deployments). Default: every listable type",
    ),
    kubeconfig: Optional[Path] = typer.Option(
        None, "--kubeconfig", "-k", help="Path to kubeconfig (default: standard locations, then in-cluster)"
    ),
    context: Optional[str] = typer.Option(
        None, "--context", "-c", help="Kubernetes context to use"
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", help="Page size; 0 or less fetches each type in one request"
    ),
    qps: Optional[float] = typer.Option(None, "--qps", help="Client-side request rate limit"),
    burst: Optional[int] = typer.Option(None, "--burst", help="Client-side request burst"),
    stream: Optional[bool] = typer.Option(
        None, "--stream/--no-stream", help="Print each record as a JSON line as soon as it is listed"
    ),
    include_status: Optional[bool] = typer.Option(
        None, "--include-status/--no-include-status", help="Include each object's status"
    ),
    include_metadata: Optional[bool] = typer.Option(
        None, "--include-metadata/--no-include-metadata", help="Include labels and annotations"
    ),
    include_types: List[str] = typer.Option(
        [], "--include-type", "-i", help="Only list these kinds (can be used multiple times)"
    ),
    exclude_types: List[str] = typer.Option(
        [], "--exclude-type", "-e", help="Kinds to skip (can be used multiple times)"
    ),
    format: ExportFormat = typer.Option(
        ExportFormat.JSON, "--format", "-f", help="Output format for buffered results"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write buffered results to this file instead of stdout"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", help="YAML or JSON file with scan settings"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """List cluster resources and print normalized records."""
    if verbose:
        set_log_level(logging.DEBUG)

    try:
        config = _load_config(config_file).merged(
            kubeconfig=str(kubeconfig) if kubeconfig else None,
            context=context,
            resource_type=resource_type,
            limit=limit,
            qps=qps,
            burst=burst,
            stream_mode=stream,
            include_status=include_status,
            include_metadata=include_metadata,
            include_types=include_types or None,
            exclude_types=exclude_types or None,
        )
    except InventoryError as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(1)

    sink = JsonLinesSink() if config.stream_mode else None
    service = InventoryService(config)

    if config.context:
        console.print(f"Using context: [cyan]{config.context}[/cyan]")
    if config.resource_type:
        console.print(f"Resource type: [cyan]{config.resource_type}[/cyan]")
    else:
        console.print("Listing [cyan]all resource types[/cyan]. Press Ctrl+C to interrupt.")

    result = service.run(stream_sink=sink)

    if result.output is not None:
        try:
            path = get_exporter(format, output_path=output).export(result.output)
        except OSError as e:
            console.print(f"[red]Error:[/red] cannot write results: {e}")
            raise typer.Exit(1)
        if path:
            console.print(f"[green]✓[/green] Results saved to: [cyan]{path}[/cyan]")

    _print_summary(result.summary)
    raise typer.Exit(EXIT_CODES[result.summary.status])


@app.command()
def resolve(
    name: str = typer.Argument(..., help="Kind or resource name, e.g. Deployment or deployments.apps"),
    kubeconfig: Optional[Path] = typer.Option(None, "--kubeconfig", "-k", help="Path to kubeconfig"),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Kubernetes context to use"),
):
    """Show the group/version/resource a kind or resource name resolves to."""
    try:
        config = ScanConfig.from_mapping().merged(
            kubeconfig=str(kubeconfig) if kubeconfig else None, context=context
        )
        cache = DiscoveryCache(build_client(config))
        cache.initialize()
        descriptor = ResourceTypeResolver(cache).resolve(RunContext(), name)
    except InventoryError as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(1)

    table = Table(title=f"Resolved '{name}'", show_header=True)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("Group", descriptor.group or "(core)")
    table.add_row("Version", descriptor.version)
    table.add_row("Resource", descriptor.resource)
    table.add_row("Kind", descriptor.kind)
    table.add_row("Namespaced", str(descriptor.namespaced))
    table.add_row("Table", table_for(descriptor.kind or descriptor.resource))
    console.print(table)


@app.command()
def kinds():
    """List the kinds that map to dedicated tables."""
    table = Table(title="Kind tables", show_header=True)
    table.add_column("Kind", style="cyan")
    table.add_column("Table", style="green")
    for kind, name in sorted(KIND_TABLES.items()):
        table.add_row(kind, name)
    table.add_row("(anything else)", CUSTOM_RESOURCE_TABLE)
    console.print(table)


if __name__ == "__main__":
    app()
