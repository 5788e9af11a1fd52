"""Tools command - list the tools offered to the executor."""

import typer
from rich.console import Console
from rich.table import Table

from taskpilot.application.factory import OrchestratorFactory

console = Console()


def list_tools(
    ctx: typer.Context,
    show_schema: bool = typer.Option(False, "--schema", help="Print parameter schemas"),
):
    """List available tools."""
    registry = OrchestratorFactory((ctx.obj or {}).get("config_dir", "configs")).create_tool_registry()

    table = Table(title="Available Tools")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description", style="white")
    for tool in registry:
        table.add_row(tool.name, tool.description)
    console.print(table)

    if show_schema:
        for tool in registry:
            console.print(f"\n[bold cyan]{tool.name}[/bold cyan]")
            console.print_json(data=tool.parameters_schema)
