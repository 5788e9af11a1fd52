"""Taskpilot CLI entry point."""

import typer
from rich.console import Console

from taskpilot.api.cli.commands import run, tools

app = typer.Typer(
    name="taskpilot",
    help="Taskpilot - autonomous planner/executor agent",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.command("run", help="Execute a task")(run.run_task)
app.command("tools", help="List available tools")(tools.list_tools)


@app.callback()
def main(
    ctx: typer.Context,
    profile: str = typer.Option("dev", "--profile", "-p", help="Configuration profile"),
    config_dir: str = typer.Option("configs", "--config-dir", help="Directory with profile YAML files"),
):
    """Taskpilot Agent CLI."""
    ctx.obj = {"profile": profile, "config_dir": config_dir}


@app.command()
def version():
    """Show Taskpilot version."""
    from taskpilot import __version__

    console.print(f"[bold blue]Taskpilot[/bold blue] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
