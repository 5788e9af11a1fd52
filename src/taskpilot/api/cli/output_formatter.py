"""
Console output for the CLI: progress rendering and interactive escalation.
"""

import asyncio

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from taskpilot.core.domain.models import HumanResponse, ProgressKind

_KIND_STYLES = {
    ProgressKind.THINKING: ("dim cyan", "[~]"),
    ProgressKind.INFO: ("white", "[i]"),
    ProgressKind.ASSISTANT: ("bold green", "[>]"),
    ProgressKind.SUCCESS: ("bold green", "[+]"),
    ProgressKind.ERROR: ("bold red", "[!]"),
}


class TaskpilotConsole:
    """Rich console wrapper shared by all CLI commands."""

    def __init__(self, debug: bool = False, console: Console | None = None):
        self.console = console or Console()
        self.debug = debug

    def print_banner(self) -> None:
        self.console.print(Panel.fit("[bold blue]Taskpilot[/bold blue] - plan, act, repeat"))

    def print_divider(self) -> None:
        self.console.rule(style="dim")

    def print_system_message(self, text: str) -> None:
        self.console.print(f"[dim]{text}[/dim]")

    def print_success(self, text: str) -> None:
        self.console.print(f"[bold green]{text}[/bold green]")

    def print_warning(self, text: str) -> None:
        self.console.print(f"[bold yellow]{text}[/bold yellow]")

    def print_error(self, text: str) -> None:
        self.console.print(f"[bold red]{text}[/bold red]")

    def print_progress(self, text: str, kind: ProgressKind) -> None:
        style, marker = _KIND_STYLES[kind]
        if kind is ProgressKind.THINKING and text.lstrip().startswith(("- [", "* [")):
            # checklist updates
            self.console.print(Markdown(text))
            return
        self.console.print(f"{marker} {text}", style=style, markup=False, highlight=False)


class RichProgressSink:
    """Progress sink that renders every message on the console."""

    def __init__(self, output: TaskpilotConsole):
        self.output = output

    def publish(self, text: str, kind: ProgressKind) -> None:
        self.output.print_progress(text, kind)


class ConsoleEscalationChannel:
    """Asks the human at the terminal to continue or abort."""

    def __init__(self, output: TaskpilotConsole):
        self.output = output

    async def wait_for_response(self, prompt: str) -> HumanResponse:
        self.output.console.print(Panel(prompt, title="Human input required", border_style="yellow"))
        answer = await asyncio.to_thread(
            Prompt.ask,
            "Type 'continue' when done or 'abort' to stop",
            choices=[HumanResponse.CONTINUE.value, HumanResponse.ABORT.value],
            default=HumanResponse.CONTINUE.value,
            console=self.output.console,
        )
        return HumanResponse(answer)
