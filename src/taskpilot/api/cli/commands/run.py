"""Run command - execute a task."""

import asyncio
import contextlib
import logging
import signal
from typing import Optional

import structlog
import typer

from taskpilot.api.cli.output_formatter import (
    ConsoleEscalationChannel,
    RichProgressSink,
    TaskpilotConsole,
)
from taskpilot.application.factory import OrchestratorFactory
from taskpilot.core.domain.context import CancellationToken
from taskpilot.core.domain.errors import CancellationError, TaskpilotError
from taskpilot.core.domain.orchestrator import Orchestrator
from taskpilot.infrastructure.io.environment import FileEnvironmentProvider, StaticEnvironmentProvider

EXIT_COMPLETED = 0
EXIT_FAILED = 1
EXIT_ABORTED = 130


def configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def run_task(
    ctx: typer.Context,
    task: str = typer.Argument(..., help="Task description"),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Configuration profile (overrides global --profile)"
    ),
    state_file: Optional[str] = typer.Option(
        None, "--state-file", "-s", help="File holding the current environment state"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Execute a task with the planner/executor loop.

    Examples:
        taskpilot run "Find the cheapest flight to Lisbon"

        taskpilot run "Read about our vision and upvote" --state-file page.txt
    """
    global_opts = ctx.obj or {}
    profile = profile or global_opts.get("profile", "dev")
    configure_logging(debug)

    output = TaskpilotConsole(debug=debug)
    output.print_banner()
    output.print_system_message(f"Task: {task}")
    output.print_system_message(f"Profile: {profile}")
    output.print_divider()

    environment = (
        FileEnvironmentProvider(state_file) if state_file else StaticEnvironmentProvider()
    )
    orchestrator = OrchestratorFactory(global_opts.get("config_dir", "configs")).create_orchestrator(
        profile=profile,
        progress=RichProgressSink(output),
        escalation_channel=ConsoleEscalationChannel(output),
        environment=environment,
    )

    exit_code = asyncio.run(_execute(orchestrator, task, output))
    raise typer.Exit(exit_code)


async def _execute(orchestrator: Orchestrator, task: str, output: TaskpilotConsole) -> int:
    cancel_token = CancellationToken()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, cancel_token.cancel, "Interrupted by user")

    try:
        await orchestrator.execute(task, cancel_token=cancel_token)
    except CancellationError as e:
        output.print_divider()
        output.print_warning(f"Task aborted: {e.message}")
        return EXIT_ABORTED
    except TaskpilotError as e:
        output.print_divider()
        output.print_error(f"Task failed: {e.message}")
        return EXIT_FAILED
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)

    output.print_divider()
    output.print_success("Task completed!")
    return EXIT_COMPLETED
