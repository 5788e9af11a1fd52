"""
Per-run execution context.

One ExecutionContext is constructed at ``execute()`` entry and passed by
reference through every planner, executor and dispatcher call. It is never
reused across runs.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from taskpilot.core.domain.errors import CancellationError
from taskpilot.core.domain.history import ExecutionHistory
from taskpilot.core.domain.models import ExecutionMetrics, ExecutionMode


class CancellationToken:
    """Cancellation signal checked synchronously at loop checkpoints."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Task cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationError(self.reason or "Task cancelled")

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()


@dataclass
class ExecutionContext:
    """
    Mutable state of one run, owned by the Orchestrator.

    Planners and the executor read from it; the only writes they perform are
    the observability-only logs (reasoning log, executor transcript).

    Attributes:
        task: Task text after special-task resolution (immutable for the run)
        mode: Planning strategy selected at run start
        max_tokens: Context window size used for token budget checks
        cancel_token: Cancellation signal for the run
        metrics: Counters read by planner prompts
        history: Execution history fed to planners
        todo_markdown: Authoritative checklist state (predefined mode only)
        iterations: Planning iterations started so far
    """

    task: str
    mode: ExecutionMode
    max_tokens: int
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    metrics: ExecutionMetrics = field(default_factory=ExecutionMetrics)
    history: ExecutionHistory = field(default_factory=ExecutionHistory)
    todo_markdown: str = ""
    iterations: int = 0
    supports_vision: bool = False
    reasoning_log: list[str] = field(default_factory=list)
    executor_transcript: list[dict[str, Any]] = field(default_factory=list)
    awaiting_human_input: bool = False
    human_prompt: str = ""

    def check_cancelled(self) -> None:
        self.cancel_token.raise_if_cancelled()

    def add_reasoning(self, record: str) -> None:
        self.reasoning_log.append(record)

    def request_human_input(self, prompt: str) -> None:
        self.awaiting_human_input = True
        self.human_prompt = prompt

    def clear_human_input_state(self) -> None:
        self.awaiting_human_input = False
        self.human_prompt = ""
