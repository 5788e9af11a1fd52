"""
Error taxonomy for task execution.

Failures that have a bounded local retry policy (planner parse failures,
individual tool failures) are absorbed where they occur. Anything that
exhausts its budget is converted into one of the fatal errors below and
raised out of ``Orchestrator.execute()``.
"""

from __future__ import annotations

from typing import Any


class TaskpilotError(Exception):
    """Base exception for all task execution errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class PlanParseError(TaskpilotError):
    """Planner output is unusable for this attempt (retried locally)."""


class HistorySummarizationError(PlanParseError):
    """The summarizer LLM call failed while compacting execution history."""


class PlanningFailedError(TaskpilotError):
    """Planner retry ceiling exhausted within a single iteration."""

    def __init__(self, attempts: int, last_error: str):
        super().__init__(
            f"Planning failed after {attempts} attempts: {last_error}",
            {"attempts": attempts, "last_error": last_error},
        )
        self.attempts = attempts
        self.last_error = last_error


class IterationBudgetExceededError(TaskpilotError):
    """A planning or execution ceiling was reached without completion."""

    def __init__(self, ceiling: int, mode: str):
        if mode == "execution":
            message = f"Tool call budget ({ceiling}) exhausted in {mode} mode"
        else:
            message = f"Max iterations reached ({ceiling}) in {mode} mode"
        super().__init__(message, {"ceiling": ceiling, "mode": mode})
        self.ceiling = ceiling
        self.mode = mode


class ToolDispatchError(TaskpilotError):
    """A single tool invocation failed."""

    def __init__(self, tool_name: str, error: str):
        super().__init__(f"Tool execution failed: {error}", {"tool": tool_name})
        self.tool_name = tool_name
        self.error = error


class ExecutionFailedError(TaskpilotError):
    """The tool-calling LLM could not be reached during execution."""


class CancellationError(TaskpilotError):
    """Raised as soon as a cancellation signal is observed."""

    def __init__(self, message: str = "Task cancelled"):
        super().__init__(message)


class HumanAbortError(CancellationError):
    """The human escalation channel resolved with 'abort'."""

    def __init__(self, message: str = "Task aborted by human"):
        super().__init__(message)
