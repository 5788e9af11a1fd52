"""
Core Domain Models

Data records passed between the orchestrator, planners and executor.
Planner outputs and summaries are the only records that outlive an
iteration, as the textual residue stored in ExecutionHistory.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ExecutionMode(str, Enum):
    """Planning strategy selected at run start."""

    DYNAMIC = "dynamic"
    PREDEFINED = "predefined"


class ProgressKind(str, Enum):
    """Kind tag attached to every progress message."""

    THINKING = "thinking"
    INFO = "info"
    ASSISTANT = "assistant"
    SUCCESS = "success"
    ERROR = "error"


class HumanResponse(str, Enum):
    """Resolution of a human escalation."""

    CONTINUE = "continue"
    ABORT = "abort"
    TIMEOUT = "timeout"


@dataclass
class PlanStep:
    """One unit of a structured checklist plan."""

    action: str
    reasoning: str = ""


@dataclass
class Plan:
    steps: list[PlanStep] = field(default_factory=list)


@dataclass
class PredefinedPlan:
    """
    A fixed, ordered checklist supplied before execution starts.

    Attributes:
        name: Display name published when the run starts
        goal: One-line description of what the plan achieves
        steps: Ordered literal instruction steps
        agent_id: Stable identifier of the plan
    """

    name: str
    goal: str
    steps: list[PlanStep]
    agent_id: str = ""

    @classmethod
    def from_actions(
        cls, name: str, goal: str, actions: list[str], agent_id: str = ""
    ) -> "PredefinedPlan":
        return cls(
            name=name,
            goal=goal,
            steps=[PlanStep(action=action) for action in actions],
            agent_id=agent_id,
        )

    @property
    def plan(self) -> Plan:
        return Plan(steps=list(self.steps))


@dataclass
class ExecutionMetadata:
    """Optional caller-supplied metadata for a run."""

    predefined_plan: PredefinedPlan | None = None

    @property
    def execution_mode(self) -> ExecutionMode:
        if self.predefined_plan is not None:
            return ExecutionMode.PREDEFINED
        return ExecutionMode.DYNAMIC


@dataclass
class DynamicPlannerOutput:
    reasoning: str = ""
    proposed_actions: str = ""
    task_complete: bool = False
    final_answer: str = ""


@dataclass
class PredefinedPlannerOutput:
    reasoning: str = ""
    todo_markdown: str = ""
    proposed_actions: str = ""
    task_complete: bool = False
    final_answer: str = ""


PlannerOutput = DynamicPlannerOutput | PredefinedPlannerOutput


@dataclass
class ExecutionHistorySummary:
    """Compacted stand-in for a run of prior history entries."""

    summary: str


@dataclass
class ExecutionHistoryEntry:
    """
    One planning iteration as recorded for future planning prompts.

    Attributes:
        planner_output: Planner output of the iteration, or a summary that
            replaced all earlier entries
        tool_messages: One line per tool call made by the executor
        iteration_index: Planning iteration this entry belongs to (for a
            summary, the last iteration it covers)
    """

    planner_output: PlannerOutput | ExecutionHistorySummary
    tool_messages: list[str] = field(default_factory=list)
    iteration_index: int = 0

    @property
    def is_summary(self) -> bool:
        return isinstance(self.planner_output, ExecutionHistorySummary)


@dataclass
class ToolCall:
    """A tool invocation requested by the tool-calling LLM."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    """Outcome of one dispatched tool call."""

    tool_call_id: str
    tool_name: str
    success: bool
    content: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_message_line(self) -> str:
        return f"Tool: {self.tool_name} - Result: {self.content}"


@dataclass
class DispatchResult:
    """Aggregated result of dispatching one batch of tool calls."""

    results: list[ToolResult] = field(default_factory=list)
    done_signal: bool = False
    requires_human_input: bool = False
    human_prompt: str = ""


@dataclass
class ExecutorResult:
    completed: bool
    done_signal: bool = False
    requires_human_input: bool = False
    human_prompt: str = ""
    tool_messages: list[str] = field(default_factory=list)
    passes: int = 0


@dataclass
class EnvironmentSnapshot:
    """What the world looks like now, as text plus an optional image URL."""

    text: str
    image_url: str | None = None


@dataclass
class ExecutionMetrics:
    """Counters for one run, read by planner prompts to self-report progress."""

    tool_calls: int = 0
    errors: int = 0
    observations: int = 0
    start_time: float = 0.0
    end_time: float = 0.0
    tool_frequency: dict[str, int] = field(default_factory=dict)

    def start(self) -> None:
        self.start_time = time.time()

    def finish(self) -> None:
        self.end_time = time.time()

    def record_tool_call(self, tool_name: str) -> None:
        self.tool_calls += 1
        self.tool_frequency[tool_name] = self.tool_frequency.get(tool_name, 0) + 1

    @property
    def error_rate(self) -> float:
        """Failure percentage over all tool calls (0-100)."""
        if self.tool_calls == 0:
            return 0.0
        return self.errors / self.tool_calls * 100

    @property
    def success_rate(self) -> float:
        if self.tool_calls == 0:
            return 0.0
        return (self.tool_calls - self.errors) / self.tool_calls * 100

    def elapsed_seconds(self, now: float | None = None) -> float:
        if not self.start_time:
            return 0.0
        end = now if now is not None else (self.end_time or time.time())
        return max(0.0, end - self.start_time)

    @property
    def high_error_rate(self) -> bool:
        return self.error_rate > 30 and self.errors > 3
