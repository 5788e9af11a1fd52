"""
Planners - the two planning strategies of the execution loop.

Both strategies build a prompt from the tool catalog, the run metrics, the
execution history and a fresh environment snapshot, request a free-text
completion and parse it into a planner output record. The predefined
strategy additionally carries the checklist state.

History compaction happens here, before the prompt is sent: when system
prompt plus rendered history would exceed the token threshold, the history
is summarized and the orchestrator-supplied ``compact_history`` callback
replaces the stored history with the single summary entry.
"""

import json
from dataclasses import asdict
from typing import Any, Callable, Protocol

import structlog

from taskpilot.core.domain.checklist import all_checked
from taskpilot.core.domain.context import ExecutionContext
from taskpilot.core.domain.errors import PlanParseError
from taskpilot.core.domain.models import (
    DynamicPlannerOutput,
    ExecutionHistorySummary,
    ExecutionMetrics,
    ExecutionMode,
    PlannerOutput,
    PredefinedPlannerOutput,
)
from taskpilot.core.domain.output_parser import parse_dynamic_output, parse_predefined_output
from taskpilot.core.domain.summarizer import HistorySummarizer
from taskpilot.core.domain.token_budget import TokenBudget
from taskpilot.core.interfaces.environment import EnvironmentProviderProtocol
from taskpilot.core.interfaces.llm import LLMProviderProtocol
from taskpilot.core.interfaces.tools import ToolRegistryProtocol
from taskpilot.core.prompts.planner_prompts import (
    build_dynamic_planner_prompt,
    build_predefined_planner_prompt,
)

MAX_PLANNER_ITERATIONS = 50
MAX_PREDEFINED_PLAN_ITERATIONS = 30

HIGH_ERROR_RATE_WARNING = (
    "WARNING: HIGH ERROR RATE - Current approach may be failing. Learn from the "
    "past execution history and adapt your approach"
)

CompactHistory = Callable[[ExecutionHistorySummary], None]


class PlanningStrategy(Protocol):
    """Strategy selected once per run by the orchestrator."""

    mode: ExecutionMode
    max_iterations: int

    async def plan(
        self, task: str, context: ExecutionContext, compact_history: CompactHistory
    ) -> PlannerOutput:
        """
        Produce the next planner output.

        Raises:
            PlanParseError: Output unusable for this attempt
        """
        ...

    def is_complete(
        self, output: PlannerOutput, context: ExecutionContext
    ) -> bool: ...


def format_metrics_section(metrics: ExecutionMetrics) -> str:
    lines = [
        "EXECUTION METRICS:",
        f"- Tool calls: {metrics.tool_calls} ({metrics.errors} errors, "
        f"{metrics.error_rate:.1f}% failure rate)",
        f"- Observations taken: {metrics.observations}",
        f"- Time elapsed: {metrics.elapsed_seconds():.1f} seconds",
    ]
    if metrics.high_error_rate:
        lines.append(HIGH_ERROR_RATE_WARNING)
    return "\n".join(lines)


async def build_environment_message(
    environment: EnvironmentProviderProtocol | None,
    budget: TokenBudget,
    used_tokens: int,
    include_image: bool,
) -> dict[str, Any] | None:
    """
    User message with the current environment snapshot.

    The snapshot text is capped to a share of the tokens left after
    ``used_tokens``. Returns None when no provider is configured.
    """
    if environment is None:
        return None

    snapshot = await environment.get_state(include_image=include_image)
    text = budget.fit_text(snapshot.text, budget.snapshot_limit(used_tokens))
    block = f"<environment-state>\n{text}\n</environment-state>"

    if include_image and snapshot.image_url:
        return {
            "role": "user",
            "content": [
                {"type": "text", "text": block},
                {"type": "image_url", "image_url": {"url": snapshot.image_url}},
            ],
        }
    return {"role": "user", "content": block}


class PlannerCore:
    """
    Mechanics shared by both strategies: history compaction, snapshot
    injection and the completion request.
    """

    def __init__(
        self,
        llm_provider: LLMProviderProtocol,
        tool_registry: ToolRegistryProtocol,
        token_budget: TokenBudget,
        summarizer: HistorySummarizer,
        environment: EnvironmentProviderProtocol | None = None,
        model_alias: str = "main",
        max_attempts: int = 3,
        temperature: float = 0.2,
        max_output_tokens: int = 4096,
    ):
        self.llm_provider = llm_provider
        self.tool_registry = tool_registry
        self.token_budget = token_budget
        self.summarizer = summarizer
        self.environment = environment
        self.model_alias = model_alias
        self.max_attempts = max_attempts
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.logger = structlog.get_logger().bind(component="planner")

    async def prepare_history(
        self,
        system_prompt: str,
        context: ExecutionContext,
        compact_history: CompactHistory,
    ) -> str:
        """Rendered history, summarized first when it crosses the token threshold."""
        history_text = context.history.render()
        system_tokens = self.token_budget.count(system_prompt)
        history_tokens = self.token_budget.count(history_text)
        self.logger.debug(
            "history_tokens_counted",
            system_tokens=system_tokens,
            history_tokens=history_tokens,
            threshold=self.token_budget.threshold,
        )

        if self.token_budget.exceeds_threshold(system_tokens, history_tokens):
            self.logger.info(
                "history_summarization_triggered",
                tokens=system_tokens + history_tokens,
                threshold=self.token_budget.threshold,
                entries=len(context.history),
            )
            summary = await self.summarizer.summarize(history_text, context.cancel_token)
            compact_history(summary)
            history_text = context.history.render()

        return history_text

    async def request(
        self, system_prompt: str, user_prompt: str, context: ExecutionContext
    ) -> str:
        """
        Send the planning prompt and return the raw reply text.

        Raises:
            PlanParseError: If the LLM call fails
            CancellationError: If the run was cancelled while the call was in flight
        """
        used_tokens = self.token_budget.count(system_prompt) + self.token_budget.count(user_prompt)
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        environment_message = await build_environment_message(
            self.environment, self.token_budget, used_tokens, context.supports_vision
        )
        if environment_message is not None:
            messages.append(environment_message)

        result = await self.llm_provider.complete(
            messages=messages,
            model=self.model_alias,
            max_attempts=self.max_attempts,
            cancel_token=context.cancel_token,
            temperature=self.temperature,
            max_tokens=self.max_output_tokens,
        )
        if not result.get("success"):
            context.check_cancelled()
            raise PlanParseError(f"Planning failed: {result.get('error', 'unknown error')}")
        return result.get("content") or ""

    def require_actions(self, output: PlannerOutput, complete: bool) -> None:
        if not complete and not output.proposed_actions.strip():
            raise PlanParseError("Planner provided no actions but task not complete")


class DynamicPlanner:
    """Open-ended planning: next steps are re-derived every iteration."""

    mode = ExecutionMode.DYNAMIC

    def __init__(self, core: PlannerCore, max_iterations: int = MAX_PLANNER_ITERATIONS):
        self.core = core
        self.max_iterations = max_iterations
        self.logger = structlog.get_logger().bind(component="dynamic_planner")

    async def plan(
        self, task: str, context: ExecutionContext, compact_history: CompactHistory
    ) -> DynamicPlannerOutput:
        context.metrics.observations += 1

        system_prompt = build_dynamic_planner_prompt(self.core.tool_registry.describe())
        history_text = await self.core.prepare_history(system_prompt, context, compact_history)

        user_prompt = (
            f"TASK: {task}\n\n"
            f"{format_metrics_section(context.metrics)}\n\n"
            "YOUR PREVIOUS STEPS DONE SO FAR (what you thought would work):\n"
            f"{history_text}\n\n"
            "Continue upon the previous steps what has been done so far and suggest "
            "next steps to complete the task.\n"
        )

        raw = await self.core.request(system_prompt, user_prompt, context)
        output = parse_dynamic_output(raw)
        context.add_reasoning(json.dumps(asdict(output)))

        self.core.require_actions(output, self.is_complete(output, context))
        self.logger.info(
            "planner_decision",
            task_complete=output.task_complete,
            actions_chars=len(output.proposed_actions),
        )
        return output

    def is_complete(self, output: DynamicPlannerOutput, context: ExecutionContext) -> bool:
        return output.task_complete


class PredefinedPlanner:
    """
    Checklist planning against a fixed, ordered TODO list.

    The checklist returned by the LLM becomes the run's authoritative
    checklist; an empty one leaves the previous state in place.
    """

    mode = ExecutionMode.PREDEFINED

    def __init__(self, core: PlannerCore, max_iterations: int = MAX_PREDEFINED_PLAN_ITERATIONS):
        self.core = core
        self.max_iterations = max_iterations
        self.logger = structlog.get_logger().bind(component="predefined_planner")

    async def plan(
        self, task: str, context: ExecutionContext, compact_history: CompactHistory
    ) -> PredefinedPlannerOutput:
        context.metrics.observations += 1

        system_prompt = build_predefined_planner_prompt(self.core.tool_registry.describe())
        history_text = await self.core.prepare_history(system_prompt, context, compact_history)

        user_prompt = (
            f"TASK: {task}\n\n"
            f"Current TODO List:\n{context.todo_markdown}\n\n"
            f"{format_metrics_section(context.metrics)}\n\n"
            "YOUR PREVIOUS STEPS DONE SO FAR (what you thought would work):\n"
            f"{history_text}\n\n"
            "Continue upon your previous steps what has been done so far and suggest "
            "next steps to complete the current TODO item.\n"
        )

        raw = await self.core.request(system_prompt, user_prompt, context)
        output = parse_predefined_output(raw)
        context.add_reasoning(json.dumps(asdict(output)))

        self.core.require_actions(output, self.is_complete(output, context))
        self.logger.info(
            "planner_decision",
            task_complete=output.task_complete,
            checklist_updated=bool(output.todo_markdown),
        )
        return output

    def effective_checklist(self, output: PredefinedPlannerOutput, context: ExecutionContext) -> str:
        return output.todo_markdown or context.todo_markdown

    def is_complete(self, output: PredefinedPlannerOutput, context: ExecutionContext) -> bool:
        return output.task_complete or all_checked(self.effective_checklist(output, context))
