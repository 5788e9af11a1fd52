"""
Executor - bounded tool-calling sub-loop.

Turns the planner's proposed actions into tool invocations. The first pass
sends the environment snapshot and the actions; later passes only ask the
model to verify and call ``done``, so the prompt does not grow with another
snapshot. The sub-loop ends on the ``done`` signal, on a human-input
request, on a pass without tool calls, or after ``max_passes`` passes. Only
the first two are reported as signals; everything else makes the
orchestrator re-plan.
"""

from typing import Any

import structlog

from taskpilot.core.domain.context import ExecutionContext
from taskpilot.core.domain.errors import ExecutionFailedError, IterationBudgetExceededError
from taskpilot.core.domain.models import ExecutorResult, PlannerOutput
from taskpilot.core.domain.planners import build_environment_message
from taskpilot.core.domain.token_budget import TokenBudget
from taskpilot.core.domain.tool_dispatcher import ToolExecutor
from taskpilot.core.interfaces.environment import EnvironmentProviderProtocol
from taskpilot.core.interfaces.llm import LLMProviderProtocol
from taskpilot.core.interfaces.tools import ToolRegistryProtocol
from taskpilot.core.prompts.planner_prompts import (
    EXECUTOR_FIRST_PASS_INSTRUCTION,
    EXECUTOR_REMINDER,
    EXECUTOR_VERIFY_INSTRUCTION,
    build_executor_prompt,
    format_planner_output_for_executor,
)
from taskpilot.infrastructure.tools.tool_converter import (
    assistant_tool_calls_to_message,
    tool_result_to_message,
)

MAX_EXECUTOR_ITERATIONS = 3


class Executor:
    """
    Runs proposed actions through a tool-calling LLM.

    Args:
        llm_provider: Tool-calling completion client
        tool_executor: Dispatcher for the returned tool calls
        tool_registry: Source of the tool schemas offered to the model
        token_budget: Used to cap the environment snapshot
        environment: Optional snapshot provider (first pass only)
        max_passes: Pass ceiling per invocation
        max_tool_calls: Optional cumulative tool-call budget for the run
    """

    def __init__(
        self,
        llm_provider: LLMProviderProtocol,
        tool_executor: ToolExecutor,
        tool_registry: ToolRegistryProtocol,
        token_budget: TokenBudget,
        environment: EnvironmentProviderProtocol | None = None,
        model_alias: str = "main",
        max_passes: int = MAX_EXECUTOR_ITERATIONS,
        max_attempts: int = 3,
        temperature: float = 0.2,
        max_tool_calls: int | None = None,
    ):
        self.llm_provider = llm_provider
        self.tool_executor = tool_executor
        self.tool_registry = tool_registry
        self.token_budget = token_budget
        self.environment = environment
        self.model_alias = model_alias
        self.max_passes = max_passes
        self.max_attempts = max_attempts
        self.temperature = temperature
        self.max_tool_calls = max_tool_calls
        self.logger = structlog.get_logger().bind(component="executor")

    async def run(
        self,
        proposed_actions: str,
        planner_output: PlannerOutput,
        context: ExecutionContext,
    ) -> ExecutorResult:
        """
        Execute ``proposed_actions``.

        Raises:
            CancellationError: If the run is cancelled before a pass or a tool call
            ExecutionFailedError: If the tool-calling LLM call fails
            IterationBudgetExceededError: If the cumulative tool-call budget is spent
        """
        system_prompt = build_executor_prompt(context.supports_vision)
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        tool_schemas = self.tool_registry.to_openai_schemas()
        tool_messages: list[str] = []
        passes = 0

        try:
            while passes < self.max_passes:
                context.check_cancelled()
                self._check_tool_budget(context)
                passes += 1

                if passes == 1:
                    messages.extend(
                        await self._first_pass_messages(
                            system_prompt, proposed_actions, planner_output, context
                        )
                    )
                else:
                    messages.append({"role": "user", "content": EXECUTOR_VERIFY_INSTRUCTION})

                self.logger.info("executor_pass", iteration=context.iterations, executor_pass=passes)
                result = await self.llm_provider.complete_with_tools(
                    messages=messages,
                    tools=tool_schemas,
                    model=self.model_alias,
                    max_attempts=self.max_attempts,
                    cancel_token=context.cancel_token,
                    temperature=self.temperature,
                )
                if not result.get("success"):
                    context.check_cancelled()
                    self.logger.error("executor_llm_failed", error=result.get("error"))
                    raise ExecutionFailedError(
                        f"Executor LLM call failed: {result.get('error', 'unknown error')}",
                        {"executor_pass": passes},
                    )

                tool_calls = result.get("tool_calls") or []
                if not tool_calls:
                    self.logger.info("executor_no_tool_calls", executor_pass=passes)
                    return ExecutorResult(completed=False, tool_messages=tool_messages, passes=passes)

                self.logger.info(
                    "tool_calls_received",
                    executor_pass=passes,
                    count=len(tool_calls),
                    tools=[call.name for call in tool_calls],
                )
                messages.append(assistant_tool_calls_to_message(tool_calls))

                dispatch = await self.tool_executor.dispatch(tool_calls, context)
                for tool_result in dispatch.results:
                    messages.append(
                        tool_result_to_message(
                            tool_result.tool_call_id, tool_result.tool_name, tool_result.content
                        )
                    )
                    tool_messages.append(tool_result.to_message_line())

                if dispatch.done_signal:
                    self.logger.info("executor_done_signal", executor_pass=passes)
                    return ExecutorResult(
                        completed=True,
                        done_signal=True,
                        tool_messages=tool_messages,
                        passes=passes,
                    )
                if dispatch.requires_human_input:
                    self.logger.info("executor_human_input_requested", executor_pass=passes)
                    return ExecutorResult(
                        completed=False,
                        requires_human_input=True,
                        human_prompt=dispatch.human_prompt,
                        tool_messages=tool_messages,
                        passes=passes,
                    )

            self.logger.warning("executor_pass_ceiling_reached", max_passes=self.max_passes)
            return ExecutorResult(completed=False, tool_messages=tool_messages, passes=passes)
        finally:
            context.executor_transcript.extend(messages)

    async def _first_pass_messages(
        self,
        system_prompt: str,
        proposed_actions: str,
        planner_output: PlannerOutput,
        context: ExecutionContext,
    ) -> list[dict[str, Any]]:
        planner_text = format_planner_output_for_executor(planner_output.reasoning, proposed_actions)
        reminder = f"<system-reminder>\nTASK: {context.task}\n{EXECUTOR_REMINDER}\n</system-reminder>"

        used_tokens = self.token_budget.count(system_prompt) + self.token_budget.count(
            reminder + "\n" + planner_text
        )
        messages = []
        environment_message = await build_environment_message(
            self.environment, self.token_budget, used_tokens, context.supports_vision
        )
        if environment_message is not None:
            messages.append(environment_message)
        messages.append({"role": "user", "content": reminder})
        messages.append({"role": "user", "content": f"{planner_text}\n{EXECUTOR_FIRST_PASS_INSTRUCTION}"})
        return messages

    def _check_tool_budget(self, context: ExecutionContext) -> None:
        if self.max_tool_calls is not None and context.metrics.tool_calls >= self.max_tool_calls:
            self.logger.error(
                "tool_call_budget_exhausted",
                tool_calls=context.metrics.tool_calls,
                max_tool_calls=self.max_tool_calls,
            )
            raise IterationBudgetExceededError(self.max_tool_calls, "execution")
