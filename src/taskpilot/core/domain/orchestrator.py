"""
Orchestrator - top-level planning/execution control loop.

One ``execute()`` call is one run: the task is resolved against the special
tasks, a planning strategy is selected, and planner and executor alternate
until the planner declares completion, a budget is exhausted or the run is
cancelled. Progress is only observable through the progress sink; the
method returns None on completion and raises on failure or cancellation.

Run states::

    Initializing -> Planning <-> Executing -> AwaitingHumanInput
                 -> Completed | Failed | Aborted
"""

import structlog

from taskpilot.core.domain.checklist import plan_to_markdown
from taskpilot.core.domain.context import CancellationToken, ExecutionContext
from taskpilot.core.domain.errors import (
    CancellationError,
    HumanAbortError,
    IterationBudgetExceededError,
    PlanningFailedError,
    PlanParseError,
)
from taskpilot.core.domain.escalation import HumanInputWaiter
from taskpilot.core.domain.executor import Executor
from taskpilot.core.domain.models import (
    ExecutionHistorySummary,
    ExecutionMetadata,
    ExecutionMode,
    HumanResponse,
    PlannerOutput,
    PredefinedPlannerOutput,
    ProgressKind,
)
from taskpilot.core.domain.planners import DynamicPlanner, PlanningStrategy, PredefinedPlanner
from taskpilot.core.domain.special_tasks import match_special_task
from taskpilot.core.interfaces.progress import ProgressSinkProtocol

MAX_RETRIES = 3
DEFAULT_MAX_TOKENS = 128000


class Orchestrator:
    """
    Drives planner/executor alternation for one task at a time.

    Args:
        dynamic_planner: Strategy for ordinary tasks
        predefined_planner: Strategy for runs carrying a predefined plan
        executor: Tool-calling sub-loop
        human_waiter: Blocks on the human escalation channel
        progress: Sink for user-facing progress messages
        max_tokens: Context window size recorded in the run context
        max_retries: Planner attempts allowed within one iteration
        supports_vision: Ask for screenshots and use vision instructions
    """

    def __init__(
        self,
        dynamic_planner: DynamicPlanner,
        predefined_planner: PredefinedPlanner,
        executor: Executor,
        human_waiter: HumanInputWaiter,
        progress: ProgressSinkProtocol,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        max_retries: int = MAX_RETRIES,
        supports_vision: bool = False,
    ):
        self.dynamic_planner = dynamic_planner
        self.predefined_planner = predefined_planner
        self.executor = executor
        self.human_waiter = human_waiter
        self.progress = progress
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.supports_vision = supports_vision
        self.last_context: ExecutionContext | None = None
        self.logger = structlog.get_logger().bind(component="orchestrator")

    def cancel(self, reason: str = "Task cancelled") -> None:
        """Cancel the run in progress, if any."""
        if self.last_context is not None:
            self.last_context.cancel_token.cancel(reason)

    async def execute(
        self,
        task: str,
        metadata: ExecutionMetadata | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """
        Run ``task`` to completion.

        Raises:
            CancellationError: Run cancelled (HumanAbortError when the human aborted)
            PlanningFailedError: Planner retry ceiling exhausted in one iteration
            IterationBudgetExceededError: Iteration ceiling or tool-call budget reached
            ExecutionFailedError: Tool-calling LLM unavailable
        """
        special = match_special_task(task)
        if special is not None:
            task = special.task
            metadata = special.metadata
        metadata = metadata or ExecutionMetadata()

        mode = metadata.execution_mode
        strategy: PlanningStrategy = (
            self.predefined_planner if mode is ExecutionMode.PREDEFINED else self.dynamic_planner
        )
        context = ExecutionContext(
            task=task,
            mode=mode,
            max_tokens=self.max_tokens,
            cancel_token=cancel_token or CancellationToken(),
            supports_vision=self.supports_vision,
        )
        self.last_context = context
        context.metrics.start()
        self.logger.info("execution_started", mode=mode.value, task=task[:100])

        try:
            if metadata.predefined_plan is not None:
                plan = metadata.predefined_plan
                context.todo_markdown = plan_to_markdown(plan.plan)
                self.progress.publish(f"Executing agent: {plan.name or 'Custom Agent'}", ProgressKind.THINKING)
            else:
                self.progress.publish("Starting task execution...", ProgressKind.THINKING)

            await self._run_loop(strategy, task, context)
        except CancellationError as e:
            self.logger.info("execution_aborted", reason=e.message, iterations=context.iterations)
            raise
        except Exception as e:
            self.logger.error(
                "execution_failed",
                error=str(e),
                error_type=type(e).__name__,
                iterations=context.iterations,
            )
            self.progress.publish(f"Error: {e}", ProgressKind.ERROR)
            raise
        finally:
            context.metrics.finish()
            self._log_metrics(context)

    async def _run_loop(self, strategy: PlanningStrategy, task: str, context: ExecutionContext) -> None:
        while context.iterations < strategy.max_iterations:
            context.check_cancelled()
            context.iterations += 1
            self.logger.info(
                "planning_iteration",
                iteration=context.iterations,
                max_iterations=strategy.max_iterations,
                mode=strategy.mode.value,
            )

            output = await self._plan_with_retries(strategy, task, context)
            self._publish_plan(output, context)

            if strategy.is_complete(output, context):
                self._complete(output)
                return

            context.check_cancelled()
            result = await self.executor.run(output.proposed_actions, output, context)
            context.history.append(output, result.tool_messages, context.iterations)
            self.logger.info(
                "iteration_executed",
                iteration=context.iterations,
                done_signal=result.done_signal,
                requires_human_input=result.requires_human_input,
                tool_calls=len(result.tool_messages),
            )

            if result.requires_human_input:
                await self._await_human(result.human_prompt, context)

        self.progress.publish(
            f"Task did not complete within {strategy.max_iterations} planning iterations",
            ProgressKind.ERROR,
        )
        raise IterationBudgetExceededError(strategy.max_iterations, strategy.mode.value)

    async def _plan_with_retries(
        self, strategy: PlanningStrategy, task: str, context: ExecutionContext
    ) -> PlannerOutput:
        """Retries stay inside the current iteration; they do not consume iterations."""

        def compact_history(summary: ExecutionHistorySummary) -> None:
            covered = context.iterations - 1
            context.history.replace_with_summary(summary, covered)
            self.logger.info("history_compacted", covered_iterations=covered)

        last_error = ""
        for attempt in range(1, self.max_retries + 1):
            context.check_cancelled()
            try:
                return await strategy.plan(task, context, compact_history)
            except PlanParseError as e:
                last_error = e.message
                self.logger.warning(
                    "planning_attempt_failed",
                    iteration=context.iterations,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=e.message,
                )

        context.check_cancelled()
        raise PlanningFailedError(self.max_retries, last_error)

    def _publish_plan(
        self, output: PlannerOutput, context: ExecutionContext
    ) -> None:
        if isinstance(output, PredefinedPlannerOutput):
            if output.todo_markdown:
                context.todo_markdown = output.todo_markdown
            self.progress.publish(context.todo_markdown, ProgressKind.THINKING)
        if output.reasoning:
            self.progress.publish(output.reasoning, ProgressKind.INFO)

    def _complete(self, output: PlannerOutput) -> None:
        if isinstance(output, PredefinedPlannerOutput):
            self.progress.publish(
                output.final_answer or "All steps completed successfully", ProgressKind.ASSISTANT
            )
        else:
            self.progress.publish(
                output.final_answer or "Task completed successfully", ProgressKind.SUCCESS
            )
        self.logger.info("execution_completed")

    async def _await_human(self, prompt: str, context: ExecutionContext) -> None:
        context.request_human_input(prompt)
        self.progress.publish(f"Waiting for human: {prompt}", ProgressKind.THINKING)
        try:
            response = await self.human_waiter.wait(prompt, context.cancel_token)
        except HumanAbortError:
            self.progress.publish("Task aborted by human", ProgressKind.ASSISTANT)
            raise

        if response is HumanResponse.TIMEOUT:
            minutes = (self.human_waiter.timeout_seconds or 0) / 60
            self.progress.publish(
                f"Human input timed out after {minutes:g} minutes. Re-planning...",
                ProgressKind.ERROR,
            )
        else:
            self.progress.publish("Human completed manual action. Re-planning...", ProgressKind.THINKING)
        context.clear_human_input_state()

    def _log_metrics(self, context: ExecutionContext) -> None:
        metrics = context.metrics
        self.logger.info(
            "execution_metrics",
            iterations=context.iterations,
            tool_calls=metrics.tool_calls,
            observations=metrics.observations,
            errors=metrics.errors,
            success_rate=round(metrics.success_rate, 1),
            duration_ms=int(metrics.elapsed_seconds() * 1000),
            tool_frequency=dict(metrics.tool_frequency),
        )
