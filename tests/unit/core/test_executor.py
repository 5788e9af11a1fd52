"""Unit tests for the Executor sub-loop."""

import pytest
from conftest import no_tool_response, tool_response

from taskpilot.core.domain.errors import (
    CancellationError,
    ExecutionFailedError,
    IterationBudgetExceededError,
)
from taskpilot.core.domain.executor import Executor
from taskpilot.core.domain.models import DynamicPlannerOutput, EnvironmentSnapshot
from taskpilot.core.domain.token_budget import TokenBudget
from taskpilot.core.domain.tool_dispatcher import ToolExecutor
from taskpilot.core.prompts.planner_prompts import (
    EXECUTOR_FIRST_PASS_INSTRUCTION,
    EXECUTOR_VERIFY_INSTRUCTION,
)

PLAN = DynamicPlannerOutput(reasoning="Search box visible", proposed_actions="1. Click [1]")


@pytest.fixture
def executor(mock_llm_provider, tool_registry, token_counter, mock_environment):
    return Executor(
        llm_provider=mock_llm_provider,
        tool_executor=ToolExecutor(tool_registry),
        tool_registry=tool_registry,
        token_budget=TokenBudget(token_counter, 100000),
        environment=mock_environment,
    )


def _user_texts(messages):
    return [m["content"] for m in messages if m["role"] == "user" and isinstance(m["content"], str)]


class TestExecutorRun:
    """Tests for Executor.run()."""

    @pytest.mark.asyncio
    async def test_done_signal_ends_sub_loop(self, executor, mock_llm_provider, context):
        mock_llm_provider.complete_with_tools.return_value = tool_response(
            ("click", {"element_id": 1}), ("done", {})
        )

        result = await executor.run(PLAN.proposed_actions, PLAN, context)

        assert result.completed is True
        assert result.done_signal is True
        assert result.passes == 1
        assert len(result.tool_messages) == 2
        assert result.tool_messages[0].startswith("Tool: click - Result: ")
        assert context.metrics.tool_calls == 2

    @pytest.mark.asyncio
    async def test_first_pass_prompt_contents(self, executor, mock_llm_provider, context, mock_environment):
        mock_llm_provider.complete_with_tools.return_value = tool_response(("done", {}))

        await executor.run(PLAN.proposed_actions, PLAN, context)

        call = mock_llm_provider.complete_with_tools.call_args
        messages = call.kwargs["messages"]
        texts = _user_texts(messages)
        assert messages[0]["role"] == "system"
        assert any("<environment-state>" in t for t in texts)
        assert any("1. Click [1]" in t and EXECUTOR_FIRST_PASS_INSTRUCTION in t for t in texts)
        assert {t["function"]["name"] for t in call.kwargs["tools"]} == {"click", "done", "human_input"}
        mock_environment.get_state.assert_called_once()

    @pytest.mark.asyncio
    async def test_stops_after_max_passes(self, executor, mock_llm_provider, context, mock_environment):
        mock_llm_provider.complete_with_tools.return_value = tool_response(("click", {"element_id": 1}))

        result = await executor.run(PLAN.proposed_actions, PLAN, context)

        assert result.completed is False
        assert result.done_signal is False
        assert result.passes == 3
        assert mock_llm_provider.complete_with_tools.call_count == 3
        assert len(result.tool_messages) == 3
        # snapshot is injected on the first pass only
        mock_environment.get_state.assert_called_once()
        last_messages = mock_llm_provider.complete_with_tools.call_args.kwargs["messages"]
        assert _user_texts(last_messages).count(EXECUTOR_VERIFY_INSTRUCTION) == 2

    @pytest.mark.asyncio
    async def test_no_tool_calls_ends_without_completion(self, executor, mock_llm_provider, context):
        mock_llm_provider.complete_with_tools.return_value = no_tool_response()

        result = await executor.run(PLAN.proposed_actions, PLAN, context)

        assert result.completed is False
        assert result.passes == 1
        assert result.tool_messages == []

    @pytest.mark.asyncio
    async def test_human_input_request(self, executor, mock_llm_provider, context):
        mock_llm_provider.complete_with_tools.return_value = tool_response(
            ("human_input", {"prompt": "Solve the CAPTCHA"})
        )

        result = await executor.run(PLAN.proposed_actions, PLAN, context)

        assert result.requires_human_input is True
        assert result.completed is False
        assert result.human_prompt == "Solve the CAPTCHA"
        assert mock_llm_provider.complete_with_tools.call_count == 1

    @pytest.mark.asyncio
    async def test_llm_failure_is_fatal(self, executor, mock_llm_provider, context):
        mock_llm_provider.complete_with_tools.return_value = {"success": False, "error": "boom"}

        with pytest.raises(ExecutionFailedError, match="boom"):
            await executor.run(PLAN.proposed_actions, PLAN, context)

    @pytest.mark.asyncio
    async def test_transcript_is_recorded(self, executor, mock_llm_provider, context):
        mock_llm_provider.complete_with_tools.return_value = tool_response(("done", {}))

        await executor.run(PLAN.proposed_actions, PLAN, context)

        roles = [m["role"] for m in context.executor_transcript]
        assert roles[0] == "system"
        assert "assistant" in roles
        assert roles[-1] == "tool"

    @pytest.mark.asyncio
    async def test_tool_call_budget(self, mock_llm_provider, tool_registry, token_counter, context):
        executor = Executor(
            llm_provider=mock_llm_provider,
            tool_executor=ToolExecutor(tool_registry),
            tool_registry=tool_registry,
            token_budget=TokenBudget(token_counter, 100000),
            max_tool_calls=2,
        )
        mock_llm_provider.complete_with_tools.return_value = tool_response(
            ("click", {"element_id": 1}), ("click", {"element_id": 2})
        )

        with pytest.raises(IterationBudgetExceededError, match="execution"):
            await executor.run(PLAN.proposed_actions, PLAN, context)
        assert context.metrics.tool_calls == 2

    @pytest.mark.asyncio
    async def test_cancel_during_call_is_not_a_failure(
        self, executor, mock_llm_provider, mock_environment, context
    ):
        async def fetch_and_cancel(include_image=False):
            context.cancel_token.cancel("User stopped the task")
            return EnvironmentSnapshot(text="[1] button")

        mock_environment.get_state.side_effect = fetch_and_cancel
        mock_llm_provider.complete_with_tools.return_value = {"success": False, "error": "Request cancelled"}

        with pytest.raises(CancellationError, match="User stopped the task"):
            await executor.run(PLAN.proposed_actions, PLAN, context)
