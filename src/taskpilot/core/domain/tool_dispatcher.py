"""
Tool Executor - dispatches one batch of tool calls.

Each call is run against the registry and its result serialized to text for
both the LLM transcript and the execution history. A failing call never
raises: it becomes a failing result, counts as an error and the batch goes
on. Two results are signals for the loop: a successful ``done`` call and a
successful ``human_input`` call that requires human input.
"""

from typing import Any

import structlog

from taskpilot.core.domain.context import ExecutionContext
from taskpilot.core.domain.errors import CancellationError, ToolDispatchError
from taskpilot.core.domain.models import DispatchResult, ToolCall, ToolResult
from taskpilot.core.interfaces.tools import ToolRegistryProtocol
from taskpilot.core.tools import DONE_TOOL_NAME, HUMAN_INPUT_TOOL_NAME, Tool
from taskpilot.infrastructure.tools.tool_converter import serialize_tool_result


class ToolExecutor:
    def __init__(self, registry: ToolRegistryProtocol, max_output_chars: int = 20000):
        self.registry = registry
        self.max_output_chars = max_output_chars
        self.logger = structlog.get_logger().bind(component="tool_executor")

    async def dispatch(self, tool_calls: list[ToolCall], context: ExecutionContext) -> DispatchResult:
        """
        Run ``tool_calls`` in order and aggregate their outcome.

        Cancellation is checked before every call; metrics are updated once
        per call.

        Raises:
            CancellationError: If the run is cancelled between calls or a
                tool observes the cancellation itself
        """
        dispatch = DispatchResult()

        for call in tool_calls:
            context.check_cancelled()

            payload = await self._run_tool(call)
            success = bool(payload.get("success"))

            context.metrics.record_tool_call(call.name)
            if not success:
                context.metrics.errors += 1

            result = ToolResult(
                tool_call_id=call.id,
                tool_name=call.name,
                success=success,
                content=serialize_tool_result(payload, self.max_output_chars),
                payload=payload,
            )
            dispatch.results.append(result)

            if call.name == DONE_TOOL_NAME and success:
                dispatch.done_signal = True
            if call.name == HUMAN_INPUT_TOOL_NAME and success and payload.get("requires_human_input"):
                dispatch.requires_human_input = True
                dispatch.human_prompt = str(payload.get("prompt", ""))

        return dispatch

    async def _run_tool(self, call: ToolCall) -> dict[str, Any]:
        tool = self.registry.get(call.name)
        if tool is None:
            self.logger.warning("unknown_tool", tool=call.name)
            return {"success": False, "error": f"Unknown tool: {call.name}"}

        if isinstance(tool, Tool):
            valid, error = tool.validate_params(**call.args)
            if not valid:
                self.logger.warning("tool_params_invalid", tool=call.name, error=error)
                return {"success": False, "error": f"Invalid parameters: {error}"}

        try:
            self.logger.info("tool_execute", tool=call.name, args_keys=list(call.args.keys()))
            result = await tool.execute(**call.args)
        except CancellationError:
            raise
        except Exception as e:
            failure = ToolDispatchError(call.name, str(e))
            self.logger.error("tool_exception", tool=call.name, error=str(e))
            return {"success": False, "error": failure.message, "error_type": type(e).__name__}

        if not isinstance(result, dict):
            return {"success": False, "error": f"Tool returned invalid type: {type(result).__name__}"}
        result.setdefault("success", False)

        self.logger.info("tool_complete", tool=call.name, success=result.get("success"))
        if not result.get("success"):
            self.logger.warning("tool_failed", tool=call.name, error=result.get("error"))
        return result
