"""
Tool Converter - OpenAI function calling format conversion.

Converts internal tool definitions and tool call records to and from the
message format used by OpenAI-compatible function calling APIs.
"""

import json
from typing import Any

from taskpilot.core.domain.models import ToolCall
from taskpilot.core.interfaces.tools import ToolProtocol

TRUNCATED_MARKER = "\n\n[... TRUNCATED - {overflow} more chars ...]"
_LARGE_FIELDS = ["output", "result", "content", "stdout", "stderr", "data"]


def tools_to_openai_format(tools: dict[str, ToolProtocol]) -> list[dict[str, Any]]:
    """
    Convert tools to OpenAI function calling format.

    Returns:
        List of ``{"type": "function", "function": {name, description,
        parameters}}`` definitions, in registration order.
    """
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters_schema,
            },
        }
        for tool in tools.values()
    ]


def parse_tool_calls(raw_tool_calls: list[Any] | None) -> list[ToolCall]:
    """
    Normalize provider tool calls into ToolCall records.

    Accepts both dicts and litellm response objects. Arguments that are not
    valid JSON become an empty dict.
    """
    parsed: list[ToolCall] = []
    for index, raw in enumerate(raw_tool_calls or []):
        if isinstance(raw, dict):
            call_id = raw.get("id")
            function = raw.get("function") or {}
            name = function.get("name", "")
            arguments = function.get("arguments")
        else:
            call_id = getattr(raw, "id", None)
            function = getattr(raw, "function", None)
            name = getattr(function, "name", "") or ""
            arguments = getattr(function, "arguments", None)

        if isinstance(arguments, dict):
            args = arguments
        else:
            try:
                args = json.loads(arguments) if arguments else {}
            except json.JSONDecodeError:
                args = {}
            if not isinstance(args, dict):
                args = {}

        parsed.append(ToolCall(id=call_id or f"call_{index}", name=name, args=args))
    return parsed


def assistant_tool_calls_to_message(tool_calls: list[ToolCall]) -> dict[str, Any]:
    """Assistant message carrying the tool calls, added before their results."""
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {
                    "name": call.name,
                    "arguments": json.dumps(call.args, ensure_ascii=False),
                },
            }
            for call in tool_calls
        ],
    }


def tool_result_to_message(tool_call_id: str, tool_name: str, content: str) -> dict[str, Any]:
    return {
        "role": "tool",
        "tool_call_id": tool_call_id,
        "name": tool_name,
        "content": content,
    }


def serialize_tool_result(result: dict[str, Any], max_output_chars: int = 20000) -> str:
    """
    Serialize a tool result dict to JSON text.

    Large output fields are truncated first to prevent token overflow.
    """
    truncated = _truncate_tool_result(result, max_output_chars)
    return json.dumps(truncated, ensure_ascii=False, default=str)


def _truncate_tool_result(result: dict[str, Any], max_chars: int) -> dict[str, Any]:
    truncated = result.copy()

    for field in _LARGE_FIELDS:
        if field not in truncated:
            continue
        value = truncated[field]
        if isinstance(value, (list, dict)):
            value = json.dumps(value, ensure_ascii=False, default=str)
            if len(value) <= max_chars:
                continue
        if isinstance(value, str) and len(value) > max_chars:
            overflow = len(value) - max_chars
            truncated[field] = value[:max_chars] + TRUNCATED_MARKER.format(overflow=overflow)

    return truncated
