"""
Tool Registry

Holds the invocable tools of a run and renders them for both sides of the
loop: a catalog text for planner prompts and function schemas for the
tool-calling executor. The ``done`` and ``human_input`` signal tools are
always registered.
"""

from typing import Any, Iterable, Iterator

import structlog

from taskpilot.core.interfaces.tools import ToolProtocol
from taskpilot.core.tools import DoneTool, HumanInputTool
from taskpilot.infrastructure.tools.tool_converter import tools_to_openai_format


class ToolRegistry:
    def __init__(self, tools: Iterable[ToolProtocol] | None = None, include_signal_tools: bool = True):
        self.logger = structlog.get_logger().bind(component="tool_registry")
        self._tools: dict[str, ToolProtocol] = {}
        for tool in tools or []:
            self.register(tool)
        if include_signal_tools:
            for tool in (DoneTool(), HumanInputTool()):
                if tool.name not in self._tools:
                    self.register(tool)

    def register(self, tool: ToolProtocol) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool
        self.logger.debug("tool_registered", tool=tool.name)

    def get(self, name: str) -> ToolProtocol | None:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __iter__(self) -> Iterator[ToolProtocol]:
        return iter(list(self._tools.values()))

    def __len__(self) -> int:
        return len(self._tools)

    def describe(self) -> str:
        """
        Tool catalog for planner prompts.

        One block per tool: name, description and its parameters with types.
        """
        blocks = []
        for tool in self._tools.values():
            schema = tool.parameters_schema or {}
            required = set(schema.get("required", []))
            params = []
            for param_name, spec in (schema.get("properties") or {}).items():
                marker = "" if param_name in required else ", optional"
                params.append(f"  - {param_name} ({spec.get('type', 'any')}{marker})")
            block = f"- {tool.name}: {tool.description}"
            if params:
                block += "\n" + "\n".join(params)
            blocks.append(block)
        return "\n".join(blocks)

    def to_openai_schemas(self) -> list[dict[str, Any]]:
        return tools_to_openai_format(self._tools)
