"""Built-in tools that carry control signals for the execution loop."""

from taskpilot.core.tools.base import Tool
from taskpilot.core.tools.done_tool import DONE_TOOL_NAME, DoneTool
from taskpilot.core.tools.human_input_tool import HUMAN_INPUT_TOOL_NAME, HumanInputTool

__all__ = ["Tool", "DoneTool", "HumanInputTool", "DONE_TOOL_NAME", "HUMAN_INPUT_TOOL_NAME"]
