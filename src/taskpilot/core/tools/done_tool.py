"""Done tool - the executor's explicit completion signal."""

from typing import Any

from taskpilot.core.tools.base import Tool

DONE_TOOL_NAME = "done"


class DoneTool(Tool):
    """Marks the actions of the current executor invocation as completed."""

    @property
    def name(self) -> str:
        return DONE_TOOL_NAME

    @property
    def description(self) -> str:
        return (
            "Call this when all actions you were asked to perform are completed. "
            "Optionally include a short summary of what was done."
        )

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "summary": {
                    "type": "string",
                    "description": "Short summary of the completed actions",
                },
            },
            "required": [],
        }

    async def execute(self, summary: str = "", **kwargs: Any) -> dict[str, Any]:
        return {"success": True, "output": summary or "Actions completed"}
