"""
Human Input Tool

Model-invoked request for a manual human action (login, CAPTCHA, payment).
The tool only produces the request; pausing the run is done by the
orchestrator once the executor reports the signal.
"""

from typing import Any

from taskpilot.core.tools.base import Tool

HUMAN_INPUT_TOOL_NAME = "human_input"


class HumanInputTool(Tool):
    @property
    def name(self) -> str:
        return HUMAN_INPUT_TOOL_NAME

    @property
    def description(self) -> str:
        return (
            "Ask a human to perform a manual step that cannot be automated "
            "(e.g. login, CAPTCHA, two-factor code, payment confirmation). "
            "Execution pauses until the human continues or aborts."
        )

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "prompt": {
                    "type": "string",
                    "description": "Clear instruction telling the human what to do",
                },
            },
            "required": ["prompt"],
        }

    async def execute(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        return {
            "success": True,
            "requires_human_input": True,
            "prompt": prompt,
            "output": f"Waiting for human: {prompt}",
        }
