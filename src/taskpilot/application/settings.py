"""
Agent settings - the ``agent:`` section of a configuration profile.
"""

from dataclasses import dataclass, fields
from typing import Any


@dataclass
class AgentSettings:
    """
    Tunables of the planning/execution loop.

    ``max_tool_calls`` of None means no cumulative tool-call budget.
    """

    max_context_tokens: int = 128000
    summarization_threshold: float = 0.7
    max_planner_iterations: int = 50
    max_predefined_iterations: int = 30
    max_executor_iterations: int = 3
    max_retries: int = 3
    max_tool_calls: int | None = None
    human_input_timeout_seconds: float = 600
    planner_model: str = "main"
    executor_model: str = "main"
    summarizer_model: str = "main"
    temperature: float = 0.2
    max_output_tokens: int = 4096
    supports_vision: bool = False
    token_model: str = "gpt-4o"

    def __post_init__(self) -> None:
        if not 0 < self.summarization_threshold <= 1:
            raise ValueError("summarization_threshold must be in (0, 1]")
        for name in (
            "max_context_tokens",
            "max_planner_iterations",
            "max_predefined_iterations",
            "max_executor_iterations",
            "max_retries",
            "max_output_tokens",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_tool_calls is not None and self.max_tool_calls <= 0:
            raise ValueError("max_tool_calls must be positive or null")
        if self.human_input_timeout_seconds <= 0:
            raise ValueError("human_input_timeout_seconds must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AgentSettings":
        """
        Build settings from a config mapping.

        Raises:
            ValueError: On unknown keys or out-of-range values
        """
        data = data or {}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown agent settings: {', '.join(unknown)}")
        return cls(**data)
