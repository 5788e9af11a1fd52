"""Tool Protocols - invocable tools and the registry that exposes them."""

from typing import Any, Protocol


class ToolProtocol(Protocol):
    """A tool the executor LLM can call."""

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def parameters_schema(self) -> dict[str, Any]: ...

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        """Run the tool. Result dicts carry at least ``success``."""
        ...


class ToolRegistryProtocol(Protocol):
    """Set of invocable tools plus their descriptions."""

    def get(self, name: str) -> ToolProtocol | None: ...

    def describe(self) -> str:
        """Tool catalog text for planner prompts."""
        ...

    def to_openai_schemas(self) -> list[dict[str, Any]]:
        """Tool schemas for the tool-calling LLM."""
        ...
