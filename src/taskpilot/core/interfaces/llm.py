"""
LLM Provider Protocols

Text completion is used by planners and the history summarizer; tool-calling
completion is used by the executor. Implementations never raise for
provider-level failures: they return ``{"success": False, "error": ...}``
and let the caller decide.
"""

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from taskpilot.core.domain.context import CancellationToken


class LLMProviderProtocol(Protocol):
    """Protocol for LLM completion services."""

    async def complete(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_attempts: int | None = None,
        cancel_token: "CancellationToken | None" = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Perform a free-text completion.

        Returns:
            Dict with ``success`` and, on success, ``content`` (str) and
            ``usage``; on failure, ``error``.
        """
        ...

    async def complete_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        model: str | None = None,
        max_attempts: int | None = None,
        cancel_token: "CancellationToken | None" = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Perform a tool-calling completion.

        Returns:
            Dict with ``success`` and, on success, ``tool_calls`` (list of
            ToolCall, possibly empty) and ``content``; on failure, ``error``.
        """
        ...
