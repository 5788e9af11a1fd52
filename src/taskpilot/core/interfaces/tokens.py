"""Token counting protocol."""

from typing import Any, Protocol


class TokenCounterProtocol(Protocol):
    def count(self, content: str | list[dict[str, Any]]) -> int:
        """Count tokens of a text block or a list of chat messages."""
        ...
