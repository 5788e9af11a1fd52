"""Progress sink protocol (fire-and-forget, observability only)."""

from typing import Protocol

from taskpilot.core.domain.models import ProgressKind


class ProgressSinkProtocol(Protocol):
    def publish(self, text: str, kind: ProgressKind) -> None: ...
