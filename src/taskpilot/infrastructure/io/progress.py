"""
Progress sinks.

Fire-and-forget publishers of user-facing progress messages. The loop never
reads anything back from them.
"""

from typing import Callable

import structlog

from taskpilot.core.domain.models import ProgressKind


class StructlogProgressSink:
    """Publishes progress as structured log events (headless runs)."""

    def __init__(self) -> None:
        self.logger = structlog.get_logger().bind(component="progress")

    def publish(self, text: str, kind: ProgressKind) -> None:
        if kind is ProgressKind.ERROR:
            self.logger.error("progress", kind=kind.value, text=text)
        else:
            self.logger.info("progress", kind=kind.value, text=text)


class CallbackProgressSink:
    """Forwards progress to a plain callback, e.g. a UI bridge."""

    def __init__(self, callback: Callable[[str, ProgressKind], None]):
        self.callback = callback

    def publish(self, text: str, kind: ProgressKind) -> None:
        self.callback(text, kind)


class RecordingProgressSink:
    """Keeps every message in memory; used by embedding callers and tests."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, ProgressKind]] = []

    def publish(self, text: str, kind: ProgressKind) -> None:
        self.messages.append((text, kind))

    def texts(self, kind: ProgressKind | None = None) -> list[str]:
        return [text for text, k in self.messages if kind is None or k is kind]
