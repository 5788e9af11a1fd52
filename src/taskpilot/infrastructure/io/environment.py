"""
Environment snapshot providers.

The snapshot is the "what does the world look like now" block injected into
planner and executor prompts.
"""

import asyncio
from pathlib import Path

import structlog

from taskpilot.core.domain.models import EnvironmentSnapshot

UNAVAILABLE_STATE = "Environment state unavailable"


class StaticEnvironmentProvider:
    def __init__(self, text: str = UNAVAILABLE_STATE, image_url: str | None = None):
        self.text = text
        self.image_url = image_url

    async def get_state(self, include_image: bool = False) -> EnvironmentSnapshot:
        return EnvironmentSnapshot(text=self.text, image_url=self.image_url if include_image else None)


class FileEnvironmentProvider:
    """
    Reads the snapshot from a text file on every call.

    An external process (browser bridge, test harness) keeps the file up to
    date; a missing file yields a placeholder instead of an error.
    """

    def __init__(self, path: str | Path, image_url: str | None = None):
        self.path = Path(path)
        self.image_url = image_url
        self.logger = structlog.get_logger().bind(component="environment_provider")

    async def get_state(self, include_image: bool = False) -> EnvironmentSnapshot:
        if not self.path.exists():
            self.logger.warning("environment_state_missing", path=str(self.path))
            text = UNAVAILABLE_STATE
        else:
            text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        return EnvironmentSnapshot(text=text, image_url=self.image_url if include_image else None)
