"""Environment snapshot provider protocol."""

from typing import Protocol

from taskpilot.core.domain.models import EnvironmentSnapshot


class EnvironmentProviderProtocol(Protocol):
    """Supplies the "what does the world look like now" block."""

    async def get_state(self, include_image: bool = False) -> EnvironmentSnapshot: ...
