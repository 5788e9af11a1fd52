"""Human escalation channel protocol."""

from typing import Protocol

from taskpilot.core.domain.models import HumanResponse


class HumanEscalationProtocol(Protocol):
    """Resolved externally when a human clicks "done" or "abort"."""

    async def wait_for_response(self, prompt: str) -> HumanResponse: ...
