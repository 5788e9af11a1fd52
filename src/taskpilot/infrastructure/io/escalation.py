"""Human escalation channels."""

import asyncio

import structlog

from taskpilot.core.domain.models import HumanResponse


class QueueEscalationChannel:
    """
    Escalation channel resolved programmatically.

    A UI layer calls ``resolve("continue")`` or ``resolve("abort")`` when the
    human clicks the corresponding button. Responses given while nobody is
    waiting are queued for the next wait.
    """

    def __init__(self) -> None:
        self._responses: asyncio.Queue[HumanResponse] = asyncio.Queue()
        self.prompts: list[str] = []
        self.logger = structlog.get_logger().bind(component="escalation_channel")

    def resolve(self, response: HumanResponse | str) -> None:
        self._responses.put_nowait(HumanResponse(response))

    async def wait_for_response(self, prompt: str) -> HumanResponse:
        self.prompts.append(prompt)
        self.logger.info("escalation_pending", prompt=prompt[:200])
        return await self._responses.get()
