"""
Human escalation - waiting for a human to resolve a manual step.

The wait races the escalation channel against the run's cancellation token
and a timeout, so a cancelled run never hangs on a human who is not there.
"""

import asyncio

import structlog

from taskpilot.core.domain.context import CancellationToken
from taskpilot.core.domain.errors import CancellationError, HumanAbortError
from taskpilot.core.domain.models import HumanResponse
from taskpilot.core.interfaces.escalation import HumanEscalationProtocol

HUMAN_INPUT_TIMEOUT_SECONDS = 600


class HumanInputWaiter:
    def __init__(
        self,
        channel: HumanEscalationProtocol,
        timeout_seconds: float | None = HUMAN_INPUT_TIMEOUT_SECONDS,
    ):
        self.channel = channel
        self.timeout_seconds = timeout_seconds
        self.logger = structlog.get_logger().bind(component="human_escalation")

    async def wait(self, prompt: str, cancel_token: CancellationToken) -> HumanResponse:
        """
        Block until the human responds, the run is cancelled or the wait times out.

        Returns:
            HumanResponse.CONTINUE or HumanResponse.TIMEOUT

        Raises:
            CancellationError: If the run is cancelled during the wait
            HumanAbortError: If the human chose to abort
        """
        cancel_token.raise_if_cancelled()
        self.logger.info("human_input_waiting", prompt=prompt[:200], timeout_seconds=self.timeout_seconds)

        response_task = asyncio.ensure_future(self.channel.wait_for_response(prompt))
        cancel_task = asyncio.ensure_future(cancel_token.wait())
        try:
            done, _ = await asyncio.wait(
                {response_task, cancel_task},
                timeout=self.timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            pending = [task for task in (response_task, cancel_task) if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if cancel_task in done:
            self.logger.info("human_input_cancelled")
            raise CancellationError(cancel_token.reason or "Task cancelled")

        if response_task in done:
            response = HumanResponse(response_task.result())
            self.logger.info("human_input_received", response=response.value)
            if response is HumanResponse.ABORT:
                raise HumanAbortError()
            return response

        self.logger.warning("human_input_timeout", timeout_seconds=self.timeout_seconds)
        return HumanResponse.TIMEOUT
