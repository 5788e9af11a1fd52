"""Unit tests for HumanInputWaiter."""

import asyncio

import pytest

from taskpilot.core.domain.context import CancellationToken
from taskpilot.core.domain.errors import CancellationError, HumanAbortError
from taskpilot.core.domain.escalation import HumanInputWaiter
from taskpilot.core.domain.models import HumanResponse
from taskpilot.infrastructure.io.escalation import QueueEscalationChannel


class TestHumanInputWaiter:
    """Tests for HumanInputWaiter.wait()."""

    @pytest.mark.asyncio
    async def test_continue(self):
        channel = QueueEscalationChannel()
        channel.resolve("continue")
        waiter = HumanInputWaiter(channel, timeout_seconds=1)

        response = await waiter.wait("Please log in", CancellationToken())

        assert response is HumanResponse.CONTINUE
        assert channel.prompts == ["Please log in"]

    @pytest.mark.asyncio
    async def test_abort_raises(self):
        channel = QueueEscalationChannel()
        channel.resolve(HumanResponse.ABORT)
        waiter = HumanInputWaiter(channel, timeout_seconds=1)

        with pytest.raises(HumanAbortError):
            await waiter.wait("Please log in", CancellationToken())

    @pytest.mark.asyncio
    async def test_timeout(self):
        waiter = HumanInputWaiter(QueueEscalationChannel(), timeout_seconds=0.05)

        response = await waiter.wait("Please log in", CancellationToken())

        assert response is HumanResponse.TIMEOUT

    @pytest.mark.asyncio
    async def test_cancel_during_wait(self):
        waiter = HumanInputWaiter(QueueEscalationChannel(), timeout_seconds=5)
        token = CancellationToken()

        async def cancel_soon():
            await asyncio.sleep(0.02)
            token.cancel("User stopped the task")

        canceller = asyncio.create_task(cancel_soon())
        with pytest.raises(CancellationError, match="User stopped the task") as exc_info:
            await asyncio.wait_for(waiter.wait("Please log in", token), timeout=1)
        await canceller

        assert not isinstance(exc_info.value, HumanAbortError)

    @pytest.mark.asyncio
    async def test_already_cancelled(self):
        channel = QueueEscalationChannel()
        waiter = HumanInputWaiter(channel, timeout_seconds=5)
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancellationError):
            await waiter.wait("Please log in", token)
        assert channel.prompts == []
