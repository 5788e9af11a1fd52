"""
Shared fixtures for the unit tests.

LLM and environment collaborators are AsyncMocks scripted per test; token
counting is a word count so token thresholds are easy to reason about.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from taskpilot.application.factory import build_orchestrator
from taskpilot.application.settings import AgentSettings
from taskpilot.core.domain.context import ExecutionContext
from taskpilot.core.domain.models import EnvironmentSnapshot, ExecutionMode, ToolCall
from taskpilot.infrastructure.io.escalation import QueueEscalationChannel
from taskpilot.infrastructure.io.progress import RecordingProgressSink
from taskpilot.infrastructure.tools.tool_registry import ToolRegistry


class WordTokenCounter:
    """One token per whitespace-separated word."""

    def count(self, content):
        if isinstance(content, str):
            return len(content.split())
        total = 0
        for message in content:
            body = message.get("content") or ""
            if isinstance(body, list):
                body = " ".join(part.get("text", "") for part in body)
            total += len(body.split())
        return total


def planner_reply(
    reasoning="Looking at the page",
    actions="1. Click the search box",
    complete=False,
    final_answer="",
    todo=None,
):
    """Planner LLM reply in the labelled-section format."""
    parts = [f"## Reasoning\n{reasoning}"]
    if todo is not None:
        parts.append(f"## TODO Markdown\n{todo}")
    parts.append(f"## Proposed Actions\n{actions}")
    parts.append(f"## Task Complete\n{'true' if complete else 'false'}")
    parts.append(f"## Final Answer\n{final_answer}")
    return {"success": True, "content": "\n\n".join(parts)}


def tool_response(*calls):
    """Tool-calling LLM reply; each call is ``(name, args)``."""
    return {
        "success": True,
        "content": "",
        "tool_calls": [
            ToolCall(id=f"call_{i}", name=name, args=args) for i, (name, args) in enumerate(calls)
        ],
    }


def no_tool_response():
    return {"success": True, "content": "Nothing to do", "tool_calls": []}


@pytest.fixture
def token_counter():
    return WordTokenCounter()


@pytest.fixture
def mock_llm_provider():
    """Mock LLMProviderProtocol; tests script complete / complete_with_tools."""
    mock = AsyncMock()
    mock.complete.return_value = planner_reply()
    mock.complete_with_tools.return_value = tool_response(("done", {}))
    return mock


@pytest.fixture
def mock_tool():
    """Mock ToolProtocol for a generic tool."""
    tool = MagicMock()
    tool.name = "click"
    tool.description = "Click an element by id"
    tool.parameters_schema = {
        "type": "object",
        "properties": {"element_id": {"type": "integer"}},
        "required": ["element_id"],
    }
    tool.execute = AsyncMock(return_value={"success": True, "output": "clicked"})
    return tool


@pytest.fixture
def tool_registry(mock_tool):
    return ToolRegistry([mock_tool])


@pytest.fixture
def mock_environment():
    env = AsyncMock()
    env.get_state.return_value = EnvironmentSnapshot(text="[1] <C> <button> \"Search\"")
    return env


@pytest.fixture
def progress():
    return RecordingProgressSink()


@pytest.fixture
def escalation_channel():
    return QueueEscalationChannel()


@pytest.fixture
def settings():
    return AgentSettings(max_context_tokens=100000, human_input_timeout_seconds=5)


@pytest.fixture
def context():
    return ExecutionContext(task="Search for weather", mode=ExecutionMode.DYNAMIC, max_tokens=100000)


@pytest.fixture
def make_orchestrator(
    mock_llm_provider, token_counter, tool_registry, progress, escalation_channel, mock_environment
):
    """Factory fixture: orchestrator wired with the mocks, settings overridable."""

    def _make(**overrides):
        settings = AgentSettings(**{"human_input_timeout_seconds": 5, **overrides})
        return build_orchestrator(
            settings=settings,
            llm_provider=mock_llm_provider,
            token_counter=token_counter,
            tool_registry=tool_registry,
            progress=progress,
            escalation_channel=escalation_channel,
            environment=mock_environment,
        )

    return _make
