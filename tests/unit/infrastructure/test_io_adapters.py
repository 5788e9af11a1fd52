"""Unit tests for progress sinks, environment providers and the token counter."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from taskpilot.core.domain.models import ProgressKind
from taskpilot.infrastructure.io.environment import (
    UNAVAILABLE_STATE,
    FileEnvironmentProvider,
    StaticEnvironmentProvider,
)
from taskpilot.infrastructure.io.progress import CallbackProgressSink, RecordingProgressSink
from taskpilot.infrastructure.llm.token_counter import LiteLLMTokenCounter


class TestProgressSinks:
    def test_recording_sink_filters_by_kind(self):
        sink = RecordingProgressSink()
        sink.publish("Starting task execution...", ProgressKind.THINKING)
        sink.publish("Error: boom", ProgressKind.ERROR)

        assert sink.texts() == ["Starting task execution...", "Error: boom"]
        assert sink.texts(ProgressKind.ERROR) == ["Error: boom"]

    def test_callback_sink_forwards(self):
        callback = MagicMock()
        CallbackProgressSink(callback).publish("Done", ProgressKind.SUCCESS)

        callback.assert_called_once_with("Done", ProgressKind.SUCCESS)


class TestEnvironmentProviders:
    @pytest.mark.asyncio
    async def test_static_provider_image_only_on_request(self):
        provider = StaticEnvironmentProvider("[1] link", image_url="data:image/png;base64,AA")

        without = await provider.get_state()
        with_image = await provider.get_state(include_image=True)

        assert without.text == "[1] link"
        assert without.image_url is None
        assert with_image.image_url == "data:image/png;base64,AA"

    @pytest.mark.asyncio
    async def test_file_provider_reads_current_content(self, tmp_path):
        state_file = tmp_path / "state.txt"
        state_file.write_text("first", encoding="utf-8")
        provider = FileEnvironmentProvider(state_file)

        assert (await provider.get_state()).text == "first"
        state_file.write_text("second", encoding="utf-8")
        assert (await provider.get_state()).text == "second"

    @pytest.mark.asyncio
    async def test_file_provider_missing_file(self, tmp_path):
        provider = FileEnvironmentProvider(tmp_path / "missing.txt")

        assert (await provider.get_state()).text == UNAVAILABLE_STATE

    @pytest.mark.asyncio
    async def test_file_provider_reads_in_worker_thread(self, tmp_path):
        state_file = tmp_path / "state.txt"
        state_file.write_text("[1] link", encoding="utf-8")
        provider = FileEnvironmentProvider(state_file)

        with patch("asyncio.to_thread", new_callable=AsyncMock, return_value="[1] link") as to_thread:
            snapshot = await provider.get_state()

        assert snapshot.text == "[1] link"
        to_thread.assert_awaited_once_with(state_file.read_text, encoding="utf-8")


class TestLiteLLMTokenCounter:
    def test_counts_text(self):
        with patch("litellm.token_counter", return_value=12) as mock_counter:
            assert LiteLLMTokenCounter("gpt-4o-mini").count("hello world") == 12

        mock_counter.assert_called_once_with(model="gpt-4o-mini", text="hello world")

    def test_counts_messages(self):
        messages = [{"role": "user", "content": "hi"}]
        with patch("litellm.token_counter", return_value=5) as mock_counter:
            assert LiteLLMTokenCounter().count(messages) == 5

        mock_counter.assert_called_once_with(model="gpt-4o", messages=messages)
