"""
Unit tests for LLMService.

Tests cover:
- Configuration loading
- Model resolution (aliases)
- Parameter mapping (classic vs reasoning models)
- complete() and complete_with_tools()
- Retry logic and cancellation
"""

import json
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from taskpilot.core.domain.context import CancellationToken
from taskpilot.core.domain.models import ToolCall
from taskpilot.infrastructure.llm.litellm_service import LLMService


@pytest.fixture
def mock_config(tmp_path):
    """Create temporary config file."""
    config_content = """
default_model: "main"
models:
  main: "gpt-4o"
  fast: "gpt-4o-mini"
  reasoning: "gpt-5"
model_params:
  gpt-4o:
    temperature: 0.7
    max_tokens: 2000
  gpt-5:
    effort: "medium"
    max_tokens: 4000
default_params:
  temperature: 0.7
  max_tokens: 2000
retry_policy:
  max_attempts: 3
  backoff_multiplier: 2
  timeout: 30
  retry_on_errors:
    - "RateLimitError"
providers:
  openai:
    api_key_env: "OPENAI_API_KEY"
logging:
  log_token_usage: true
  log_parameter_mapping: true
"""
    config_file = tmp_path / "llm_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return str(config_file)


@pytest.fixture
def service(mock_config):
    service = LLMService(config_path=mock_config)
    service._backoff = AsyncMock()
    return service


def make_response(content="Test response", tool_calls=None):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.choices[0].message.tool_calls = tool_calls
    response.usage = {"total_tokens": 100, "prompt_tokens": 60, "completion_tokens": 40}
    return response


class TestLLMServiceInitialization:
    """Test LLMService initialization and configuration loading."""

    def test_init_loads_config(self, mock_config):
        service = LLMService(config_path=mock_config)
        assert service.default_model == "main"
        assert service.models["fast"] == "gpt-4o-mini"
        assert service.retry_policy.max_attempts == 3
        assert service.retry_policy.retry_on_errors == ["RateLimitError"]

    def test_init_missing_config_raises_error(self):
        with pytest.raises(FileNotFoundError):
            LLMService(config_path="nonexistent.yaml")

    def test_init_empty_config_raises_error(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("", encoding="utf-8")
        with pytest.raises(ValueError, match="empty or invalid"):
            LLMService(config_path=str(config_file))

    def test_init_missing_models_raises_error(self, tmp_path):
        config_file = tmp_path / "no_models.yaml"
        config_file.write_text('default_model: "main"\nmodel_params: {}\n', encoding="utf-8")
        with pytest.raises(ValueError, match="at least one model"):
            LLMService(config_path=str(config_file))

    def test_shipped_config_loads(self):
        config_path = Path(__file__).resolve().parents[3] / "configs" / "llm_config.yaml"
        service = LLMService(config_path=str(config_path))
        assert service.models["main"] == "gpt-4o"


class TestModelResolution:
    def test_alias(self, service):
        assert service._resolve_model("fast") == "gpt-4o-mini"

    def test_none_uses_default(self, service):
        assert service._resolve_model(None) == "gpt-4o"

    def test_direct_name_passes_through(self, service):
        assert service._resolve_model("claude-3-5-sonnet") == "claude-3-5-sonnet"


class TestParameterMapping:
    """Test classic vs reasoning model parameter mapping."""

    def test_classic_parameters_passed_through(self, service):
        params = {"temperature": 0.7, "top_p": 1.0, "max_tokens": 2000, "effort": "low"}
        mapped = service._map_parameters_for_model("gpt-4o", params)
        assert mapped == {"temperature": 0.7, "top_p": 1.0, "max_tokens": 2000}

    @pytest.mark.parametrize(
        "temperature,effort",
        [(0.2, "low"), (0.3, "medium"), (0.7, "medium"), (0.71, "high")],
    )
    def test_reasoning_temperature_mapped_to_effort(self, service, temperature, effort):
        mapped = service._map_parameters_for_model("gpt-5", {"temperature": temperature})
        assert mapped == {"effort": effort}

    def test_reasoning_model_filters_classic_params(self, service):
        params = {"temperature": 0.2, "top_p": 1.0, "max_tokens": 2000, "frequency_penalty": 0.5}
        mapped = service._map_parameters_for_model("o3-mini", params)
        assert mapped == {"max_tokens": 2000, "effort": "low"}

    def test_explicit_effort_preserved(self, service):
        mapped = service._map_parameters_for_model("openai/gpt-5", {"effort": "high", "temperature": 0.1})
        assert mapped["effort"] == "high"

    def test_family_prefix_match(self, service):
        assert service._get_model_parameters("gpt-4o-2024-08-06")["max_tokens"] == 2000

    def test_defaults_fallback(self, service):
        assert service._get_model_parameters("unknown-model") == {"temperature": 0.7, "max_tokens": 2000}


@pytest.mark.asyncio
class TestCompletion:
    """Test complete() and complete_with_tools()."""

    async def test_successful_completion(self, service):
        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=make_response()) as mock_call:
            result = await service.complete(
                messages=[{"role": "user", "content": "Hello"}], model="main", temperature=0.1
            )

        assert result["success"] is True
        assert result["content"] == "Test response"
        assert result["usage"]["total_tokens"] == 100
        assert result["model"] == "gpt-4o"
        assert "tool_calls" not in result
        kwargs = mock_call.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 2000
        assert kwargs["timeout"] == 30
        assert "tools" not in kwargs

    async def test_completion_with_usage_object(self, service):
        response = make_response()
        response.usage = SimpleNamespace(total_tokens=7, prompt_tokens=4, completion_tokens=3)

        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=response):
            result = await service.complete(messages=[{"role": "user", "content": "Hello"}])

        assert result["usage"] == {"total_tokens": 7, "prompt_tokens": 4, "completion_tokens": 3}

    async def test_complete_with_tools_parses_calls(self, service):
        raw_call = SimpleNamespace(
            id="call_abc",
            function=SimpleNamespace(name="click", arguments=json.dumps({"element_id": 4})),
        )
        tools = [{"type": "function", "function": {"name": "click", "parameters": {}}}]

        with patch(
            "litellm.acompletion",
            new_callable=AsyncMock,
            return_value=make_response(content=None, tool_calls=[raw_call]),
        ) as mock_call:
            result = await service.complete_with_tools(
                messages=[{"role": "user", "content": "Click it"}], tools=tools
            )

        assert result["success"] is True
        assert result["content"] == ""
        assert result["tool_calls"] == [ToolCall(id="call_abc", name="click", args={"element_id": 4})]
        assert mock_call.call_args.kwargs["tools"] == tools
        assert mock_call.call_args.kwargs["tool_choice"] == "auto"

    async def test_retry_on_rate_limit(self, service):
        call_count = 0

        async def mock_acompletion(*args, **kwargs):
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise Exception("RateLimitError: Too many requests")
            return make_response("Success")

        with patch("litellm.acompletion", side_effect=mock_acompletion):
            result = await service.complete(messages=[{"role": "user", "content": "Test"}])

        assert result["success"] is True
        assert call_count == 3
        assert service._backoff.await_count == 2

    async def test_failure_after_max_attempts_override(self, service):
        mock_call = AsyncMock(side_effect=Exception("RateLimitError: Too many requests"))

        with patch("litellm.acompletion", mock_call):
            result = await service.complete(messages=[{"role": "user", "content": "Test"}], max_attempts=2)

        assert result["success"] is False
        assert result["error_type"] == "Exception"
        assert mock_call.await_count == 2

    async def test_no_retry_on_non_retryable_error(self, service):
        mock_call = AsyncMock(side_effect=ValueError("Invalid input"))

        with patch("litellm.acompletion", mock_call):
            result = await service.complete(messages=[{"role": "user", "content": "Test"}])

        assert result["success"] is False
        assert result["error"] == "Invalid input"
        assert mock_call.await_count == 1

    async def test_cancelled_before_call(self, service):
        token = CancellationToken()
        token.cancel()
        mock_call = AsyncMock(return_value=make_response())

        with patch("litellm.acompletion", mock_call):
            result = await service.complete(
                messages=[{"role": "user", "content": "Test"}], cancel_token=token
            )

        assert result["success"] is False
        assert result["error"] == "Request cancelled"
        mock_call.assert_not_called()
