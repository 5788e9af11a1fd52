"""
LLM Service for centralized LLM interactions.

Wraps litellm with model aliases, model-aware parameter mapping and a retry
policy loaded from YAML. Provider failures never raise: every call returns a
result dict with ``success`` and either the response or ``error``.
"""

import asyncio
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import litellm
import structlog
import yaml

from taskpilot.core.domain.context import CancellationToken
from taskpilot.infrastructure.tools.tool_converter import parse_tool_calls

_TRADITIONAL_PARAMS = ["temperature", "top_p", "max_tokens", "frequency_penalty", "presence_penalty"]


@dataclass
class RetryPolicy:
    """Retry policy configuration."""

    max_attempts: int = 3
    backoff_multiplier: float = 2.0
    timeout: int = 30
    retry_on_errors: list[str] = field(default_factory=list)


class LLMService:
    """
    litellm-backed implementation of LLMProviderProtocol.

    Supports classic chat models (temperature and friends) and reasoning
    models (effort instead of temperature), selected by model name.
    """

    def __init__(self, config_path: str = "configs/llm_config.yaml"):
        """
        Args:
            config_path: Path to YAML configuration file

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        self.logger = structlog.get_logger().bind(component="llm_service")
        self._load_config(config_path)
        self._initialize_provider()

        self.logger.info(
            "llm_service_initialized",
            default_model=self.default_model,
            model_aliases=list(self.models.keys()),
        )

    def _load_config(self, config_path: str) -> None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"LLM config not found: {config_path}")

        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict):
            raise ValueError(f"Config file is empty or invalid: {config_path}")

        self.default_model = config.get("default_model", "main")
        self.models = config.get("models", {})
        self.model_params = config.get("model_params", {})
        self.default_params = config.get("default_params", {})

        if not self.models:
            raise ValueError("Config must define at least one model in 'models' section")

        retry_config = config.get("retry_policy", {})
        self.retry_policy = RetryPolicy(
            max_attempts=retry_config.get("max_attempts", 3),
            backoff_multiplier=retry_config.get("backoff_multiplier", 2.0),
            timeout=retry_config.get("timeout", 30),
            retry_on_errors=retry_config.get("retry_on_errors", []),
        )

        self.logging_config = config.get("logging", {})
        self.provider_config = config.get("providers", {})

    def _initialize_provider(self) -> None:
        openai_config = self.provider_config.get("openai", {})
        api_key_env = openai_config.get("api_key_env", "OPENAI_API_KEY")
        if not os.getenv(api_key_env):
            self.logger.warning(
                "api_key_missing",
                env_var=api_key_env,
                hint="Set environment variable for API access",
            )
        api_base = openai_config.get("api_base")
        if api_base:
            os.environ.setdefault("OPENAI_API_BASE", api_base)
        self.logger.info("provider_selected", provider="openai", api_base=api_base)

    def _resolve_model(self, model_alias: str | None) -> str:
        """Resolve a model alias to the actual model name; unknown aliases pass through."""
        if model_alias is None:
            model_alias = self.default_model
        resolved_model = self.models.get(model_alias, model_alias)
        self.logger.debug("model_resolved", model_alias=model_alias, resolved_model=resolved_model)
        return resolved_model

    def _get_model_parameters(self, model: str) -> dict[str, Any]:
        if model in self.model_params:
            return self.model_params[model].copy()

        # Model family match, e.g. "gpt-4" matches "gpt-4-turbo"
        for model_key, params in self.model_params.items():
            if model.startswith(model_key):
                return params.copy()

        return self.default_params.copy()

    def _map_parameters_for_model(self, model: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Map parameters based on model family.

        Reasoning models (gpt-5, o-series) take ``effort`` instead of
        temperature; temperature < 0.3 maps to low, <= 0.7 to medium and
        anything above to high. Other models keep the traditional parameters.
        """
        name = model.lower().split("/")[-1]
        if not ("gpt-5" in name or name.startswith(("o1", "o3", "o4"))):
            return {k: v for k, v in params.items() if k in _TRADITIONAL_PARAMS}

        mapped: dict[str, Any] = {}
        if "max_tokens" in params:
            mapped["max_tokens"] = params["max_tokens"]

        if "effort" in params:
            mapped["effort"] = params["effort"]
        elif "temperature" in params:
            temp = params["temperature"]
            if temp < 0.3:
                mapped["effort"] = "low"
            elif temp <= 0.7:
                mapped["effort"] = "medium"
            else:
                mapped["effort"] = "high"
            if self.logging_config.get("log_parameter_mapping", True):
                self.logger.info(
                    "parameter_mapped_reasoning_model",
                    model=model,
                    temperature=temp,
                    mapped_effort=mapped["effort"],
                )
        if "reasoning" in params:
            mapped["reasoning"] = params["reasoning"]

        ignored = [k for k in params if k in _TRADITIONAL_PARAMS and k != "max_tokens"]
        if ignored and self.logging_config.get("log_parameter_mapping", True):
            self.logger.warning(
                "unsupported_parameters_ignored",
                model=model,
                ignored_params=ignored,
            )
        return mapped

    async def complete(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_attempts: int | None = None,
        cancel_token: CancellationToken | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Perform a text completion with retry logic.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model alias or None (uses default)
            max_attempts: Overrides the configured retry policy attempts
            cancel_token: Checked before every attempt and during backoff
            **kwargs: Additional parameters (temperature, max_tokens, etc.)

        Returns:
            Dict with:
            - success: bool
            - content: str (if successful)
            - usage: Dict with token counts
            - error: str (if failed)
        """
        result = await self._call_with_retry(messages, model, max_attempts, cancel_token, {}, kwargs)
        if result.get("success"):
            result.pop("tool_calls", None)
        return result

    async def complete_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        model: str | None = None,
        max_attempts: int | None = None,
        cancel_token: CancellationToken | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Perform a tool-calling completion with retry logic.

        Returns:
            Same as complete(), plus ``tool_calls``: list of ToolCall
            (empty when the model answered with text only)
        """
        extra = {"tools": tools, "tool_choice": "auto"} if tools else {}
        return await self._call_with_retry(messages, model, max_attempts, cancel_token, extra, kwargs)

    async def _call_with_retry(
        self,
        messages: list[dict[str, Any]],
        model: str | None,
        max_attempts: int | None,
        cancel_token: CancellationToken | None,
        extra: dict[str, Any],
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        actual_model = self._resolve_model(model)
        merged_params = {**self._get_model_parameters(actual_model), **kwargs}
        final_params = self._map_parameters_for_model(actual_model, merged_params)
        attempts = max(1, max_attempts or self.retry_policy.max_attempts)

        for attempt in range(attempts):
            if cancel_token is not None and cancel_token.cancelled:
                return {"success": False, "error": "Request cancelled", "error_type": "Cancelled", "model": actual_model}

            try:
                start_time = time.time()
                self.logger.info(
                    "llm_completion_started",
                    model=actual_model,
                    attempt=attempt + 1,
                    message_count=len(messages),
                )

                response = await litellm.acompletion(
                    model=actual_model,
                    messages=messages,
                    timeout=self.retry_policy.timeout,
                    **extra,
                    **final_params,
                )

                message = response.choices[0].message
                usage = getattr(response, "usage", {})
                if isinstance(usage, dict):
                    token_stats = usage
                else:
                    token_stats = {
                        "total_tokens": getattr(usage, "total_tokens", 0),
                        "prompt_tokens": getattr(usage, "prompt_tokens", 0),
                        "completion_tokens": getattr(usage, "completion_tokens", 0),
                    }
                latency_ms = int((time.time() - start_time) * 1000)

                if self.logging_config.get("log_token_usage", True):
                    self.logger.info(
                        "llm_completion_success",
                        model=actual_model,
                        tokens=token_stats.get("total_tokens", 0),
                        latency_ms=latency_ms,
                    )

                return {
                    "success": True,
                    "content": getattr(message, "content", None) or "",
                    "tool_calls": parse_tool_calls(getattr(message, "tool_calls", None)),
                    "usage": token_stats,
                    "model": actual_model,
                    "latency_ms": latency_ms,
                }

            except Exception as e:
                error_type = type(e).__name__
                error_msg = str(e)

                should_retry = attempt < attempts - 1 and any(
                    err_type in error_type or err_type in error_msg
                    for err_type in self.retry_policy.retry_on_errors
                )
                if not should_retry:
                    self.logger.error(
                        "llm_completion_failed",
                        model=actual_model,
                        error_type=error_type,
                        error=error_msg[:200],
                        attempts=attempt + 1,
                    )
                    return {
                        "success": False,
                        "error": error_msg,
                        "error_type": error_type,
                        "model": actual_model,
                    }

                backoff_time = self.retry_policy.backoff_multiplier**attempt
                self.logger.warning(
                    "llm_completion_retry",
                    model=actual_model,
                    error_type=error_type,
                    attempt=attempt + 1,
                    backoff_seconds=backoff_time,
                )
                await self._backoff(backoff_time, cancel_token)

        return {"success": False, "error": "Max retries exceeded", "model": actual_model}

    async def _backoff(self, seconds: float, cancel_token: CancellationToken | None) -> None:
        if cancel_token is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(cancel_token.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
