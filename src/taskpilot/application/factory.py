"""
Application Layer - Orchestrator Factory

Wires the core loop with infrastructure adapters based on configuration
profiles (``configs/<profile>.yaml``):

- LLM provider: litellm-backed LLMService configured by ``llm.config_path``
- Token counter: litellm tokenizer for ``agent.token_model``
- Tool registry: caller tools plus the ``done`` and ``human_input`` tools
- Progress sink, escalation channel and environment provider: injected by
  the caller (CLI, UI bridge, tests), with headless defaults
"""

from pathlib import Path
from typing import Iterable

import structlog
import yaml

from taskpilot.application.settings import AgentSettings
from taskpilot.core.domain.escalation import HumanInputWaiter
from taskpilot.core.domain.executor import Executor
from taskpilot.core.domain.orchestrator import Orchestrator
from taskpilot.core.domain.planners import DynamicPlanner, PlannerCore, PredefinedPlanner
from taskpilot.core.domain.summarizer import HistorySummarizer
from taskpilot.core.domain.token_budget import TokenBudget
from taskpilot.core.domain.tool_dispatcher import ToolExecutor
from taskpilot.core.interfaces.environment import EnvironmentProviderProtocol
from taskpilot.core.interfaces.escalation import HumanEscalationProtocol
from taskpilot.core.interfaces.llm import LLMProviderProtocol
from taskpilot.core.interfaces.progress import ProgressSinkProtocol
from taskpilot.core.interfaces.tokens import TokenCounterProtocol
from taskpilot.core.interfaces.tools import ToolProtocol
from taskpilot.infrastructure.io.escalation import QueueEscalationChannel
from taskpilot.infrastructure.io.progress import StructlogProgressSink
from taskpilot.infrastructure.tools.tool_registry import ToolRegistry


def build_orchestrator(
    settings: AgentSettings,
    llm_provider: LLMProviderProtocol,
    token_counter: TokenCounterProtocol,
    tool_registry: ToolRegistry,
    progress: ProgressSinkProtocol,
    escalation_channel: HumanEscalationProtocol,
    environment: EnvironmentProviderProtocol | None = None,
) -> Orchestrator:
    """Assemble an Orchestrator from already constructed collaborators."""
    token_budget = TokenBudget(
        token_counter, settings.max_context_tokens, settings.summarization_threshold
    )
    summarizer = HistorySummarizer(
        llm_provider,
        model_alias=settings.summarizer_model,
        max_attempts=settings.max_retries,
        temperature=settings.temperature,
        max_output_tokens=settings.max_output_tokens,
    )
    core = PlannerCore(
        llm_provider=llm_provider,
        tool_registry=tool_registry,
        token_budget=token_budget,
        summarizer=summarizer,
        environment=environment,
        model_alias=settings.planner_model,
        max_attempts=settings.max_retries,
        temperature=settings.temperature,
        max_output_tokens=settings.max_output_tokens,
    )
    executor = Executor(
        llm_provider=llm_provider,
        tool_executor=ToolExecutor(tool_registry),
        tool_registry=tool_registry,
        token_budget=token_budget,
        environment=environment,
        model_alias=settings.executor_model,
        max_passes=settings.max_executor_iterations,
        max_attempts=settings.max_retries,
        temperature=settings.temperature,
        max_tool_calls=settings.max_tool_calls,
    )
    return Orchestrator(
        dynamic_planner=DynamicPlanner(core, settings.max_planner_iterations),
        predefined_planner=PredefinedPlanner(core, settings.max_predefined_iterations),
        executor=executor,
        human_waiter=HumanInputWaiter(escalation_channel, settings.human_input_timeout_seconds),
        progress=progress,
        max_tokens=settings.max_context_tokens,
        max_retries=settings.max_retries,
        supports_vision=settings.supports_vision,
    )


class OrchestratorFactory:
    """
    Creates orchestrators from configuration profiles.

    Args:
        config_dir: Path to directory containing profile YAML files
    """

    def __init__(self, config_dir: str = "configs"):
        self.config_dir = Path(config_dir)
        self.logger = structlog.get_logger().bind(component="orchestrator_factory")

    def load_profile(self, profile: str) -> dict:
        """
        Load configuration profile from YAML file.

        Raises:
            FileNotFoundError: If profile YAML not found
        """
        profile_path = self.config_dir / f"{profile}.yaml"
        if not profile_path.exists():
            self.logger.error(
                "profile_not_found",
                profile=profile,
                path=str(profile_path),
                hint="Ensure profile YAML exists in configs directory",
            )
            raise FileNotFoundError(f"Profile not found: {profile_path}")

        with open(profile_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        self.logger.debug("profile_loaded", profile=profile, config_keys=list(config.keys()))
        return config

    def load_settings(self, profile: str) -> AgentSettings:
        return AgentSettings.from_dict(self.load_profile(profile).get("agent"))

    def create_tool_registry(self, tools: Iterable[ToolProtocol] | None = None) -> ToolRegistry:
        return ToolRegistry(tools)

    def create_orchestrator(
        self,
        profile: str = "dev",
        tools: Iterable[ToolProtocol] | None = None,
        progress: ProgressSinkProtocol | None = None,
        escalation_channel: HumanEscalationProtocol | None = None,
        environment: EnvironmentProviderProtocol | None = None,
        llm_provider: LLMProviderProtocol | None = None,
        token_counter: TokenCounterProtocol | None = None,
    ) -> Orchestrator:
        """
        Create an orchestrator for ``profile``.

        Collaborators not supplied are built from the profile: the
        litellm-backed LLM service and token counter, a structlog progress
        sink and a programmatic escalation channel.
        """
        config = self.load_profile(profile)
        settings = AgentSettings.from_dict(config.get("agent"))
        self.logger.info(
            "creating_orchestrator",
            profile=profile,
            max_context_tokens=settings.max_context_tokens,
            supports_vision=settings.supports_vision,
        )

        if llm_provider is None:
            from taskpilot.infrastructure.llm.litellm_service import LLMService

            config_path = config.get("llm", {}).get("config_path", "configs/llm_config.yaml")
            llm_provider = LLMService(config_path=config_path)
        if token_counter is None:
            from taskpilot.infrastructure.llm.token_counter import LiteLLMTokenCounter

            token_counter = LiteLLMTokenCounter(settings.token_model)

        return build_orchestrator(
            settings=settings,
            llm_provider=llm_provider,
            token_counter=token_counter,
            tool_registry=self.create_tool_registry(tools),
            progress=progress or StructlogProgressSink(),
            escalation_channel=escalation_channel or QueueEscalationChannel(),
            environment=environment,
        )
