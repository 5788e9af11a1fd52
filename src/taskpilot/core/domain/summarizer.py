"""
History Summarizer - lossy compaction of execution history.

Strips the planner sub-fields that are redundant next to the tool results,
asks the LLM for a summary and parses it out of the reply.
"""

from typing import TYPE_CHECKING

import structlog

from taskpilot.core.domain.errors import HistorySummarizationError
from taskpilot.core.domain.history import strip_redundant_sections
from taskpilot.core.domain.models import ExecutionHistorySummary
from taskpilot.core.domain.output_parser import parse_summary
from taskpilot.core.interfaces.llm import LLMProviderProtocol
from taskpilot.core.prompts.planner_prompts import HISTORY_SUMMARY_PROMPT

if TYPE_CHECKING:
    from taskpilot.core.domain.context import CancellationToken


class HistorySummarizer:
    def __init__(
        self,
        llm_provider: LLMProviderProtocol,
        model_alias: str = "main",
        max_attempts: int = 3,
        temperature: float = 0.2,
        max_output_tokens: int = 4096,
    ):
        self.llm_provider = llm_provider
        self.model_alias = model_alias
        self.max_attempts = max_attempts
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.logger = structlog.get_logger().bind(component="history_summarizer")

    async def summarize(
        self,
        history_text: str,
        cancel_token: "CancellationToken | None" = None,
    ) -> ExecutionHistorySummary:
        """
        Summarize rendered history text.

        Raises:
            HistorySummarizationError: If the LLM call fails or the reply
                contains no summary
            CancellationError: If ``cancel_token`` fired while the call was in flight
        """
        stripped = strip_redundant_sections(history_text)
        self.logger.info(
            "history_summarization_started",
            original_chars=len(history_text),
            stripped_chars=len(stripped),
        )

        result = await self.llm_provider.complete(
            messages=[
                {"role": "system", "content": HISTORY_SUMMARY_PROMPT},
                {"role": "user", "content": f"Execution History: {stripped}"},
            ],
            model=self.model_alias,
            max_attempts=self.max_attempts,
            cancel_token=cancel_token,
            temperature=self.temperature,
            max_tokens=self.max_output_tokens,
        )
        if not result.get("success"):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            raise HistorySummarizationError(
                f"History summarization failed: {result.get('error', 'unknown error')}"
            )

        summary = parse_summary(result.get("content") or "")
        if not summary:
            raise HistorySummarizationError("History summarization returned no summary")

        self.logger.info("history_summarized", summary_chars=len(summary))
        return ExecutionHistorySummary(summary=summary)
