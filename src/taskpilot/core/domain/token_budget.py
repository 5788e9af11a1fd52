"""
Token Budget - context window accounting for planner prompts.

Pure helpers over a token counter; nothing here holds run state.
"""

from typing import Any

from taskpilot.core.interfaces.tokens import TokenCounterProtocol

SUMMARIZATION_THRESHOLD = 0.7
SNAPSHOT_SHARE = 0.8
TRUNCATION_NOTICE = "\n\n[... environment state truncated to fit the context window ...]"


class TokenBudget:
    """
    Counts prompt blocks against a fixed context window.

    Args:
        counter: Token counter used for every measurement
        max_tokens: Size of the model context window
        threshold_ratio: Share of ``max_tokens`` that system prompt plus
            history may occupy before history must be summarized
    """

    def __init__(
        self,
        counter: TokenCounterProtocol,
        max_tokens: int,
        threshold_ratio: float = SUMMARIZATION_THRESHOLD,
    ):
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if not 0 < threshold_ratio <= 1:
            raise ValueError("threshold_ratio must be in (0, 1]")
        self.counter = counter
        self.max_tokens = max_tokens
        self.threshold_ratio = threshold_ratio

    @property
    def threshold(self) -> float:
        return self.max_tokens * self.threshold_ratio

    def count(self, content: str | list[dict[str, Any]]) -> int:
        return self.counter.count(content)

    def exceeds_threshold(self, system_tokens: int, history_tokens: int) -> bool:
        """True iff ``system_tokens + history_tokens`` is strictly above the threshold."""
        return system_tokens + history_tokens > self.threshold

    def snapshot_limit(self, used_tokens: int) -> int:
        """Tokens an environment snapshot may take after ``used_tokens`` are spent."""
        return max(0, int((self.max_tokens - used_tokens) * SNAPSHOT_SHARE))

    def fit_text(self, text: str, limit: int) -> str:
        """
        Truncate ``text`` so it fits in ``limit`` tokens.

        The cut is proportional to the overflow; a notice is appended so the
        model knows the block is incomplete.
        """
        tokens = self.count(text)
        if tokens <= limit:
            return text
        if limit <= 0:
            return TRUNCATION_NOTICE.strip()
        keep_chars = int(len(text) * limit / tokens)
        return text[:keep_chars].rstrip() + TRUNCATION_NOTICE
