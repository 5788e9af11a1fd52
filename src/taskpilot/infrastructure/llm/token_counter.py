"""Token counting backed by litellm's tokenizer registry."""

from typing import Any

import litellm


class LiteLLMTokenCounter:
    """
    Counts tokens the way the configured model would.

    Args:
        model: Model name whose tokenizer is used
    """

    def __init__(self, model: str = "gpt-4o"):
        self.model = model

    def count(self, content: str | list[dict[str, Any]]) -> int:
        if isinstance(content, str):
            return litellm.token_counter(model=self.model, text=content)
        return litellm.token_counter(model=self.model, messages=content)
