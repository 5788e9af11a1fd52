"""Unit tests for TokenBudget."""

import pytest

from taskpilot.core.domain.token_budget import TRUNCATION_NOTICE, TokenBudget


class TestTokenBudget:
    def test_threshold_is_strictly_greater(self, token_counter):
        budget = TokenBudget(token_counter, max_tokens=100, threshold_ratio=0.7)

        assert budget.threshold == pytest.approx(70)
        assert budget.exceeds_threshold(30, 40) is False
        assert budget.exceeds_threshold(30, 41) is True

    def test_count_delegates_to_counter(self, token_counter):
        budget = TokenBudget(token_counter, max_tokens=100)
        assert budget.count("one two three") == 3
        assert budget.count([{"role": "user", "content": "a b"}]) == 2

    def test_invalid_configuration(self, token_counter):
        with pytest.raises(ValueError):
            TokenBudget(token_counter, max_tokens=0)
        with pytest.raises(ValueError):
            TokenBudget(token_counter, max_tokens=100, threshold_ratio=1.5)

    def test_snapshot_limit_is_share_of_remaining(self, token_counter):
        budget = TokenBudget(token_counter, max_tokens=1000)
        assert budget.snapshot_limit(500) == 400
        assert budget.snapshot_limit(2000) == 0


class TestFitText:
    def test_text_within_limit_is_unchanged(self, token_counter):
        budget = TokenBudget(token_counter, max_tokens=1000)
        assert budget.fit_text("a b c", 5) == "a b c"

    def test_oversized_text_is_truncated_with_notice(self, token_counter):
        budget = TokenBudget(token_counter, max_tokens=1000)
        text = " ".join(f"w{i}" for i in range(100))

        fitted = budget.fit_text(text, 10)

        assert fitted.endswith(TRUNCATION_NOTICE)
        assert fitted.startswith("w0 w1")
        assert len(fitted) < len(text)

    def test_no_room_leaves_only_notice(self, token_counter):
        budget = TokenBudget(token_counter, max_tokens=1000)
        assert budget.fit_text("a b c", 0) == TRUNCATION_NOTICE.strip()
