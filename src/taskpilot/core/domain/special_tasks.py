"""
Special-task matcher.

A fixed lookup from a few known goal phrases to a canonical task text and a
predefined plan. Matching ignores case, runs of whitespace and the emoji
variation selector, so "  READ about our vision and upvote ❤ " still matches.
"""

import re
from dataclasses import dataclass

import structlog

from taskpilot.core.domain.models import ExecutionMetadata, PredefinedPlan

logger = structlog.get_logger().bind(component="special_tasks")

_VARIATION_SELECTOR = "\ufe0f"


@dataclass(frozen=True)
class SpecialTask:
    """Canonical task text plus the predefined plan it runs with."""

    task: str
    plan: PredefinedPlan

    @property
    def metadata(self) -> ExecutionMetadata:
        return ExecutionMetadata(predefined_plan=self.plan)


def normalize_task(text: str) -> str:
    text = (text or "").replace(_VARIATION_SELECTOR, "")
    return re.sub(r"\s+", " ", text).strip().casefold()


_SPECIAL_TASKS: dict[str, SpecialTask] = {
    normalize_task("Read about our vision and upvote ❤️"): SpecialTask(
        task="Read about our vision and upvote",
        plan=PredefinedPlan.from_actions(
            agent_id="browseros-launch-upvoter",
            name="BrowserOS Launch Upvoter",
            goal="Navigate to BrowserOS launch page and upvote it",
            actions=[
                "Navigate to https://dub.sh/browseros-launch",
                "Find and click the upvote button on the page using visual_click",
                "Use celebration tool to show confetti animation",
            ],
        ),
    ),
    normalize_task("Support BrowserOS on GitHub ⭐"): SpecialTask(
        task="Support BrowserOS on GitHub",
        plan=PredefinedPlan.from_actions(
            agent_id="github-star-browseros",
            name="GitHub Repository Star",
            goal="Navigate to BrowserOS GitHub repo and star it",
            actions=[
                "Navigate to https://git.new/browserOS",
                "Check if the star button indicates already starred (filled star icon)",
                "If not starred (outline star icon), click the star button to star the repository",
                "Use celebration_tool to show confetti animation",
            ],
        ),
    ),
}


def match_special_task(task: str) -> SpecialTask | None:
    """Return the special task for ``task``, or None when it is an ordinary goal."""
    special = _SPECIAL_TASKS.get(normalize_task(task))
    if special is not None:
        logger.info(
            "special_task_detected",
            agent_id=special.plan.agent_id,
            plan_name=special.plan.name,
        )
    return special
