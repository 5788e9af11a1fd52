"""Markdown checklist helpers for predefined plans."""

import re

from taskpilot.core.domain.models import Plan

_ITEM_RE = re.compile(r"^\s*[-*]\s+\[(?P<mark>[ xX])\]\s*(?P<text>.*)$")


def plan_to_markdown(plan: Plan) -> str:
    """Render every step of ``plan`` as an unchecked ``- [ ] action`` line."""
    return "\n".join(f"- [ ] {step.action}" for step in plan.steps)


def checklist_items(markdown: str) -> list[tuple[bool, str]]:
    """Parse ``(checked, text)`` pairs, ignoring lines that are not items."""
    items = []
    for line in (markdown or "").split("\n"):
        match = _ITEM_RE.match(line)
        if match:
            items.append((match.group("mark") in "xX", match.group("text").strip()))
    return items


def checklist_progress(markdown: str) -> tuple[int, int]:
    """Return ``(checked, total)``."""
    items = checklist_items(markdown)
    return sum(1 for checked, _ in items if checked), len(items)


def all_checked(markdown: str) -> bool:
    checked, total = checklist_progress(markdown)
    return total > 0 and checked == total
