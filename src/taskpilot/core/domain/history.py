"""Execution history management for planner context.

Keeps the ordered log of past planning iterations and renders it into the
text block injected into planner prompts. When the token budget is crossed
the whole log is replaced by a single summary entry.
"""

from __future__ import annotations

import re
from typing import Iterator

from taskpilot.core.domain.models import (
    ExecutionHistoryEntry,
    ExecutionHistorySummary,
    PlannerOutput,
    PredefinedPlannerOutput,
)

EMPTY_HISTORY_TEXT = "No execution history yet"

# Planner sub-fields that are redundant once tool results are known
_REDUNDANT_FIELD_RE = re.compile(
    r"^[-*]\s*(reasoning|todo markdown|proposed actions)\s*:?", re.IGNORECASE
)
_SECTION_LINE_RE = re.compile(
    r"^(={3}.*={3}|PLANNER OUTPUT:?|TOOL EXECUTIONS:?|No tool executions)$"
)


class ExecutionHistory:
    """Append-only log of planning iterations.

    Entries are never mutated after append. The only other mutation is the
    wholesale replacement performed by ``replace_with_summary``.
    """

    def __init__(self) -> None:
        self._entries: list[ExecutionHistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ExecutionHistoryEntry]:
        return iter(list(self._entries))

    @property
    def entries(self) -> list[ExecutionHistoryEntry]:
        return list(self._entries)

    def append(
        self,
        planner_output: PlannerOutput,
        tool_messages: list[str],
        iteration_index: int,
    ) -> ExecutionHistoryEntry:
        entry = ExecutionHistoryEntry(
            planner_output=planner_output,
            tool_messages=list(tool_messages),
            iteration_index=iteration_index,
        )
        self._entries.append(entry)
        return entry

    def replace_with_summary(
        self, summary: ExecutionHistorySummary, last_iteration: int
    ) -> ExecutionHistoryEntry:
        """Drop every entry and keep a single summary covering them."""
        entry = ExecutionHistoryEntry(
            planner_output=summary,
            tool_messages=[],
            iteration_index=last_iteration,
        )
        self._entries = [entry]
        return entry

    def render(self) -> str:
        if not self._entries:
            return EMPTY_HISTORY_TEXT
        return "\n\n".join(render_entry(entry) for entry in self._entries)


def render_planner_section(
    output: PlannerOutput,
) -> str:
    lines = ["PLANNER OUTPUT:", f"- Reasoning: {output.reasoning}"]
    if isinstance(output, PredefinedPlannerOutput):
        lines.append(f"- TODO Markdown: {output.todo_markdown}")
    lines.append(f"- Proposed Actions: {output.proposed_actions}")
    return "\n".join(lines)


def render_entry(entry: ExecutionHistoryEntry) -> str:
    """Serialize one entry into its prompt-text form."""
    output = entry.planner_output
    if isinstance(output, ExecutionHistorySummary):
        return (
            f"=== ITERATIONS 1-{entry.iteration_index} SUMMARY ===\n"
            f"{output.summary}"
        )

    if entry.tool_messages:
        tool_section = "TOOL EXECUTIONS:\n" + "\n".join(entry.tool_messages)
    else:
        tool_section = "No tool executions"

    return (
        f"=== ITERATION {entry.iteration_index} ===\n"
        f"{render_planner_section(output)}\n\n{tool_section}"
    )


def strip_redundant_sections(history_text: str) -> str:
    """Remove reasoning, checklist and proposed-action blocks.

    A block starts at its ``- Reasoning:`` style label and runs until a blank
    line or a section marker.
    """
    kept: list[str] = []
    skipping = False
    for line in history_text.split("\n"):
        stripped = line.strip()
        if _REDUNDANT_FIELD_RE.match(stripped):
            skipping = True
            continue
        if skipping:
            if not stripped or _SECTION_LINE_RE.match(stripped):
                skipping = False
            else:
                continue
        kept.append(line)
    return "\n".join(kept)
