"""
Output Parser - free text planner replies to structured records.

Planner and summarizer LLMs answer in loosely formatted text with labelled
sections, e.g.::

    ## Reasoning
    The search page is open.

    ## Proposed Actions
    1. Type "weather" into the search box

    ## Task Complete
    false

Both ``## Heading`` style and ``- Label: value`` style sections are
accepted, so the prompt-text form of an ExecutionHistory entry parses back
into the same fields. Missing sections default to empty values; only
``task_complete`` is coerced to a boolean.
"""

import re

from taskpilot.core.domain.models import DynamicPlannerOutput, PredefinedPlannerOutput

FIELD_LABELS = {
    "reasoning": "reasoning",
    "proposed actions": "proposed_actions",
    "todo markdown": "todo_markdown",
    "task complete": "task_complete",
    "final answer": "final_answer",
    "summary": "summary",
}

_LABEL_ALTERNATION = "|".join(re.escape(label) for label in FIELD_LABELS)

# "## Reasoning" / "### **Proposed Actions:**"
_HEADING_RE = re.compile(
    rf"^\s*#{{1,6}}\s*\**\s*(?P<label>{_LABEL_ALTERNATION})\s*\**\s*:?\s*\**\s*$",
    re.IGNORECASE,
)
# "Reasoning: ..." / "- Proposed Actions: ..." / "**Task Complete:** true"
# / "## Final Answer: ..."
_INLINE_RE = re.compile(
    rf"^\s*(?:#{{1,6}}\s*|[-*]\s+)?\**\s*(?P<label>{_LABEL_ALTERNATION})\s*\**\s*:\s*\**\s*(?P<rest>.*)$",
    re.IGNORECASE,
)
# Lines that close any open section without starting a new one
_TERMINATOR_RE = re.compile(
    r"^\s*(={3}.*={3}|PLANNER OUTPUT:?|TOOL EXECUTIONS:?|No tool executions)\s*$"
)
_FENCE_RE = re.compile(r"^\s*```[\w-]*\s*$")

_TRUE_WORDS = {"true", "yes", "y", "1", "done", "complete", "completed"}


def _strip_outer_fence(text: str) -> str:
    lines = text.strip().split("\n")
    if len(lines) >= 2 and _FENCE_RE.match(lines[0]) and _FENCE_RE.match(lines[-1]):
        return "\n".join(lines[1:-1])
    return text


def extract_sections(text: str) -> dict[str, str]:
    """
    Split raw LLM text into labelled sections.

    Returns:
        Mapping of field name (``reasoning``, ``proposed_actions``,
        ``todo_markdown``, ``task_complete``, ``final_answer``, ``summary``)
        to its stripped content. The first non-empty occurrence of a field
        wins.
    """
    sections: dict[str, list[str]] = {}
    current: str | None = None

    for line in _strip_outer_fence(text or "").split("\n"):
        heading = _HEADING_RE.match(line)
        if heading:
            current = FIELD_LABELS[heading.group("label").lower()]
            sections.setdefault(current, [])
            if "".join(sections[current]).strip():
                current = None  # duplicate section, keep the first
            continue

        inline = _INLINE_RE.match(line)
        if inline:
            current = FIELD_LABELS[inline.group("label").lower()]
            sections.setdefault(current, [])
            if "".join(sections[current]).strip():
                current = None
                continue
            sections[current].append(inline.group("rest"))
            continue

        if _TERMINATOR_RE.match(line):
            current = None
            continue

        if current is not None:
            sections[current].append(line)

    return {name: "\n".join(lines).strip() for name, lines in sections.items()}


def parse_bool(value: str) -> bool:
    words = re.findall(r"[a-z0-9]+", (value or "").lower())
    return bool(words) and words[0] in _TRUE_WORDS


def parse_reasoning(text: str) -> str:
    return extract_sections(text).get("reasoning", "")


def parse_proposed_actions(text: str) -> str:
    return extract_sections(text).get("proposed_actions", "")


def parse_todo_markdown(text: str) -> str:
    return extract_sections(text).get("todo_markdown", "")


def parse_task_complete(text: str) -> bool:
    return parse_bool(extract_sections(text).get("task_complete", ""))


def parse_final_answer(text: str) -> str:
    return extract_sections(text).get("final_answer", "")


def parse_summary(text: str) -> str:
    """Summary section, or the whole reply when no section label is present."""
    sections = extract_sections(text)
    if sections.get("summary"):
        return sections["summary"]
    if sections:
        return ""
    return _strip_outer_fence(text or "").strip()


def parse_dynamic_output(text: str) -> DynamicPlannerOutput:
    sections = extract_sections(text)
    return DynamicPlannerOutput(
        reasoning=sections.get("reasoning", ""),
        proposed_actions=sections.get("proposed_actions", ""),
        task_complete=parse_bool(sections.get("task_complete", "")),
        final_answer=sections.get("final_answer", ""),
    )


def parse_predefined_output(text: str) -> PredefinedPlannerOutput:
    sections = extract_sections(text)
    return PredefinedPlannerOutput(
        reasoning=sections.get("reasoning", ""),
        todo_markdown=sections.get("todo_markdown", ""),
        proposed_actions=sections.get("proposed_actions", ""),
        task_complete=parse_bool(sections.get("task_complete", "")),
        final_answer=sections.get("final_answer", ""),
    )
