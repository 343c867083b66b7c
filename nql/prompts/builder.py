from __future__ import annotations

from typing import List, Optional

from nql.prompts import templates as T
from nql.prompts.contracts import PlanPromptInput, PromptPair
from nql.types import AvailabilityInfo


def _availability_block(availability: Optional[AvailabilityInfo], lang: str) -> str:
    if availability is None or (not availability.periods and not availability.notes):
        return T.AVAILABILITY_NONE[lang]

    lines: List[str] = [T.AVAILABILITY_HEADER[lang]]
    for dataset, periods in availability.periods.items():
        rendered = ", ".join(periods) if periods else T.AVAILABILITY_EMPTY[lang]
        lines.append(f"- {dataset}: {rendered}")
    if availability.notes:
        lines.append(f"{T.NOTES_LABEL[lang]}: {availability.notes}")
    return "\n".join(lines)


def _rules_block(lang: str, row_ceiling: int) -> str:
    rules = [r.format(row_ceiling=row_ceiling) for r in T.RULES[lang]]
    return "\n".join([T.RULES_HEADER[lang], *[f"- {r}" for r in rules]])


def render_prompt(inp: PlanPromptInput) -> PromptPair:
    """Render system/user messages. Pure: same input, same bytes."""
    lang = T.normalize_language(inp.language)

    sections = [
        f"{T.SCHEMA_HEADER[lang]}\n{inp.schema_text}",
        _availability_block(inp.availability, lang),
        _rules_block(lang, inp.row_ceiling),
        T.OUTPUT_FORMAT[lang],
        f"{T.QUESTION_LABEL[lang]}: {inp.question}",
    ]
    return PromptPair(system=T.SYSTEM[lang], user="\n\n".join(sections))


def build_prompt(
    question: str,
    language: str,
    schema_text: str,
    availability: Optional[AvailabilityInfo] = None,
    *,
    row_ceiling: int = 1000,
) -> PromptPair:
    return render_prompt(
        PlanPromptInput(
            question=question,
            language=language,
            schema_text=schema_text,
            availability=availability,
            row_ceiling=row_ceiling,
        )
    )
