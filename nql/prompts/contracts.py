from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from nql.types import AvailabilityInfo


# NOTE:
# These are *prompt contracts* (input/output shapes) for the completion call.
# Rendering lives in builder.py; text fragments live in templates.py.


@dataclass(frozen=True)
class PlanPromptInput:
    question: str
    language: str
    schema_text: str  # already restricted to table hints upstream
    availability: Optional[AvailabilityInfo] = None
    row_ceiling: int = 1000


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str
