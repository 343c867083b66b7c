"""Prompt contracts and rendering for the planning completion call."""

from .contracts import PlanPromptInput, PromptPair
from .builder import build_prompt, render_prompt

__all__ = [
    "PlanPromptInput",
    "PromptPair",
    "build_prompt",
    "render_prompt",
]
