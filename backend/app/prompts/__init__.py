"""Prompt template loader.

System prompts live as ``.txt`` templates in this package directory and use
``{{name}}`` placeholders. Placeholders without a matching variable are left
in place.
"""

from __future__ import annotations

import os
import re
from functools import lru_cache
from typing import Dict, List, Mapping, Optional

_DIR = os.path.dirname(__file__)

_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")

# Template name -> file in this directory
SYSTEM_TEMPLATES: Dict[str, str] = {
    "flashcard_generator": "flashcard_generator_system.txt",
    "general_assistant": "general_assistant_system.txt",
}

DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced")


@lru_cache(maxsize=32)
def _load(filename: str) -> str:
    """Read a template file, caching the result."""
    with open(os.path.join(_DIR, filename), encoding="utf-8") as f:
        return f.read().strip()


def render_template(template: str, variables: Optional[Mapping[str, str]] = None) -> str:
    """Substitute ``{{name}}`` placeholders from *variables*."""
    if not variables:
        return template

    def _sub(match: re.Match) -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_sub, template)


# ── Public helpers ────────────────────────────────────────


def get_system_prompt(template: str, variables: Optional[Mapping[str, str]] = None) -> str:
    """Return the system prompt body for a named template.

    Known names (``flashcard_generator``, ``general_assistant``) are loaded
    from disk; any other string is treated as the literal prompt body.
    """
    filename = SYSTEM_TEMPLATES.get(template)
    body = _load(filename) if filename else template
    return render_template(body, variables)


def build_flashcard_prompt(
    input_text: str,
    min_cards: int = 1,
    max_cards: int = 30,
    difficulty: str = "intermediate",
    focus_areas: Optional[List[str]] = None,
) -> str:
    """Build the user prompt asking for flashcards from *input_text*."""
    min_cards = min_cards or 1
    max_cards = max_cards or 30
    difficulty = difficulty or "intermediate"

    prompt = f"Generate {min_cards}-{max_cards} flashcards from the following text. "
    prompt += f"Target difficulty level: {difficulty}. "

    if focus_areas:
        prompt += f"Focus on these areas: {', '.join(focus_areas)}. "

    # Repeated here because some models drift into English otherwise
    prompt += "CRITICAL: Generate ALL flashcards in the EXACT SAME LANGUAGE as the input text below. "
    prompt += "Do not translate. Use the same language for both front and back of each flashcard. "

    prompt += "\n\nText to analyze:\n\n"
    prompt += input_text
    return prompt
