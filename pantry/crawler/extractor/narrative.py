"""Narrative-text tier: line heuristics for prose-style blog recipes."""

from __future__ import annotations

import logging
import re

import trafilatura
from bs4 import BeautifulSoup

from .fields import RecipeFields
from .text import text_blocks

LOGGER = logging.getLogger(__name__)

CONTENT_CONTAINER_SELECTOR = ".entry-content, .post-content, .content"
UNIT_RE = re.compile(
    r"\b(?:cups?|tablespoons?|teaspoons?|pounds?|ounces?|grams?)\b",
    re.IGNORECASE,
)
ACTION_VERB_RE = re.compile(r"\b(?:mix|combine|heat|bake|cook|add|stir|pour)\w*", re.IGNORECASE)

MAX_INGREDIENT_CHARS = 200
MIN_INSTRUCTION_CHARS = 20
MAX_INSTRUCTION_CHARS = 500


def is_ingredient_line(line: str) -> bool:
    return len(line) < MAX_INGREDIENT_CHARS and UNIT_RE.search(line) is not None


def is_instruction_line(line: str) -> bool:
    return (
        MIN_INSTRUCTION_CHARS < len(line) < MAX_INSTRUCTION_CHARS
        and ACTION_VERB_RE.search(line) is not None
    )


def _extract_main_text(html_text: str) -> tuple[str, str | None]:
    try:
        extracted = trafilatura.extract(
            html_text,
            output_format="txt",
            include_comments=False,
            include_tables=True,
            include_images=False,
            deduplicate=True,
            favor_precision=True,
        )
        return (extracted or "").strip(), None
    except Exception as exc:
        return "", f"Trafilatura extraction failed: {exc.__class__.__name__}: {exc}"


def narrative_lines(document: BeautifulSoup) -> list[str]:
    """Visible text lines to scan, from the most specific source available.

    Order: known blog content containers, then trafilatura's main-text
    extraction, then every block of the page body.
    """

    lines = [line for container in document.select(CONTENT_CONTAINER_SELECTOR) for line in text_blocks(container)]
    if lines:
        return lines

    main_text, error = _extract_main_text(str(document))
    if error:
        LOGGER.debug(error)
    lines = [line.strip() for line in main_text.splitlines() if line.strip()]
    if lines:
        return lines

    return text_blocks(document.body or document)


def extract_narrative(document: BeautifulSoup) -> RecipeFields:
    """Pick ingredient-like and instruction-like lines out of free text."""

    ingredients: list[str] = []
    instructions: list[str] = []
    for line in narrative_lines(document):
        if is_ingredient_line(line):
            ingredients.append(line)
        if is_instruction_line(line):
            instructions.append(line)
    return RecipeFields(ingredients=ingredients, instructions=instructions)


__all__ = [
    "ACTION_VERB_RE",
    "UNIT_RE",
    "extract_narrative",
    "is_ingredient_line",
    "is_instruction_line",
    "narrative_lines",
]
