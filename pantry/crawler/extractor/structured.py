"""Structured-data tier: schema.org `Recipe` objects embedded as JSON-LD."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator

from bs4 import BeautifulSoup

from .duration import convert_duration
from .fields import RecipeFields
from .text import clean_text, strip_tags

LOGGER = logging.getLogger(__name__)

_LD_JSON_TYPE_RE = re.compile(r"application/ld\+json", re.IGNORECASE)
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


def iter_json_ld(document: BeautifulSoup) -> Iterator[Any]:
    """Yield each parseable JSON-LD payload in document order.

    A block that fails to parse is retried once with control characters
    replaced by spaces; raw newlines inside string literals are common.
    """

    for script in document.find_all("script", attrs={"type": _LD_JSON_TYPE_RE}):
        raw = (script.string or script.get_text() or "").strip()
        if not raw:
            continue
        try:
            yield json.loads(raw)
            continue
        except json.JSONDecodeError:
            pass
        try:
            yield json.loads(_CONTROL_CHARS_RE.sub(" ", raw))
        except json.JSONDecodeError as exc:
            LOGGER.debug("Skipping unparseable JSON-LD block: %s", exc)


def _is_recipe_type(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "recipe"
    if isinstance(value, list):
        return any(_is_recipe_type(item) for item in value)
    return False


def find_recipe_node(data: Any) -> dict[str, Any] | None:
    """Depth-first search for the first object whose `@type` is Recipe."""

    if isinstance(data, dict):
        if _is_recipe_type(data.get("@type")):
            return data
        for value in data.values():
            found = find_recipe_node(value)
            if found is not None:
                return found
    elif isinstance(data, list):
        for item in data:
            found = find_recipe_node(item)
            if found is not None:
                return found
    return None


def _as_text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return strip_tags(value)
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        for item in value:
            text = _as_text(item)
            if text:
                return text
        return ""
    if isinstance(value, dict):
        return _as_text(value.get("@value") or value.get("name") or value.get("text"))
    return ""


def _as_text_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [text for text in (_as_text(item) for item in value) if text]
    text = _as_text(value)
    return [text] if text else []


def _image_url(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        for item in value:
            url = _image_url(item)
            if url:
                return url
        return ""
    if isinstance(value, dict):
        for key in ("url", "contentUrl", "@id"):
            url = value.get(key)
            if isinstance(url, str) and url.strip():
                return url.strip()
    return ""


def _instruction_lines(value: Any) -> list[str]:
    """Flatten plain strings, HowToStep objects, and nested HowToSection lists."""

    if value is None:
        return []
    if isinstance(value, str):
        return [line for line in (strip_tags(part) for part in value.splitlines()) if line]
    if isinstance(value, list):
        lines: list[str] = []
        for item in value:
            lines.extend(_instruction_lines(item))
        return lines
    if isinstance(value, dict):
        if "itemListElement" in value:
            return _instruction_lines(value["itemListElement"])
        text = value.get("text") or value.get("name")
        return _instruction_lines(text) if isinstance(text, str) else []
    return []


def _servings(value: Any) -> str:
    if isinstance(value, list):
        for item in value:
            text = _servings(item)
            if text:
                return text
        return ""
    return _as_text(value)


def _calories(node: dict[str, Any]) -> str:
    nutrition = node.get("nutrition")
    if isinstance(nutrition, dict):
        text = _as_text(nutrition.get("calories"))
        if text:
            return text
    return _as_text(node.get("calories"))


def fields_from_recipe_node(node: dict[str, Any]) -> RecipeFields:
    """Map one schema.org Recipe object onto `RecipeFields`."""

    ingredients = node.get("recipeIngredient")
    if ingredients is None:
        ingredients = node.get("ingredients")

    return RecipeFields(
        name=_as_text(node.get("name")),
        description=_as_text(node.get("description")),
        image=_image_url(node.get("image")),
        prep_time=convert_duration(_as_text(node.get("prepTime"))),
        cook_time=convert_duration(_as_text(node.get("cookTime"))),
        total_time=convert_duration(_as_text(node.get("totalTime"))),
        calories=_calories(node),
        servings=_servings(node.get("recipeYield")),
        ingredients=[clean_text(item) for item in _as_text_list(ingredients)],
        instructions=_instruction_lines(node.get("recipeInstructions")),
        categories=_as_text_list(node.get("recipeCategory")) + _as_text_list(node.get("recipeCuisine")),
    )


def extract_structured(document: BeautifulSoup) -> RecipeFields:
    """Return fields from the first JSON-LD Recipe on the page, or an empty map."""

    for payload in iter_json_ld(document):
        node = find_recipe_node(payload)
        if node is not None:
            return fields_from_recipe_node(node)
    return RecipeFields()


__all__ = [
    "extract_structured",
    "fields_from_recipe_node",
    "find_recipe_node",
    "iter_json_ld",
]
