"""Site-profile tier: CSS selector rules per field, with generic microdata fallbacks."""

from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..profiles import FieldSelectors, SiteProfile
from .duration import convert_duration
from .fields import RecipeFields
from .text import element_text

GENERIC_SELECTORS = FieldSelectors(
    title=None,
    description="[itemprop='description'], .wprm-recipe-summary, .tasty-recipes-description",
    ingredients=(
        "[itemprop='recipeIngredient'], [itemprop='ingredients'], "
        ".wprm-recipe-ingredient, .tasty-recipes-ingredients li, "
        ".recipe-ingredients li, .ingredients li"
    ),
    instructions=(
        "li[itemprop='recipeInstructions'], [itemprop='recipeInstructions'] li, "
        "[itemprop='recipeInstructions'] [itemprop='text'], "
        ".wprm-recipe-instruction-text, .tasty-recipes-instructions li, "
        ".recipe-instructions li, .instructions li"
    ),
    time="[itemprop='totalTime'], .wprm-recipe-total_time-container, .recipe-time, .total-time",
    servings="[itemprop='recipeYield'], .wprm-recipe-servings, .recipe-servings, .servings",
)
GENERIC_PREP_TIME_SELECTOR = "[itemprop='prepTime']"
GENERIC_COOK_TIME_SELECTOR = "[itemprop='cookTime']"


def _time_value(element: Tag) -> str:
    for attr in ("content", "datetime"):
        value = element.get(attr)
        if isinstance(value, str) and value.strip():
            return convert_duration(value)
    return element_text(element)


def _first_text(document: BeautifulSoup, selector: str | None) -> str:
    if not selector:
        return ""
    for element in document.select(selector):
        text = element_text(element)
        if text:
            return text
    return ""


def _first_time(document: BeautifulSoup, selector: str | None) -> str:
    if not selector:
        return ""
    for element in document.select(selector):
        value = _time_value(element)
        if value:
            return value
    return ""


def _all_texts(document: BeautifulSoup, selector: str | None) -> list[str]:
    if not selector:
        return []
    return [text for text in (element_text(element) for element in document.select(selector)) if text]


def apply_selectors(document: BeautifulSoup, selectors: FieldSelectors) -> RecipeFields:
    """Run one selector table against a document."""

    return RecipeFields(
        title=_first_text(document, selectors.title),
        description=_first_text(document, selectors.description),
        ingredients=_all_texts(document, selectors.ingredients),
        instructions=_all_texts(document, selectors.instructions),
        total_time=_first_time(document, selectors.time),
        servings=_first_text(document, selectors.servings),
    )


def extract_with_selectors(document: BeautifulSoup, profile: SiteProfile | None) -> RecipeFields:
    """Apply the profile's selectors, then generic selectors for fields still empty."""

    fields = apply_selectors(document, profile.selectors) if profile is not None else RecipeFields()
    fields.fill_from(apply_selectors(document, GENERIC_SELECTORS))
    if not fields.prep_time:
        fields.prep_time = _first_time(document, GENERIC_PREP_TIME_SELECTOR)
    if not fields.cook_time:
        fields.cook_time = _first_time(document, GENERIC_COOK_TIME_SELECTOR)
    return fields


__all__ = [
    "GENERIC_SELECTORS",
    "apply_selectors",
    "extract_with_selectors",
]
