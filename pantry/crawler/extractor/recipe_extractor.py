"""Three-tier recipe extraction: structured data, site selectors, narrative text.

Fields are resolved independently. For each field the first tier that yields
a value wins, so a record may take its ingredients from JSON-LD and its
instructions from the narrative heuristics. Extraction never raises on
missing data; gaps stay empty and are judged later by the upsert gate.
"""

from __future__ import annotations

import logging
from typing import Sequence

from bs4 import BeautifulSoup

from ..profiles import DEFAULT_SITE_PROFILES, SiteProfile, find_profile
from ..types import ExtractedRecipe
from ..url import canonical_url, host_from_url, title_from_url
from .fields import RecipeFields
from .metadata import meta_description, meta_image, page_title
from .narrative import extract_narrative
from .selectors import extract_with_selectors
from .structured import extract_structured
from .text import clean_text, normalize_lines, text_blocks

LOGGER = logging.getLogger(__name__)


class RecipeExtractor:
    """Turn a parsed page into an `ExtractedRecipe`."""

    def __init__(self, profiles: Sequence[SiteProfile] = DEFAULT_SITE_PROFILES) -> None:
        self.profiles = tuple(profiles)

    def extract(
        self,
        document: BeautifulSoup,
        url: str,
        profile: SiteProfile | None = None,
    ) -> ExtractedRecipe:
        if profile is None:
            profile = find_profile(url, self.profiles)

        structured = extract_structured(document)
        selected = extract_with_selectors(document, profile)

        fields = RecipeFields()
        self._fill(fields, structured, "structured", url)
        self._fill(fields, selected, "selectors", url)
        if not fields.ingredients or not fields.instructions:
            self._fill(fields, extract_narrative(document), "narrative", url)

        title = selected.title or page_title(document)
        description = selected.description or meta_description(document) or structured.description
        image = structured.image or meta_image(document)

        title = clean_text(title) or title_from_url(url)
        name = clean_text(fields.name) or title

        return ExtractedRecipe(
            url=canonical_url(url) or url,
            title=title,
            name=name,
            description=clean_text(description),
            body="\n".join(text_blocks(document.body or document)),
            image=image,
            prep_time=clean_text(fields.prep_time),
            cook_time=clean_text(fields.cook_time),
            total_time=clean_text(fields.total_time),
            calories=clean_text(fields.calories),
            servings=clean_text(fields.servings),
            ingredients=normalize_lines(fields.ingredients),
            instructions=normalize_lines(fields.instructions, strip_steps=True),
            categories=normalize_lines(fields.categories),
            source_site=host_from_url(url),
        )

    @staticmethod
    def _fill(target: RecipeFields, source: RecipeFields, tier: str, url: str) -> None:
        filled = target.fill_from(source)
        if filled:
            LOGGER.debug("%s: %s tier filled %s", url, tier, ", ".join(filled))


__all__ = ["RecipeExtractor"]
