"""Per-site selector tables.

Each `SiteProfile` maps a domain to the CSS selectors used for field
extraction and link discovery, plus the URL shapes that mark its recipe
detail pages. Adding a site is a data change: append a profile here or load
extra profiles from a YAML/JSON file with `load_site_profiles`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import soupsieve

from .config import read_mapping_file
from .types import JSONDict
from .url import host_from_url


FIELD_NAMES = ("title", "description", "ingredients", "instructions", "time", "servings")
DEFAULT_LINK_SELECTORS = ("a[href*='/recipe/']", "a[href*='/recipes/']")
DEFAULT_URL_PATTERNS = ("/recipe/", "/recipes/")


@dataclass(frozen=True, slots=True)
class FieldSelectors:
    """CSS selector per extractable field; `None` means no rule for that field."""

    title: str | None = None
    description: str | None = None
    ingredients: str | None = None
    instructions: str | None = None
    time: str | None = None
    servings: str | None = None

    def get(self, name: str) -> str | None:
        return getattr(self, name)

    def to_json(self) -> JSONDict:
        return {name: self.get(name) for name in FIELD_NAMES}


@dataclass(frozen=True, slots=True)
class SiteProfile:
    """Extraction and classification rules for one recipe site."""

    domain: str
    url_patterns: tuple[str, ...] = DEFAULT_URL_PATTERNS
    selectors: FieldSelectors = field(default_factory=FieldSelectors)
    link_selectors: tuple[str, ...] = DEFAULT_LINK_SELECTORS
    detail_indicators: tuple[str, ...] = ()
    detail_min_slashes: int | None = None
    detail_excludes_listing: bool = False

    def matches_host(self, url: str) -> bool:
        return self.domain in host_from_url(url)

    def to_json(self) -> JSONDict:
        return {
            "domain": self.domain,
            "url_patterns": list(self.url_patterns),
            "selectors": self.selectors.to_json(),
            "link_selectors": list(self.link_selectors),
            "detail_indicators": list(self.detail_indicators),
            "detail_min_slashes": self.detail_min_slashes,
            "detail_excludes_listing": self.detail_excludes_listing,
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "SiteProfile":
        domain = str(payload.get("domain", "")).strip().lower()
        if domain.startswith("www."):
            domain = domain[4:]
        if not domain:
            raise ValueError(f"Site profile missing 'domain': {payload!r}")

        raw_selectors = payload.get("selectors") or {}
        if not isinstance(raw_selectors, Mapping):
            raise ValueError(f"Site profile '{domain}' has invalid 'selectors'")
        unknown = set(raw_selectors) - set(FIELD_NAMES)
        if unknown:
            raise ValueError(f"Site profile '{domain}' has unknown selector fields: {sorted(unknown)}")

        for selector in [*raw_selectors.values(), *payload.get("link_selectors", ())]:
            if selector:
                try:
                    soupsieve.compile(str(selector))
                except soupsieve.SelectorSyntaxError as exc:
                    raise ValueError(f"Site profile '{domain}' has invalid selector {selector!r}: {exc}") from exc

        min_slashes = payload.get("detail_min_slashes")
        return cls(
            domain=domain,
            url_patterns=tuple(str(item) for item in payload.get("url_patterns", DEFAULT_URL_PATTERNS)),
            selectors=FieldSelectors(
                **{key: (None if value is None else str(value)) for key, value in raw_selectors.items()}
            ),
            link_selectors=tuple(
                str(item) for item in payload.get("link_selectors", DEFAULT_LINK_SELECTORS)
            ),
            detail_indicators=tuple(str(item) for item in payload.get("detail_indicators", ())),
            detail_min_slashes=None if min_slashes is None else int(min_slashes),
            detail_excludes_listing=bool(payload.get("detail_excludes_listing", False)),
        )


def _blog_profile(domain: str, **overrides: str) -> SiteProfile:
    selectors = {
        "title": "h1.entry-title, h1.recipe-title",
        "description": ".recipe-description, .entry-summary",
        "ingredients": ".recipe-ingredients li, .ingredients li",
        "instructions": ".recipe-instructions li, .instructions li",
        "time": ".recipe-time, .prep-time, .cook-time",
        "servings": ".recipe-servings, .servings",
    }
    selectors.update(overrides)
    return SiteProfile(domain=domain, selectors=FieldSelectors(**selectors))


DEFAULT_SITE_PROFILES: tuple[SiteProfile, ...] = (
    _blog_profile(
        "pinchofyum.com",
        description=".recipe-description, .entry-content p:first-of-type",
        ingredients=".recipe-ingredients li, .wp-block-recipe-card-ingredients li",
        instructions=".recipe-instructions li, .wp-block-recipe-card-instructions li",
    ),
    _blog_profile(
        "minimalistbaker.com",
        ingredients=".recipe-ingredients li, ul.ingredients li",
        instructions=".recipe-instructions li, ol.instructions li",
        time=".recipe-time, .prep-time, .total-time",
        servings=".recipe-servings, .yield",
    ),
    _blog_profile("cookieandkate.com"),
    _blog_profile("loveandlemons.com"),
    SiteProfile(
        domain="smittenkitchen.com",
        url_patterns=("/recipe/", "/recipes/", "/blog/", "/20"),
        selectors=FieldSelectors(
            title="h1.entry-title, h1.recipe-title, h1, .post-title",
            description=".recipe-description, .entry-summary, .entry-content p:first-of-type",
            ingredients=(
                ".recipe-ingredients li, .ingredients li, "
                ".entry-content p:-soup-contains('cup'), "
                ".entry-content p:-soup-contains('tablespoon'), "
                ".entry-content p:-soup-contains('teaspoon')"
            ),
            instructions=(
                ".recipe-instructions li, .instructions li, "
                ".entry-content p:-soup-contains('mix'), "
                ".entry-content p:-soup-contains('combine'), "
                ".entry-content p:-soup-contains('heat')"
            ),
            time=(
                ".recipe-time, .prep-time, .cook-time, "
                ".entry-content p:-soup-contains('minute'), .entry-content p:-soup-contains('hour')"
            ),
            servings=(
                ".recipe-servings, .servings, "
                ".entry-content p:-soup-contains('serve'), .entry-content p:-soup-contains('yield')"
            ),
        ),
        link_selectors=DEFAULT_LINK_SELECTORS + ("a[href*='/blog/']", "a[href*='/20']"),
    ),
    _blog_profile(
        "seriouseats.com",
        title="h1.heading__title, h1.recipe-title",
        description=".recipe-about, .recipe-description",
        ingredients=".recipe-ingredients li, .structured-ingredients__list-item",
        instructions=".recipe-procedures li, .recipe-instructions li",
        time=".recipe-time, .total-time, .active-time",
        servings=".recipe-yield, .servings",
    ),
    _blog_profile("halfbakedharvest.com"),
    _blog_profile("101cookbooks.com"),
    _blog_profile(
        "food52.com",
        title="h1, .recipe-title, .recipe-header-title, [data-testid='recipe-title']",
        description=".recipe-summary, .recipe-description, .recipe-intro, .recipe-about, .intro",
        ingredients=(
            ".recipe-ingredients li, .ingredients li, .ingredient-list li, "
            "[data-testid='ingredient'], .recipe-ingredient"
        ),
        instructions=(
            ".recipe-instructions li, .instructions li, .direction-list li, "
            "[data-testid='instruction'], .recipe-instruction, .recipe-method li"
        ),
        time=".recipe-time, .prep-time, .cook-time, .total-time, [data-testid='recipe-time']",
        servings=".recipe-servings, .servings, .yield, [data-testid='servings']",
    ),
    _blog_profile("budgetbytes.com"),
    _blog_profile("thewoksoflife.com"),
    SiteProfile(domain="delish.com", detail_indicators=("/recipe/", "/recipes/")),
    SiteProfile(
        domain="allrecipes.com",
        detail_indicators=("/recipe/", "/recipes/"),
        detail_excludes_listing=True,
    ),
    SiteProfile(domain="foodnetwork.com", detail_indicators=("/recipes/",), detail_min_slashes=3),
    SiteProfile(
        domain="epicurious.com",
        detail_indicators=("/recipes/",),
        detail_excludes_listing=True,
    ),
    SiteProfile(domain="simplyrecipes.com", detail_indicators=("/recipes/",), detail_min_slashes=3),
)


def find_profile(url: str, profiles: Iterable[SiteProfile] = DEFAULT_SITE_PROFILES) -> SiteProfile | None:
    """Return the first profile whose domain is contained in the URL's host."""

    for profile in profiles:
        if profile.matches_host(url):
            return profile
    return None


def merge_profiles(
    base: Sequence[SiteProfile],
    extra: Sequence[SiteProfile],
) -> tuple[SiteProfile, ...]:
    """Overlay `extra` on `base`; a profile in `extra` replaces one with the same domain."""

    merged = {profile.domain: profile for profile in base}
    for profile in extra:
        merged[profile.domain] = profile
    return tuple(merged.values())


def load_site_profiles(
    path: str | Path,
    *,
    base: Sequence[SiteProfile] = DEFAULT_SITE_PROFILES,
) -> tuple[SiteProfile, ...]:
    """Load profiles from a JSON/YAML file with a top-level `profiles` list."""

    payload = read_mapping_file(path)
    raw_profiles = payload.get("profiles") or []
    if not isinstance(raw_profiles, list):
        raise ValueError(f"'profiles' in {path} must be a list")
    return merge_profiles(base, [SiteProfile.from_json(item) for item in raw_profiles])


__all__ = [
    "DEFAULT_SITE_PROFILES",
    "FIELD_NAMES",
    "FieldSelectors",
    "SiteProfile",
    "find_profile",
    "load_site_profiles",
    "merge_profiles",
]
