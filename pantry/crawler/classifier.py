"""Listing/detail classification and link worthiness for discovered URLs."""

from __future__ import annotations

import re
from typing import Iterable, Sequence
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from .profiles import DEFAULT_SITE_PROFILES, SiteProfile, find_profile
from .types import PageKind
from .url import is_allowed_domain, is_http_url, is_social_url, resolve_url


LISTING_PATTERNS = (
    "/recipes/",
    "/cooking/recipe-ideas/",
    "/recipe-ideas/",
    "/recipes-a-z/",
    "/category/",
    "/collections/",
    "/meal-type/",
    "/cuisines/",
    "/cooking-method/",
    "/holidays-events/",
)
RECIPE_INDICATORS = ("/recipe/", "/recipes/", "-recipe", "recipe-", "-recipes", "recipes-")
GENERIC_LINK_PATTERNS = (
    "/recipe/", "/recipes/", "/cooking/", "/food/", "/dish/", "/meal/",
    "recipe-ideas", "quick-and-easy", "chicken", "tacos", "pasta", "soup",
    "dessert", "breakfast", "lunch", "dinner", "appetizer", "snack",
    "vegetarian", "vegan", "healthy", "easy",
)
NUMERIC_ID_RE = re.compile(r"/\d{3,}/[^/]+")


def _path_probe(url: str) -> str:
    path = urlsplit(url).path or "/"
    return path if path.endswith("/") else path + "/"


class URLClassifier:
    """Classify pages and filter discovered links.

    Classification is advisory: a detail page still needs to pass upsert
    validation to be stored, and a listing page only contributes links.
    """

    def __init__(
        self,
        profiles: Sequence[SiteProfile] = DEFAULT_SITE_PROFILES,
        *,
        allowed_domains: Iterable[str] = (),
    ) -> None:
        self.profiles = tuple(profiles)
        self.allowed_domains = tuple(allowed_domains)

    def profile_for(self, url: str) -> SiteProfile | None:
        return find_profile(url, self.profiles)

    def classify(self, url: str) -> PageKind:
        """Return LISTING for category/index URLs and DETAIL for everything else."""

        return PageKind.LISTING if self.is_listing(url) else PageKind.DETAIL

    @staticmethod
    def is_listing(url: str) -> bool:
        """True when the path holds a listing pattern with at most one segment after it."""

        probe = _path_probe(url)
        for pattern in LISTING_PATTERNS:
            index = probe.find(pattern)
            if index < 0:
                continue
            remainder = probe[index + len(pattern):]
            if len([segment for segment in remainder.split("/") if segment]) <= 1:
                return True
        return False

    def is_likely_recipe(self, url: str) -> bool:
        """Best-effort check that a URL leads to a single recipe page."""

        path = urlsplit(url).path or "/"
        if any(indicator in path for indicator in RECIPE_INDICATORS):
            return True
        if NUMERIC_ID_RE.search(path):
            return True

        profile = self.profile_for(url)
        if profile is None or not profile.detail_indicators:
            return False
        if not any(indicator in path for indicator in profile.detail_indicators):
            return False
        if profile.detail_min_slashes is not None and path.count("/") < profile.detail_min_slashes:
            return False
        if profile.detail_excludes_listing and self.is_listing(url):
            return False
        return True

    def is_crawl_worthy(self, url: str) -> bool:
        """Decide whether a resolved, absolute link should be enqueued."""

        if not is_http_url(url) or is_social_url(url):
            return False
        if not is_allowed_domain(url, self.allowed_domains):
            return False

        path = (urlsplit(url).path or "/").lower()
        profile = self.profile_for(url)
        if profile is not None and any(pattern in path for pattern in profile.url_patterns):
            return True
        if any(pattern in path for pattern in GENERIC_LINK_PATTERNS):
            return True
        return self.is_listing(url) or self.is_likely_recipe(url)

    def discover_links(self, document: BeautifulSoup, page_url: str) -> list[str]:
        """Return crawl-worthy absolute links in document order, duplicates removed.

        Pages with a site profile use its link selectors; other pages scan
        every anchor in the body.
        """

        profile = self.profile_for(page_url)
        if profile is not None and profile.link_selectors:
            anchors = document.select(", ".join(profile.link_selectors))
        else:
            root = document.body or document
            anchors = root.find_all(["a", "area"], href=True)

        links: list[str] = []
        seen: set[str] = set()
        for anchor in anchors:
            resolved = resolve_url(page_url, anchor.get("href"))
            if not resolved or resolved in seen:
                continue
            seen.add(resolved)
            if self.is_crawl_worthy(resolved):
                links.append(resolved)
        return links


__all__ = [
    "GENERIC_LINK_PATTERNS",
    "LISTING_PATTERNS",
    "RECIPE_INDICATORS",
    "URLClassifier",
]
