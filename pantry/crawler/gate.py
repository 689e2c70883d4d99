"""Dedup & upsert gate between extraction and the search backend.

`create` validates a record and refuses it when the same URL, or a fuzzily
equal title, is already stored. `update` refreshes an existing record and
re-runs the same dedup checks for changed URL/title values. `upsert` glues
the two together for the crawler: a duplicate is routed to `update`.

The title checks are best-effort, not serializable: two workers racing on
the same new page can both pass them. Record ids are derived from the
canonical URL, so the backend's create-only `index` rejects the loser.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from ..search.backend import (
    ConflictError,
    DocumentExistsError,
    NotFoundError,
    SearchBackend,
    SearchBackendError,
    SearchQuery,
)
from .backup import RecipeBackup
from .config import CrawlConfig
from .constants import (
    DEFAULT_SIMILARITY_THRESHOLD,
    DEFAULT_UPDATE_BACKOFF_SECONDS,
    DEFAULT_UPDATE_RETRIES,
)
from .dedup import normalize_title, record_id_for, title_similarity
from .types import ExtractedRecipe, UpsertAction, UpsertResult, utc_now_iso
from .url import canonical_url, host_from_url, is_allowed_domain, is_http_url

LOGGER = logging.getLogger(__name__)

INGREDIENTS_PLACEHOLDER = "Ingredients mentioned in page but not structured"
INSTRUCTIONS_PLACEHOLDER = "Instructions mentioned in page but not structured"
INSTRUCTION_KEYWORD_RE = re.compile(r"direction|instruction|steps|method|preparation", re.IGNORECASE)
TITLE_LOOKUP_FIELDS = ("title", "name")
TITLE_LOOKUP_SIZE = 5


class CreateOutcome(str, Enum):
    CREATED = "created"
    DUPLICATE_URL = "duplicate_url"
    DUPLICATE_TITLE = "duplicate_title"
    FAILED = "failed"


class UpdateOutcome(str, Enum):
    UPDATED = "updated"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    FAILED = "failed"


def _record_from_source(doc_id: str, source: Mapping[str, Any]) -> ExtractedRecipe:
    record = ExtractedRecipe.from_json(source)
    return record if record.id else replace(record, id=doc_id)


class UpsertGate:
    """Validation, dedup, and persistence for extracted recipes."""

    def __init__(
        self,
        backend: SearchBackend,
        *,
        allowed_domains: Iterable[str] = (),
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        update_retries: int = DEFAULT_UPDATE_RETRIES,
        update_backoff_seconds: float = DEFAULT_UPDATE_BACKOFF_SECONDS,
        backup: RecipeBackup | None = None,
        now: Callable[[], str] = utc_now_iso,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not 0.0 < similarity_threshold <= 1.0:
            raise ValueError("similarity_threshold must be in (0, 1]")
        self.backend = backend
        self.allowed_domains = tuple(allowed_domains)
        self.similarity_threshold = similarity_threshold
        self.update_retries = max(0, update_retries)
        self.update_backoff_seconds = max(0.0, update_backoff_seconds)
        self.backup = backup
        self._now = now
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        backend: SearchBackend,
        config: CrawlConfig,
        **overrides: Any,
    ) -> "UpsertGate":
        options: dict[str, Any] = {
            "allowed_domains": config.allowed_domains,
            "similarity_threshold": config.similarity_threshold,
            "update_retries": config.update_retries,
            "update_backoff_seconds": config.update_backoff_seconds,
            "backup": RecipeBackup(config.backup_dir) if config.backup_dir else None,
        }
        options.update(overrides)
        return cls(backend, **options)

    # Validation

    def validate(
        self,
        record: ExtractedRecipe,
        *,
        likely_recipe: bool = False,
    ) -> tuple[ExtractedRecipe | None, str | None]:
        """Return `(record, None)` when storable, else `(None, reason)`.

        When `likely_recipe` is set and a list is empty but the page text
        mentions it, the list is replaced by a one-line placeholder instead
        of being treated as missing.
        """

        if not record.display_name.strip():
            return None, "missing name and title"

        url = canonical_url(record.url) if record.url else None
        if url is None or not is_http_url(url):
            return None, f"invalid URL {record.url!r}"
        if not is_allowed_domain(url, self.allowed_domains):
            return None, f"URL outside allowed domains: {url}"

        body = record.body or ""
        body_mentions_ingredients = "ingredient" in body.lower()
        body_mentions_instructions = INSTRUCTION_KEYWORD_RE.search(body) is not None

        has_ingredients = bool(record.ingredients) or body_mentions_ingredients
        has_instructions = bool(record.instructions) or body_mentions_instructions
        if not has_ingredients and not has_instructions:
            return None, "insufficient recipe data: no ingredients or instructions"

        ingredients = list(record.ingredients)
        instructions = list(record.instructions)
        if likely_recipe:
            if not ingredients and body_mentions_ingredients:
                ingredients = [INGREDIENTS_PLACEHOLDER]
            if not instructions and body_mentions_instructions:
                instructions = [INSTRUCTIONS_PLACEHOLDER]

        return replace(record, url=url, ingredients=ingredients, instructions=instructions), None

    # Lookups

    def find_by_url(self, url: str, *, exclude_id: str | None = None) -> ExtractedRecipe | None:
        """Exact keyword lookup on the stored canonical URL."""

        normalized = canonical_url(url) or url
        results = self.backend.search(SearchQuery(terms={"url": normalized}, size=2))
        for hit in results:
            if hit.id != exclude_id:
                return _record_from_source(hit.id, hit.source)
        return None

    def find_existing(
        self,
        title: str,
        *,
        exclude_id: str | None = None,
    ) -> tuple[bool, ExtractedRecipe | None]:
        """Return the best stored record whose title/name is similar enough to `title`."""

        normalized = normalize_title(title)
        if not normalized:
            return False, None

        try:
            results = self.backend.search(
                SearchQuery(
                    text=normalized,
                    fields=TITLE_LOOKUP_FIELDS,
                    fuzzy=True,
                    size=TITLE_LOOKUP_SIZE,
                )
            )
        except SearchBackendError as exc:
            LOGGER.warning("Failed to check for existing title %r: %s", title, exc)
            return False, None

        best: ExtractedRecipe | None = None
        best_score = 0.0
        for hit in results:
            if hit.id == exclude_id:
                continue
            score = max(
                title_similarity(title, str(hit.source.get("title") or "")),
                title_similarity(title, str(hit.source.get("name") or "")),
            )
            if score >= self.similarity_threshold and score > best_score:
                best = _record_from_source(hit.id, hit.source)
                best_score = score

        if best is not None:
            LOGGER.info("Found similar title (%.2f similarity): %r ~ %r", best_score, title, best.display_name)
            return True, best
        return False, None

    # Create

    def create(self, record: ExtractedRecipe) -> bool:
        """Validate, dedup, and store a new record; False on any rejection."""

        validated, reason = self.validate(record)
        if validated is None:
            LOGGER.warning("Rejected %s: %s", record.url, reason)
            return False
        outcome, _, _ = self._create(validated)
        return outcome == CreateOutcome.CREATED

    def _create(
        self,
        record: ExtractedRecipe,
    ) -> tuple[CreateOutcome, ExtractedRecipe | None, str | None]:
        try:
            existing = self.find_by_url(record.url)
        except SearchBackendError as exc:
            LOGGER.error("URL lookup failed for %s: %s", record.url, exc)
            return CreateOutcome.FAILED, None, str(exc)
        if existing is not None:
            return CreateOutcome.DUPLICATE_URL, existing, f"URL already stored as {existing.id}"

        for candidate in dict.fromkeys(value for value in (record.title, record.name) if value):
            found, similar = self.find_existing(candidate)
            if found:
                return CreateOutcome.DUPLICATE_TITLE, similar, f"similar title {similar.display_name!r}"

        stored = replace(record, id=record_id_for(record.url), crawl_date=self._now())
        try:
            self.backend.index(stored.id, stored.to_json(), refresh=True)
        except DocumentExistsError:
            try:
                existing = _record_from_source(stored.id, self.backend.get(stored.id))
            except SearchBackendError:
                existing = None
            return CreateOutcome.DUPLICATE_URL, existing, f"id {stored.id} already stored"
        except SearchBackendError as exc:
            LOGGER.error("Failed to store %s: %s", record.url, exc)
            return CreateOutcome.FAILED, None, str(exc)

        LOGGER.info("Stored recipe %s (%s): %s", stored.id, stored.display_name, stored.url)
        if self.backup is not None:
            self.backup.save(stored)
        return CreateOutcome.CREATED, stored, None

    # Update

    def update(self, doc_id: str, fields: Mapping[str, Any]) -> bool:
        """Apply partial `fields` to a stored record; `crawl_date` is always refreshed."""

        outcome, _ = self._update(doc_id, fields)
        return outcome == UpdateOutcome.UPDATED

    def _update(self, doc_id: str, fields: Mapping[str, Any]) -> tuple[UpdateOutcome, str | None]:
        # source_site always follows the stored url.
        changes = {
            key: value
            for key, value in fields.items()
            if key not in {"id", "crawl_date", "source_site"}
        }

        try:
            current = self.backend.get(doc_id)
        except NotFoundError:
            LOGGER.warning("Cannot update %s: record not found", doc_id)
            return UpdateOutcome.NOT_FOUND, "record not found"
        except SearchBackendError as exc:
            LOGGER.error("Cannot update %s: %s", doc_id, exc)
            return UpdateOutcome.FAILED, str(exc)

        if "url" in changes:
            new_url = canonical_url(str(changes["url"]))
            if new_url is None or not is_http_url(new_url):
                return UpdateOutcome.INVALID, f"invalid URL {changes['url']!r}"
            changes["url"] = new_url
            if new_url == current.get("url"):
                del changes["url"]
            else:
                try:
                    clash = self.find_by_url(new_url, exclude_id=doc_id)
                except SearchBackendError as exc:
                    return UpdateOutcome.FAILED, str(exc)
                if clash is not None:
                    return UpdateOutcome.DUPLICATE, f"URL already stored as {clash.id}"
                changes["source_site"] = host_from_url(new_url)

        if "title" in changes:
            new_title = str(changes["title"])
            if new_title == current.get("title"):
                del changes["title"]
            else:
                found, similar = self.find_existing(new_title, exclude_id=doc_id)
                if found:
                    return UpdateOutcome.DUPLICATE, f"similar title {similar.display_name!r}"
                changes.setdefault("name", new_title)

        changes["crawl_date"] = self._now()

        for attempt in range(self.update_retries + 1):
            try:
                self.backend.update(
                    doc_id,
                    changes,
                    refresh=True,
                    retry_on_conflict=self.update_retries,
                )
                LOGGER.info("Updated recipe %s (%s)", doc_id, ", ".join(sorted(changes)))
                return UpdateOutcome.UPDATED, None
            except ConflictError as exc:
                if attempt >= self.update_retries:
                    LOGGER.error("Giving up on %s after %d conflicts: %s", doc_id, attempt + 1, exc)
                    return UpdateOutcome.FAILED, str(exc)
                delay = self.update_backoff_seconds * (2 ** attempt)
                LOGGER.debug("Conflict updating %s, retrying in %.2fs", doc_id, delay)
                if delay > 0:
                    self._sleep(delay)
            except NotFoundError:
                return UpdateOutcome.NOT_FOUND, "record not found"
            except SearchBackendError as exc:
                LOGGER.error("Failed to update %s: %s", doc_id, exc)
                return UpdateOutcome.FAILED, str(exc)

        return UpdateOutcome.FAILED, "update retries exhausted"

    # Crawler entry point

    def upsert(self, record: ExtractedRecipe, *, likely_recipe: bool = False) -> UpsertResult:
        """Create `record`, or merge it into the stored duplicate it collides with."""

        validated, reason = self.validate(record, likely_recipe=likely_recipe)
        if validated is None:
            LOGGER.warning("Rejected %s: %s", record.url, reason)
            return UpsertResult(UpsertAction.REJECTED_INVALID, reason=reason)

        outcome, existing, reason = self._create(validated)
        if outcome == CreateOutcome.CREATED:
            return UpsertResult(UpsertAction.CREATED, record_id=existing.id if existing else None)
        if outcome == CreateOutcome.FAILED:
            return UpsertResult(UpsertAction.FAILED, reason=reason)

        LOGGER.warning("Duplicate %s: %s", validated.url, reason)
        if existing is None:
            return UpsertResult(UpsertAction.REJECTED_DUPLICATE, reason=reason)

        fields = validated.update_fields()
        if outcome == CreateOutcome.DUPLICATE_TITLE:
            # Stored title and name stay; content fields follow the newer page.
            fields.pop("title", None)
            fields.pop("name", None)
        update_outcome, update_reason = self._update(existing.id, fields)
        if update_outcome == UpdateOutcome.UPDATED:
            return UpsertResult(UpsertAction.UPDATED, record_id=existing.id, reason=reason)
        if update_outcome == UpdateOutcome.FAILED:
            return UpsertResult(UpsertAction.FAILED, record_id=existing.id, reason=update_reason)
        return UpsertResult(UpsertAction.REJECTED_DUPLICATE, record_id=existing.id, reason=update_reason)


__all__ = [
    "CreateOutcome",
    "INGREDIENTS_PLACEHOLDER",
    "INSTRUCTIONS_PLACEHOLDER",
    "UpdateOutcome",
    "UpsertGate",
]
