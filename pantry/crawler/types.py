"""Core type definitions for the recipe crawler.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from bs4 import BeautifulSoup


class PageKind(str, Enum):
    """How a URL is treated once fetched."""

    LISTING = "listing"
    DETAIL = "detail"


class FetchErrorKind(str, Enum):
    """Typed fetch failure categories."""

    INVALID_URL = "invalid_url"
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    PARSE = "parse"


class UpsertAction(str, Enum):
    """What the upsert gate did with one extracted record."""

    CREATED = "created"
    UPDATED = "updated"
    REJECTED_INVALID = "rejected_invalid"
    REJECTED_DUPLICATE = "rejected_duplicate"
    FAILED = "failed"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for records and logs."""

    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


@dataclass(frozen=True, slots=True)
class CrawlTask:
    """One unit of crawl work: a URL and its distance from the seed."""

    url: str
    depth: int
    referrer: str | None = None
    discovered_at: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class FetchResult:
    """Result of attempting to download and parse one URL."""

    requested_url: str
    final_url: str | None = None
    status_code: int | None = None
    content_type: str | None = None
    body: bytes | None = None
    document: "BeautifulSoup | None" = None
    error_kind: FetchErrorKind | None = None
    error: str | None = None
    attempts: int = 0
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None and self.status_code == 200 and self.document is not None

    @property
    def url(self) -> str:
        return self.final_url or self.requested_url


@dataclass(frozen=True, slots=True)
class ExtractedRecipe:
    """The normalized recipe record stored in the search backend."""

    url: str
    title: str = ""
    name: str = ""
    description: str = ""
    body: str = ""
    image: str = ""
    prep_time: str = ""
    cook_time: str = ""
    total_time: str = ""
    calories: str = ""
    servings: str = ""
    ingredients: list[str] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    source_site: str = ""
    crawl_date: str | None = None
    id: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.title

    def to_json(self) -> JSONDict:
        return {
            "id": self.id,
            "title": self.title,
            "name": self.name,
            "description": self.description,
            "body": self.body,
            "url": self.url,
            "image": self.image,
            "prep_time": self.prep_time,
            "cook_time": self.cook_time,
            "total_time": self.total_time,
            "calories": self.calories,
            "servings": self.servings,
            "ingredients": list(self.ingredients),
            "instructions": list(self.instructions),
            "categories": list(self.categories),
            "source_site": self.source_site,
            "crawl_date": self.crawl_date,
        }

    def update_fields(self) -> dict[str, Any]:
        """Return the non-empty content fields used to refresh a stored record."""

        payload = self.to_json()
        for key in ("id", "url", "crawl_date"):
            payload.pop(key, None)
        return {key: value for key, value in payload.items() if value}

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "ExtractedRecipe":
        known = {item.name for item in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in payload.items():
            if key not in known or value is None:
                continue
            if key in {"ingredients", "instructions", "categories"}:
                if isinstance(value, str):
                    value = [value] if value.strip() else []
                values[key] = [str(item) for item in value]
            else:
                values[key] = value
        if "url" not in values:
            values["url"] = ""
        return cls(**values)


@dataclass(frozen=True, slots=True)
class UpsertResult:
    """Outcome of submitting one record to the upsert gate."""

    action: UpsertAction
    record_id: str | None = None
    reason: str | None = None

    @property
    def stored(self) -> bool:
        return self.action in {UpsertAction.CREATED, UpsertAction.UPDATED}


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    frontier_enqueued: int = 0
    frontier_skipped_seen: int = 0
    frontier_skipped_depth: int = 0
    frontier_skipped_scope: int = 0

    visited: int = 0
    fetched_ok: int = 0
    fetched_error: int = 0
    listing_pages: int = 0
    detail_pages: int = 0

    recipes_created: int = 0
    recipes_updated: int = 0
    rejected_invalid: int = 0
    rejected_duplicate: int = 0
    store_failed: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "frontier_enqueued": self.frontier_enqueued,
            "frontier_skipped_seen": self.frontier_skipped_seen,
            "frontier_skipped_depth": self.frontier_skipped_depth,
            "frontier_skipped_scope": self.frontier_skipped_scope,
            "visited": self.visited,
            "fetched_ok": self.fetched_ok,
            "fetched_error": self.fetched_error,
            "listing_pages": self.listing_pages,
            "detail_pages": self.detail_pages,
            "recipes_created": self.recipes_created,
            "recipes_updated": self.recipes_updated,
            "rejected_invalid": self.rejected_invalid,
            "rejected_duplicate": self.rejected_duplicate,
            "store_failed": self.store_failed,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


@dataclass(frozen=True, slots=True)
class CrawlSummary:
    """Terminal report of one crawl run."""

    visited: int
    timed_out: bool
    stats: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> JSONDict:
        return {
            "visited": self.visited,
            "timed_out": self.timed_out,
            "stats": self.stats,
        }


__all__ = [
    "CrawlStats",
    "CrawlSummary",
    "CrawlTask",
    "ExtractedRecipe",
    "FetchErrorKind",
    "FetchResult",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "PageKind",
    "UpsertAction",
    "UpsertResult",
    "utc_now_iso",
]
