"""Search/storage backend protocol, query model, and error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, runtime_checkable

DEFAULT_QUERY_FIELDS = (
    "title^3",
    "name^3",
    "description^2",
    "ingredients^1.5",
    "instructions",
    "body",
)
SORT_OPTIONS = ("score", "crawl_date")


class SearchBackendError(Exception):
    """Base class for backend failures."""


class BackendUnavailableError(SearchBackendError):
    """The backend could not be reached (after any connection retries)."""


class NotFoundError(SearchBackendError):
    """The requested document or index does not exist."""


class DocumentExistsError(SearchBackendError):
    """`index` was called with an id that is already stored."""


class ConflictError(SearchBackendError):
    """A concurrent writer changed the document and retries were exhausted."""


def parse_field_boost(spec: str) -> tuple[str, float]:
    """Split `"title^3"` into `("title", 3.0)`."""

    name, _, boost = spec.partition("^")
    return name.strip(), float(boost) if boost else 1.0


@dataclass(frozen=True, slots=True)
class SearchQuery:
    """Backend-neutral search request.

    - `text` empty means match-all.
    - `terms` are exact keyword filters (e.g. `url`, `source_site`).
    - `category` is a phrase filter over `categories`.
    - `crawled_after` / `crawled_before` bound `crawl_date` (ISO strings, inclusive).
    """

    text: str = ""
    fields: tuple[str, ...] = DEFAULT_QUERY_FIELDS
    terms: Mapping[str, str] = field(default_factory=dict)
    category: str | None = None
    crawled_after: str | None = None
    crawled_before: str | None = None
    fuzzy: bool = False
    sort: str = "score"
    offset: int = 0
    size: int = 10

    def __post_init__(self) -> None:
        if self.sort not in SORT_OPTIONS:
            raise ValueError(f"sort must be one of {SORT_OPTIONS}, got {self.sort!r}")
        if self.offset < 0:
            raise ValueError("offset must be >= 0")
        if self.size < 0:
            raise ValueError("size must be >= 0")


@dataclass(frozen=True, slots=True)
class SearchHit:
    id: str
    score: float
    source: dict[str, Any]


@dataclass(frozen=True, slots=True)
class SearchResults:
    hits: list[SearchHit]
    total: int

    def __iter__(self):
        return iter(self.hits)

    def __len__(self) -> int:
        return len(self.hits)


@runtime_checkable
class SearchBackend(Protocol):
    """Operations the crawler and search API need from a document store.

    Writes with `refresh=True` must be visible to the next read.
    """

    index_name: str

    def search(self, query: SearchQuery) -> SearchResults: ...

    def get(self, doc_id: str) -> dict[str, Any]: ...

    def index(self, doc_id: str, doc: Mapping[str, Any], *, refresh: bool = True) -> None: ...

    def update(
        self,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        refresh: bool = True,
        retry_on_conflict: int = 3,
    ) -> None: ...

    def exists_index(self, name: str | None = None) -> bool: ...

    def create_index(self, name: str | None = None, schema: Mapping[str, Any] | None = None) -> None: ...

    def delete_index(self, name: str | None = None) -> None: ...

    def close(self) -> None: ...


__all__ = [
    "BackendUnavailableError",
    "ConflictError",
    "DEFAULT_QUERY_FIELDS",
    "DocumentExistsError",
    "NotFoundError",
    "SORT_OPTIONS",
    "SearchBackend",
    "SearchBackendError",
    "SearchHit",
    "SearchQuery",
    "SearchResults",
    "parse_field_boost",
]
