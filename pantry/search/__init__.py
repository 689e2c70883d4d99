"""Search/storage backends for recipe records."""

from __future__ import annotations

from ..crawler.config import SearchConfig
from .backend import (
    BackendUnavailableError,
    ConflictError,
    DocumentExistsError,
    NotFoundError,
    SearchBackend,
    SearchBackendError,
    SearchHit,
    SearchQuery,
    SearchResults,
)
from .elastic import ElasticsearchBackend
from .mapping import ensure_index, recipe_index_schema
from .memory import MemoryBackend


def build_backend(config: SearchConfig) -> SearchBackend:
    """Instantiate the configured backend; Elasticsearch connects with retries."""

    if config.backend == "memory":
        return MemoryBackend(index_name=config.index_name)

    return ElasticsearchBackend.connect(config)


__all__ = [
    "BackendUnavailableError",
    "ConflictError",
    "DocumentExistsError",
    "ElasticsearchBackend",
    "MemoryBackend",
    "NotFoundError",
    "SearchBackend",
    "SearchBackendError",
    "SearchHit",
    "SearchQuery",
    "SearchResults",
    "build_backend",
    "ensure_index",
    "recipe_index_schema",
]
