"""Elasticsearch adapter for the search backend protocol."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping

from elasticsearch import ApiError, Elasticsearch, TransportError
from elasticsearch import ConflictError as ESConflictError
from elasticsearch import NotFoundError as ESNotFoundError

from ..crawler.config import SearchConfig
from .backend import (
    BackendUnavailableError,
    ConflictError,
    DocumentExistsError,
    NotFoundError,
    SearchBackendError,
    SearchHit,
    SearchQuery,
    SearchResults,
)
from .mapping import keyword_field, recipe_index_schema

LOGGER = logging.getLogger(__name__)


def build_query(query: SearchQuery) -> dict[str, Any]:
    """Translate a `SearchQuery` into an Elasticsearch bool query."""

    if query.text.strip():
        multi_match: dict[str, Any] = {
            "query": query.text,
            "fields": list(query.fields),
            "type": "most_fields",
        }
        if query.fuzzy:
            multi_match["fuzziness"] = "AUTO"
        must: dict[str, Any] = {"multi_match": multi_match}
    else:
        must = {"match_all": {}}

    filters: list[dict[str, Any]] = [
        {"term": {keyword_field(name): value}} for name, value in query.terms.items()
    ]
    if query.category:
        filters.append({"match_phrase": {"categories": query.category}})
    if query.crawled_after or query.crawled_before:
        bounds: dict[str, str] = {}
        if query.crawled_after:
            bounds["gte"] = query.crawled_after
        if query.crawled_before:
            bounds["lte"] = query.crawled_before
        filters.append({"range": {"crawl_date": bounds}})

    return {"bool": {"must": [must], "filter": filters}}


def build_sort(query: SearchQuery) -> list[dict[str, Any]] | None:
    if query.sort == "crawl_date":
        return [{"crawl_date": {"order": "desc"}}]
    return None


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except ESNotFoundError as exc:
        raise NotFoundError(f"{operation} failed: not found") from exc
    except ESConflictError as exc:
        raise ConflictError(f"{operation} failed: version conflict") from exc
    except TransportError as exc:
        raise BackendUnavailableError(f"{operation} failed: {exc}") from exc
    except ApiError as exc:
        raise SearchBackendError(f"{operation} failed: {exc}") from exc


class ElasticsearchBackend:
    """Recipe store backed by one Elasticsearch index.

    Every write uses `refresh=True` so concurrent crawl workers see each
    other's records on their next dedup lookup.
    """

    def __init__(self, client: Elasticsearch, *, index_name: str) -> None:
        self.client = client
        self.index_name = index_name

    @classmethod
    def connect(
        cls,
        config: SearchConfig,
        *,
        client_factory: Callable[..., Elasticsearch] = Elasticsearch,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "ElasticsearchBackend":
        """Create a client and wait for the cluster, with bounded retries."""

        client = client_factory(config.url, request_timeout=config.request_timeout_seconds)
        attempts = max(1, config.connect_retries)
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                info = client.info()
                LOGGER.info(
                    "Connected to Elasticsearch %s at %s",
                    info.get("version", {}).get("number", "?"),
                    config.url,
                )
                return cls(client, index_name=config.index_name)
            except (TransportError, ApiError) as exc:
                last_error = exc
                LOGGER.warning(
                    "Elasticsearch not reachable at %s (attempt %d/%d): %s",
                    config.url,
                    attempt,
                    attempts,
                    exc,
                )
                if attempt < attempts:
                    sleep(config.connect_retry_delay_seconds)

        client.close()
        raise BackendUnavailableError(
            f"Could not connect to Elasticsearch at {config.url} after {attempts} attempts: {last_error}"
        )

    def search(self, query: SearchQuery) -> SearchResults:
        with _translate_errors("search"):
            response = self.client.search(
                index=self.index_name,
                query=build_query(query),
                from_=query.offset,
                size=query.size,
                sort=build_sort(query),
                track_total_hits=True,
            )

        hits_payload = response["hits"]
        hits = [
            SearchHit(
                id=str(hit["_id"]),
                score=float(hit.get("_score") or 0.0),
                source=dict(hit.get("_source") or {}),
            )
            for hit in hits_payload.get("hits", [])
        ]
        total = hits_payload.get("total", {})
        total_value = total.get("value", len(hits)) if isinstance(total, Mapping) else int(total)
        return SearchResults(hits=hits, total=int(total_value))

    def get(self, doc_id: str) -> dict[str, Any]:
        with _translate_errors(f"get {doc_id!r}"):
            response = self.client.get(index=self.index_name, id=doc_id)
        return dict(response["_source"])

    def index(self, doc_id: str, doc: Mapping[str, Any], *, refresh: bool = True) -> None:
        try:
            with _translate_errors("index"):
                self.client.index(
                    index=self.index_name,
                    id=doc_id,
                    document=dict(doc),
                    op_type="create",
                    refresh=refresh,
                )
        except ConflictError as exc:
            raise DocumentExistsError(f"Document {doc_id!r} already exists") from exc

    def update(
        self,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        refresh: bool = True,
        retry_on_conflict: int = 3,
    ) -> None:
        with _translate_errors(f"update {doc_id!r}"):
            self.client.update(
                index=self.index_name,
                id=doc_id,
                doc=dict(fields),
                refresh=refresh,
                retry_on_conflict=retry_on_conflict,
            )

    def exists_index(self, name: str | None = None) -> bool:
        with _translate_errors("exists_index"):
            return bool(self.client.indices.exists(index=name or self.index_name))

    def create_index(self, name: str | None = None, schema: Mapping[str, Any] | None = None) -> None:
        body = dict(schema or recipe_index_schema())
        with _translate_errors("create_index"):
            self.client.indices.create(
                index=name or self.index_name,
                settings=body.get("settings"),
                mappings=body.get("mappings"),
            )

    def delete_index(self, name: str | None = None) -> None:
        target = name or self.index_name
        with _translate_errors(f"delete_index {target!r}"):
            self.client.indices.delete(index=target)

    def close(self) -> None:
        self.client.close()


__all__ = [
    "ElasticsearchBackend",
    "build_query",
    "build_sort",
]
