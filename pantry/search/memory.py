"""In-process search backend: dict storage with per-field BM25 scoring.

Used for local crawls without an Elasticsearch cluster and throughout the
test suite. Semantics follow the Elasticsearch adapter closely enough for
the crawler: create-only `index`, partial `update`, immediate visibility,
boosted multi-field text match, keyword/phrase/date filters.
"""

from __future__ import annotations

import copy
import re
import threading
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

import numpy as np
from rank_bm25 import BM25Okapi

from ..crawler.dedup import levenshtein
from .backend import (
    DocumentExistsError,
    NotFoundError,
    SearchBackendError,
    SearchHit,
    SearchQuery,
    SearchResults,
    parse_field_boost,
)
from .mapping import recipe_index_schema

_TOKEN_RE = re.compile(r"[a-z0-9]+")
STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "if", "in",
        "into", "is", "it", "no", "not", "of", "on", "or", "such", "that", "the",
        "their", "then", "there", "these", "they", "this", "to", "was", "will", "with",
    }
)
IDF_FLOOR = 0.01


def tokenize(value: Any) -> list[str]:
    """Lowercase, ASCII-fold, split on non-alphanumerics, drop stopwords."""

    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        text = "\n".join(str(item) for item in value)
    else:
        text = str(value)
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return [token for token in _TOKEN_RE.findall(folded.lower()) if token not in STOPWORDS]


def _fuzzy_budget(token: str) -> int:
    # Elasticsearch "AUTO" fuzziness.
    if len(token) <= 2:
        return 0
    if len(token) <= 5:
        return 1
    return 2


def _parse_date(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(slots=True)
class _FieldIndex:
    doc_ids: list[str]
    bm25: BM25Okapi
    vocabulary: frozenset[str]
    token_sets: list[frozenset[str]]


class _IndexState:
    def __init__(self, schema: Mapping[str, Any] | None = None) -> None:
        self.schema = dict(schema or {})
        self.docs: dict[str, dict[str, Any]] = {}
        self.field_indexes: dict[str, _FieldIndex | None] = {}
        self.dirty = True


class MemoryBackend:
    """Thread-safe in-memory implementation of `SearchBackend`."""

    def __init__(self, index_name: str = "recipes") -> None:
        self.index_name = index_name
        self._lock = threading.RLock()
        self._indices: dict[str, _IndexState] = {}

    def _state(self, name: str | None = None, *, create: bool = False) -> _IndexState:
        target = name or self.index_name
        state = self._indices.get(target)
        if state is None:
            if not create:
                raise NotFoundError(f"Index {target!r} not found")
            state = _IndexState(recipe_index_schema())
            self._indices[target] = state
        return state

    def search(self, query: SearchQuery) -> SearchResults:
        with self._lock:
            state = self._state(create=True)
            candidates = [
                doc_id for doc_id, doc in state.docs.items() if self._passes_filters(doc, query)
            ]
            if query.text.strip():
                scored = self._score(state, query, candidates)
            else:
                scored = [(doc_id, 1.0) for doc_id in candidates]

            if query.sort == "crawl_date":
                epoch = datetime.min.replace(tzinfo=timezone.utc)
                scored.sort(
                    key=lambda item: _parse_date(state.docs[item[0]].get("crawl_date")) or epoch,
                    reverse=True,
                )

            page = scored[query.offset : query.offset + query.size]
            hits = [
                SearchHit(id=doc_id, score=score, source=copy.deepcopy(state.docs[doc_id]))
                for doc_id, score in page
            ]
            return SearchResults(hits=hits, total=len(scored))

    def get(self, doc_id: str) -> dict[str, Any]:
        with self._lock:
            doc = self._state(create=True).docs.get(doc_id)
            if doc is None:
                raise NotFoundError(f"Document {doc_id!r} not found")
            return copy.deepcopy(doc)

    def index(self, doc_id: str, doc: Mapping[str, Any], *, refresh: bool = True) -> None:
        with self._lock:
            state = self._state(create=True)
            if doc_id in state.docs:
                raise DocumentExistsError(f"Document {doc_id!r} already exists")
            state.docs[doc_id] = copy.deepcopy(dict(doc))
            state.dirty = True

    def update(
        self,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        refresh: bool = True,
        retry_on_conflict: int = 3,
    ) -> None:
        with self._lock:
            state = self._state(create=True)
            doc = state.docs.get(doc_id)
            if doc is None:
                raise NotFoundError(f"Document {doc_id!r} not found")
            doc.update(copy.deepcopy(dict(fields)))
            state.dirty = True

    def exists_index(self, name: str | None = None) -> bool:
        with self._lock:
            return (name or self.index_name) in self._indices

    def create_index(self, name: str | None = None, schema: Mapping[str, Any] | None = None) -> None:
        target = name or self.index_name
        with self._lock:
            if target in self._indices:
                raise SearchBackendError(f"Index {target!r} already exists")
            self._indices[target] = _IndexState(schema or recipe_index_schema())

    def delete_index(self, name: str | None = None) -> None:
        target = name or self.index_name
        with self._lock:
            if target not in self._indices:
                raise NotFoundError(f"Index {target!r} not found")
            del self._indices[target]

    def close(self) -> None:
        return None

    def __len__(self) -> int:
        with self._lock:
            state = self._indices.get(self.index_name)
            return 0 if state is None else len(state.docs)

    @staticmethod
    def _passes_filters(doc: Mapping[str, Any], query: SearchQuery) -> bool:
        for name, expected in query.terms.items():
            value = doc.get(name)
            if isinstance(value, list):
                if expected not in value:
                    return False
            elif value is None or str(value) != expected:
                return False

        if query.category:
            phrase = " ".join(tokenize(query.category))
            categories = doc.get("categories") or []
            if isinstance(categories, str):
                categories = [categories]
            if not any(
                f" {phrase} " in f" {' '.join(tokenize(category))} " for category in categories
            ):
                return False

        if query.crawled_after or query.crawled_before:
            crawled = _parse_date(doc.get("crawl_date"))
            if crawled is None:
                return False
            after = _parse_date(query.crawled_after)
            before = _parse_date(query.crawled_before)
            if after is not None and crawled < after:
                return False
            if before is not None and crawled > before:
                return False

        return True

    def _field_index(self, state: _IndexState, field_name: str) -> _FieldIndex | None:
        if state.dirty:
            state.field_indexes.clear()
            state.dirty = False
        if field_name in state.field_indexes:
            return state.field_indexes[field_name]

        doc_ids = list(state.docs)
        corpus = [tokenize(state.docs[doc_id].get(field_name)) for doc_id in doc_ids]
        if not any(corpus):
            state.field_indexes[field_name] = None
            return None

        bm25 = BM25Okapi(corpus)
        # Okapi IDF goes negative for terms in over half the documents; floor it
        # so a match never lowers a score.
        for term, value in bm25.idf.items():
            bm25.idf[term] = max(float(value), IDF_FLOOR)

        token_sets = [frozenset(tokens) for tokens in corpus]
        field_index = _FieldIndex(
            doc_ids=doc_ids,
            bm25=bm25,
            vocabulary=frozenset().union(*token_sets),
            token_sets=token_sets,
        )
        state.field_indexes[field_name] = field_index
        return field_index

    @staticmethod
    def _expand_tokens(tokens: Iterable[str], vocabulary: frozenset[str], fuzzy: bool) -> list[str]:
        expanded: list[str] = []
        for token in tokens:
            if not fuzzy or token in vocabulary:
                expanded.append(token)
                continue
            budget = _fuzzy_budget(token)
            matches = [
                candidate
                for candidate in vocabulary
                if budget and abs(len(candidate) - len(token)) <= budget
                and levenshtein(token, candidate) <= budget
            ]
            expanded.extend(sorted(matches) or [token])
        return expanded

    def _score(
        self,
        state: _IndexState,
        query: SearchQuery,
        candidates: list[str],
    ) -> list[tuple[str, float]]:
        query_tokens = tokenize(query.text)
        if not query_tokens or not candidates:
            return []

        doc_ids = list(state.docs)
        position = {doc_id: row for row, doc_id in enumerate(doc_ids)}
        totals = np.zeros(len(doc_ids), dtype=np.float64)
        matched = np.zeros(len(doc_ids), dtype=bool)

        for spec in query.fields:
            field_name, boost = parse_field_boost(spec)
            field_index = self._field_index(state, field_name)
            if field_index is None:
                continue

            tokens = self._expand_tokens(query_tokens, field_index.vocabulary, query.fuzzy)
            token_set = set(tokens)
            scores = np.asarray(field_index.bm25.get_scores(tokens), dtype=np.float64)
            for row, doc_id in enumerate(field_index.doc_ids):
                if token_set & field_index.token_sets[row]:
                    totals[position[doc_id]] += boost * float(scores[row])
                    matched[position[doc_id]] = True

        rows = np.asarray([position[doc_id] for doc_id in candidates if matched[position[doc_id]]], dtype=np.int64)
        if rows.size == 0:
            return []
        order = rows[np.argsort(-totals[rows], kind="stable")]
        return [(doc_ids[int(row)], float(totals[int(row)])) for row in order]


__all__ = [
    "MemoryBackend",
    "tokenize",
]
