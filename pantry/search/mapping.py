"""Index settings and field mapping for the recipes index."""

from __future__ import annotations

from typing import Any

RECIPE_ANALYZER = "recipe_analyzer"


def _analyzed_text(*, keyword_ignore_above: int | None = None) -> dict[str, Any]:
    spec: dict[str, Any] = {"type": "text", "analyzer": RECIPE_ANALYZER}
    if keyword_ignore_above is not None:
        spec["fields"] = {"keyword": {"type": "keyword", "ignore_above": keyword_ignore_above}}
    return spec


def _text_with_keyword(ignore_above: int) -> dict[str, Any]:
    return {
        "type": "text",
        "fields": {"keyword": {"type": "keyword", "ignore_above": ignore_above}},
    }


RECIPE_INDEX_SETTINGS: dict[str, Any] = {
    "number_of_shards": 1,
    "number_of_replicas": 0,
    "analysis": {
        "analyzer": {
            RECIPE_ANALYZER: {
                "type": "custom",
                "tokenizer": "standard",
                "char_filter": ["html_strip"],
                "filter": ["lowercase", "asciifolding", "stop", "snowball"],
            }
        }
    },
}

RECIPE_INDEX_MAPPINGS: dict[str, Any] = {
    "properties": {
        "id": {"type": "keyword"},
        "title": _analyzed_text(keyword_ignore_above=256),
        "name": _analyzed_text(keyword_ignore_above=256),
        "description": _analyzed_text(),
        "body": _analyzed_text(),
        "url": _text_with_keyword(2048),
        "image": _text_with_keyword(2048),
        "prep_time": {"type": "text"},
        "cook_time": {"type": "text"},
        "total_time": {"type": "text"},
        "calories": {"type": "text"},
        "servings": {"type": "text"},
        "ingredients": _analyzed_text(),
        "instructions": _analyzed_text(),
        "categories": _analyzed_text(keyword_ignore_above=256),
        "source_site": {"type": "keyword"},
        "crawl_date": {"type": "date"},
    }
}

# Fields with an exact `.keyword` sub-field; other exact filters hit the field itself.
KEYWORD_SUBFIELDS = frozenset({"title", "name", "url", "image", "categories"})


def recipe_index_schema() -> dict[str, Any]:
    """Full `create_index` body: settings plus mappings."""

    return {"settings": RECIPE_INDEX_SETTINGS, "mappings": RECIPE_INDEX_MAPPINGS}


def ensure_index(backend: Any, name: str | None = None) -> bool:
    """Create the recipes index with its mapping if missing; True if created."""

    if backend.exists_index(name):
        return False
    backend.create_index(name, schema=recipe_index_schema())
    return True


def keyword_field(name: str) -> str:
    """Name of the field to use for an exact-match filter on `name`."""

    return f"{name}.keyword" if name in KEYWORD_SUBFIELDS else name


__all__ = [
    "KEYWORD_SUBFIELDS",
    "RECIPE_ANALYZER",
    "RECIPE_INDEX_MAPPINGS",
    "RECIPE_INDEX_SETTINGS",
    "ensure_index",
    "keyword_field",
    "recipe_index_schema",
]
