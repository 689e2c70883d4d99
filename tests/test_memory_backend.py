import pytest

from pantry.search import SearchQuery, ensure_index
from pantry.search.backend import DocumentExistsError, NotFoundError
from pantry.search.memory import MemoryBackend, tokenize


def add(backend, doc_id, **fields):
    doc = {"id": doc_id, "title": "", "body": "", "categories": [], **fields}
    backend.index(doc_id, doc)


@pytest.fixture
def backend():
    backend = MemoryBackend()
    add(
        backend,
        "soup",
        title="Tomato Soup",
        body="A bowl of soup with basil.",
        url="https://example.com/soup",
        source_site="example.com",
        categories=["Dinner", "Italian Food"],
        crawl_date="2024-03-01T00:00:00+00:00",
    )
    add(
        backend,
        "salad",
        title="Summer Salad",
        body="Tomato slices, basil, and mozzarella. Pairs with tomato soup.",
        url="https://example.com/salad",
        source_site="example.com",
        categories=["Lunch"],
        crawl_date="2024-05-01T00:00:00+00:00",
    )
    add(
        backend,
        "bread",
        title="Garlic Bread",
        body="Crusty bread with garlic butter.",
        url="https://other.org/bread",
        source_site="other.org",
        categories=["Side"],
        crawl_date="2024-01-01T00:00:00+00:00",
    )
    return backend


def test_tokenize_folds_case_accents_and_stopwords():
    assert tokenize("The Crème Brûlée of a Chef") == ["creme", "brulee", "chef"]
    assert tokenize(["One", "two"]) == ["one", "two"]


def test_title_matches_outrank_body_matches(backend):
    results = backend.search(SearchQuery(text="tomato soup"))

    assert [hit.id for hit in results] == ["soup", "salad"]
    assert results.total == 2
    assert results.hits[0].score > results.hits[1].score


def test_match_all_with_pagination(backend):
    first = backend.search(SearchQuery(size=2))
    second = backend.search(SearchQuery(size=2, offset=2))

    assert first.total == 3
    assert len(first) == 2
    assert len(second) == 1


def test_keyword_category_and_date_filters(backend):
    by_site = backend.search(SearchQuery(terms={"source_site": "other.org"}))
    by_url = backend.search(SearchQuery(terms={"url": "https://example.com/salad"}))
    by_category = backend.search(SearchQuery(category="italian food"))
    by_date = backend.search(
        SearchQuery(crawled_after="2024-02-01T00:00:00Z", crawled_before="2024-04-01T00:00:00Z")
    )

    assert [hit.id for hit in by_site] == ["bread"]
    assert [hit.id for hit in by_url] == ["salad"]
    assert [hit.id for hit in by_category] == ["soup"]
    assert [hit.id for hit in by_date] == ["soup"]


def test_sort_by_crawl_date_descending(backend):
    results = backend.search(SearchQuery(sort="crawl_date"))

    assert [hit.id for hit in results] == ["salad", "soup", "bread"]


def test_fuzzy_title_lookup(backend):
    results = backend.search(SearchQuery(text="garlik bred", fields=("title",), fuzzy=True))
    strict = backend.search(SearchQuery(text="garlik bred", fields=("title",)))

    assert [hit.id for hit in results] == ["bread"]
    assert strict.total == 0


def test_create_only_index_and_partial_update(backend):
    with pytest.raises(DocumentExistsError):
        add(backend, "soup", title="Another Soup")

    backend.update("soup", {"title": "Roasted Tomato Soup"})
    assert backend.get("soup")["title"] == "Roasted Tomato Soup"
    assert backend.get("soup")["body"] == "A bowl of soup with basil."

    with pytest.raises(NotFoundError):
        backend.update("missing", {"title": "x"})
    with pytest.raises(NotFoundError):
        backend.get("missing")


def test_results_are_copies(backend):
    hit = backend.search(SearchQuery(terms={"url": "https://example.com/soup"})).hits[0]
    hit.source["title"] = "mutated"

    assert backend.get("soup")["title"] == "Tomato Soup"


def test_index_lifecycle():
    backend = MemoryBackend(index_name="fresh")

    assert ensure_index(backend) is True
    assert ensure_index(backend) is False
    assert backend.exists_index()

    backend.delete_index()
    assert not backend.exists_index()
    with pytest.raises(NotFoundError):
        backend.delete_index()
