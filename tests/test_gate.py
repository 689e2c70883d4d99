import itertools

import pytest

from pantry.crawler.backup import RecipeBackup
from pantry.crawler.dedup import record_id_for
from pantry.crawler.gate import INGREDIENTS_PLACEHOLDER, INSTRUCTIONS_PLACEHOLDER, UpsertGate
from pantry.crawler.types import ExtractedRecipe, UpsertAction
from pantry.search.backend import ConflictError
from pantry.search.memory import MemoryBackend


def ticking_clock():
    counter = itertools.count(1)
    return lambda: f"2024-01-{next(counter):02d}T12:00:00+00:00"


def cake(url="https://example.com/chocolate-cake", title="The Best Chocolate Cake Recipe", **overrides):
    values = {
        "url": url,
        "title": title,
        "name": title,
        "description": "Rich and dark.",
        "body": "Ingredients\n2 cups flour\nInstructions\nBake it.",
        "ingredients": ["2 cups flour", "1 cup cocoa"],
        "instructions": ["Mix everything.", "Bake for 30 minutes."],
        "source_site": "example.com",
    }
    values.update(overrides)
    return ExtractedRecipe(**values)


@pytest.fixture
def gate(memory_backend):
    return UpsertGate(memory_backend, now=ticking_clock(), sleep=lambda _: None)


def test_create_is_idempotent_per_url(gate, memory_backend):
    assert gate.create(cake()) is True
    assert gate.create(cake(description="Changed")) is False
    assert gate.create(cake(url="https://example.com/chocolate-cake#comments")) is False

    assert len(memory_backend) == 1
    stored = memory_backend.get(record_id_for("https://example.com/chocolate-cake"))
    assert stored["description"] == "Rich and dark."
    assert stored["crawl_date"] == "2024-01-01T12:00:00+00:00"


def test_find_existing_matches_normalized_titles(gate):
    gate.create(cake())

    found, record = gate.find_existing("chocolate cake")
    assert found is True
    assert record.url == "https://example.com/chocolate-cake"

    assert gate.find_existing("Lemon Tart") == (False, None)
    assert gate.find_existing("The Best Recipe") == (False, None)


def test_create_rejects_similar_title_on_another_url(gate, memory_backend):
    assert gate.create(cake()) is True
    assert gate.create(cake(url="https://other.example.com/cake", title="Chocolate Cake!")) is False
    assert gate.create(cake(url="https://example.com/lemon-tart", title="Lemon Tart")) is True
    assert len(memory_backend) == 2


def test_update_refreshes_crawl_date_and_keeps_id(gate, memory_backend):
    gate.create(cake())
    doc_id = record_id_for("https://example.com/chocolate-cake")

    assert gate.update(doc_id, {"description": "Even richer.", "id": "ignored"}) is True

    stored = memory_backend.get(doc_id)
    assert stored["id"] == doc_id
    assert stored["description"] == "Even richer."
    assert stored["crawl_date"] == "2024-01-02T12:00:00+00:00"


def test_update_title_syncs_name(gate, memory_backend):
    gate.create(cake())
    doc_id = record_id_for("https://example.com/chocolate-cake")

    assert gate.update(doc_id, {"title": "Fudgy Brownie Cake"}) is True

    stored = memory_backend.get(doc_id)
    assert stored["title"] == "Fudgy Brownie Cake"
    assert stored["name"] == "Fudgy Brownie Cake"


def test_update_rejects_title_or_url_of_another_record(gate):
    gate.create(cake())
    gate.create(cake(url="https://example.com/lemon-tart", title="Lemon Tart"))
    tart_id = record_id_for("https://example.com/lemon-tart")

    assert gate.update(tart_id, {"title": "Chocolate Cake"}) is False
    assert gate.update(tart_id, {"url": "https://example.com/chocolate-cake"}) is False
    assert gate.update(tart_id, {"url": "not a url"}) is False
    assert gate.update("missing-id", {"description": "x"}) is False


def test_update_url_moves_source_site(gate, memory_backend):
    gate.create(cake(url="https://www.food.com/recipe/pancakes-1", title="Pancakes", source_site="food.com"))
    doc_id = record_id_for("https://www.food.com/recipe/pancakes-1")

    assert gate.update(doc_id, {"url": "https://www.allrecipes.com/recipe/123/pancakes/"}) is True

    stored = memory_backend.get(doc_id)
    assert stored["url"] == "https://www.allrecipes.com/recipe/123/pancakes/"
    assert stored["source_site"] == "allrecipes.com"


def test_update_without_url_keeps_source_site(gate, memory_backend):
    gate.create(cake())
    doc_id = record_id_for("https://example.com/chocolate-cake")

    assert gate.update(doc_id, {"source_site": "elsewhere.org", "servings": "8"}) is True

    stored = memory_backend.get(doc_id)
    assert stored["source_site"] == "example.com"
    assert stored["servings"] == "8"


class ConflictingBackend(MemoryBackend):
    def __init__(self, conflicts):
        super().__init__()
        self.conflicts = conflicts
        self.update_calls = 0

    def update(self, doc_id, fields, **kwargs):
        self.update_calls += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            raise ConflictError("version conflict")
        super().update(doc_id, fields, **kwargs)


def test_update_retries_conflicts_with_exponential_backoff():
    backend = ConflictingBackend(conflicts=2)
    sleeps = []
    gate = UpsertGate(
        backend,
        update_retries=3,
        update_backoff_seconds=0.1,
        now=ticking_clock(),
        sleep=sleeps.append,
    )
    gate.create(cake())

    assert gate.update(record_id_for("https://example.com/chocolate-cake"), {"servings": "8"}) is True
    assert backend.update_calls == 3
    assert sleeps == pytest.approx([0.1, 0.2])


def test_update_gives_up_after_retries():
    backend = ConflictingBackend(conflicts=10)
    gate = UpsertGate(backend, update_retries=2, update_backoff_seconds=0.0, now=ticking_clock())
    gate.create(cake())

    assert gate.update(record_id_for("https://example.com/chocolate-cake"), {"servings": "8"}) is False
    assert backend.update_calls == 3


def test_validate_rejects_incomplete_records(gate):
    record, reason = gate.validate(cake(title="", name=""))
    assert record is None
    assert "name" in reason

    record, reason = gate.validate(cake(ingredients=[], instructions=[], body="Just a story."))
    assert record is None
    assert "insufficient" in reason

    record, _ = gate.validate(cake(url="mailto:chef@example.com"))
    assert record is None

    scoped = UpsertGate(MemoryBackend(), allowed_domains=["allowed.com"])
    record, reason = scoped.validate(cake())
    assert record is None
    assert "allowed" in reason


def test_validate_fills_placeholders_for_likely_recipes(gate):
    record = cake(ingredients=[], instructions=["Whisk."], body="See ingredients in the card.")

    placeheld, _ = gate.validate(record, likely_recipe=True)
    plain, _ = gate.validate(record, likely_recipe=False)

    assert placeheld.ingredients == [INGREDIENTS_PLACEHOLDER]
    assert plain.ingredients == []

    no_steps = cake(ingredients=["1 egg"], instructions=[], body="Directions below.")
    placeheld, _ = gate.validate(no_steps, likely_recipe=True)
    assert placeheld.instructions == [INSTRUCTIONS_PLACEHOLDER]


def test_upsert_routes_duplicate_url_to_update(gate, memory_backend):
    first = gate.upsert(cake())
    second = gate.upsert(cake(description="Now with espresso."))

    assert first.action == UpsertAction.CREATED
    assert second.action == UpsertAction.UPDATED
    assert second.record_id == first.record_id

    stored = memory_backend.get(first.record_id)
    assert stored["description"] == "Now with espresso."
    assert stored["crawl_date"] == "2024-01-02T12:00:00+00:00"
    assert len(memory_backend) == 1


def test_upsert_title_duplicate_keeps_stored_title(gate, memory_backend):
    first = gate.upsert(cake())
    second = gate.upsert(
        cake(url="https://mirror.example.com/cake", title="Chocolate Cake", servings="12")
    )

    assert second.action == UpsertAction.UPDATED
    stored = memory_backend.get(first.record_id)
    assert stored["title"] == "The Best Chocolate Cake Recipe"
    assert stored["url"] == "https://example.com/chocolate-cake"
    assert stored["source_site"] == "example.com"
    assert stored["servings"] == "12"


def test_upsert_rejects_invalid(gate, memory_backend):
    result = gate.upsert(cake(ingredients=[], instructions=[], body=""))

    assert result.action == UpsertAction.REJECTED_INVALID
    assert len(memory_backend) == 0


def test_created_records_are_backed_up(memory_backend, tmp_path):
    gate = UpsertGate(memory_backend, backup=RecipeBackup(tmp_path), now=ticking_clock())

    gate.create(cake())

    files = list(tmp_path.glob("*.json"))
    assert len(files) == 1
    assert files[0].name.startswith(record_id_for("https://example.com/chocolate-cake"))
