import itertools
import threading
import time

import pytest

from conftest import FakeFetcher, render_page
from pantry.crawler.dedup import record_id_for
from pantry.crawler.frontier import Frontier
from pantry.crawler.gate import UpsertGate
from pantry.crawler.scheduler import CrawlScheduler
from pantry.crawler.types import CrawlTask

PANCAKES_URL = "https://example.com/pancakes-recipe"
PANCAKES_PAGE = render_page(
    title="Pancakes",
    json_ld={
        "@type": "Recipe",
        "name": "Pancakes",
        "recipeIngredient": ["1 cup flour", "2 eggs"],
        "recipeInstructions": [
            {"@type": "HowToStep", "text": "Mix"},
            {"@type": "HowToStep", "text": "Cook"},
        ],
    },
    body="<h1>Pancakes</h1><p>Sunday breakfast.</p>",
)


def ticking_clock():
    counter = itertools.count(1)
    return lambda: f"2024-02-{next(counter):02d}T08:00:00+00:00"


def listing_page(hrefs):
    links = "".join(f'<li><a href="{href}">{href}</a></li>' for href in hrefs)
    return render_page(title="Recipes", body=f"<ul>{links}</ul>")


def make_scheduler(config, backend, pages, **fetcher_options):
    fetcher = FakeFetcher(pages, **fetcher_options)
    gate = UpsertGate(backend, now=ticking_clock(), sleep=lambda _: None)
    return CrawlScheduler(config, gate=gate, fetcher=fetcher), fetcher


def test_listing_page_enqueues_links_and_stores_nothing(crawl_config, memory_backend):
    hrefs = [f"/recipes/category-{index}/" for index in range(12)]
    seed = "https://example.com/recipes/"
    scheduler, _ = make_scheduler(crawl_config, memory_backend, {seed: listing_page(hrefs)})
    frontier = Frontier(max_depth=crawl_config.max_depth)

    scheduler.process(frontier, CrawlTask(url=seed, depth=0))

    assert frontier.qsize() == 12
    tasks = [frontier.pop(timeout=0.1) for _ in range(12)]
    assert {task.depth for task in tasks} == {1}
    assert tasks[0].url == "https://example.com/recipes/category-0/"
    assert len(memory_backend) == 0
    core = scheduler.stats.core()
    assert core.listing_pages == 1
    assert core.frontier_enqueued == 12


def test_structured_detail_page_is_created_once(crawl_config, memory_backend):
    crawl_config.seeds = [PANCAKES_URL]
    scheduler, _ = make_scheduler(crawl_config, memory_backend, {PANCAKES_URL: PANCAKES_PAGE})

    summary = scheduler.run()

    assert summary.visited == 1
    assert not summary.timed_out
    assert summary.stats["recipes_created"] == 1
    stored = memory_backend.get(record_id_for(PANCAKES_URL))
    assert stored["ingredients"] == ["1 cup flour", "2 eggs"]
    assert stored["instructions"] == ["Mix", "Cook"]
    assert len(memory_backend) == 1


def test_recrawl_updates_existing_record(crawl_config, memory_backend):
    pages = {PANCAKES_URL: PANCAKES_PAGE}
    fetcher = FakeFetcher(pages)
    gate = UpsertGate(memory_backend, now=ticking_clock(), sleep=lambda _: None)

    CrawlScheduler(crawl_config, gate=gate, fetcher=fetcher).run([PANCAKES_URL])
    first = memory_backend.get(record_id_for(PANCAKES_URL))
    summary = CrawlScheduler(crawl_config, gate=gate, fetcher=fetcher).run([PANCAKES_URL])
    second = memory_backend.get(record_id_for(PANCAKES_URL))

    assert summary.stats["recipes_created"] == 0
    assert summary.stats["recipes_updated"] == 1
    assert second["id"] == first["id"]
    assert second["crawl_date"] != first["crawl_date"]
    assert len(memory_backend) == 1


def test_depth_bound_stops_link_following(crawl_config, memory_backend):
    crawl_config.max_depth = 1
    seed = "https://example.com/recipes/"
    pages = {
        seed: listing_page(["/recipes/dinner/"]),
        "https://example.com/recipes/dinner/": listing_page(["/recipes/dinner/stew-recipe"]),
        "https://example.com/recipes/dinner/stew-recipe": PANCAKES_PAGE,
    }
    scheduler, fetcher = make_scheduler(crawl_config, memory_backend, pages)

    summary = scheduler.run([seed])

    assert sorted(fetcher.fetched) == [seed, "https://example.com/recipes/dinner/"]
    assert summary.visited == 2
    assert summary.stats["frontier_skipped_depth"] == 1
    assert len(memory_backend) == 0


class ConcurrencyTracker:
    def __init__(self, hold_seconds):
        self.hold_seconds = hold_seconds
        self.current = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, url):
        with self._lock:
            self.current += 1
            self.peak = max(self.peak, self.current)
        time.sleep(self.hold_seconds)
        with self._lock:
            self.current -= 1


def test_per_domain_concurrency_cap(crawl_config, memory_backend):
    crawl_config.workers = 6
    crawl_config.max_requests_per_domain = 2
    seed = "https://example.com/recipes/"
    hrefs = [f"/recipes/category-{index}/" for index in range(10)]
    pages = {seed: listing_page(hrefs)}
    pages.update({f"https://example.com{href}": listing_page([]) for href in hrefs})
    tracker = ConcurrencyTracker(hold_seconds=0.05)
    scheduler, fetcher = make_scheduler(crawl_config, memory_backend, pages, on_fetch=tracker)

    summary = scheduler.run([seed])

    assert summary.visited == 11
    assert len(fetcher.fetched) == 11
    assert tracker.peak <= 2
    assert summary.stats["admission"]["example.com"]["peak_in_flight"] <= 2
    assert summary.stats["admission"]["example.com"]["admitted"] == 11


class ExplodingExtractor:
    def extract(self, document, url, profile=None):
        raise RuntimeError("boom")


class RedirectingFetcher(FakeFetcher):
    def __init__(self, pages, redirects):
        super().__init__(pages)
        self.redirects = dict(redirects)

    def fetch(self, url):
        result = super().fetch(self.redirects.get(url, url))
        result.requested_url = url
        return result


def test_detail_links_are_queued_when_extraction_raises(crawl_config, memory_backend):
    page = render_page(
        title="Pancakes",
        body='<h1>Pancakes</h1><a href="/waffles-recipe">Waffles</a><a href="/crepes-recipe">Crepes</a>',
    )
    gate = UpsertGate(memory_backend, now=ticking_clock())
    scheduler = CrawlScheduler(
        crawl_config,
        gate=gate,
        fetcher=FakeFetcher({PANCAKES_URL: page}),
        extractor=ExplodingExtractor(),
    )
    frontier = Frontier(max_depth=crawl_config.max_depth)

    with pytest.raises(RuntimeError):
        scheduler.process(frontier, CrawlTask(url=PANCAKES_URL, depth=0))

    tasks = [frontier.pop(timeout=0.1) for _ in range(2)]
    assert [task.url for task in tasks] == [
        "https://example.com/waffles-recipe",
        "https://example.com/crepes-recipe",
    ]
    assert {task.depth for task in tasks} == {1}
    assert len(memory_backend) == 0


def test_detail_links_are_queued_when_record_is_rejected(crawl_config, memory_backend):
    url = "https://example.com/about/team"
    page = render_page(
        title="Our Team",
        body='<p>Meet the people behind the blog.</p><a href="/waffles-recipe">Waffles</a>',
    )
    scheduler, _ = make_scheduler(crawl_config, memory_backend, {url: page})
    frontier = Frontier(max_depth=crawl_config.max_depth)

    scheduler.process(frontier, CrawlTask(url=url, depth=0))

    task = frontier.pop(timeout=0.1)
    assert task.url == "https://example.com/waffles-recipe"
    assert task.depth == 1
    assert scheduler.stats.core().detail_pages == 1
    assert len(memory_backend) == 0


def test_redirect_to_visited_page_is_not_processed_again(crawl_config, memory_backend):
    old_url = "https://example.com/old-pancakes"
    fetcher = RedirectingFetcher({PANCAKES_URL: PANCAKES_PAGE}, {old_url: PANCAKES_URL})
    gate = UpsertGate(memory_backend, now=ticking_clock(), sleep=lambda _: None)
    scheduler = CrawlScheduler(crawl_config, gate=gate, fetcher=fetcher)
    frontier = Frontier(max_depth=crawl_config.max_depth)

    scheduler.process(frontier, CrawlTask(url=PANCAKES_URL, depth=0))
    scheduler.process(frontier, CrawlTask(url=old_url, depth=0))

    core = scheduler.stats.core()
    assert core.detail_pages == 1
    assert core.recipes_created == 1
    assert core.recipes_updated == 0
    assert core.visited == 2
    assert len(memory_backend) == 1


def test_failed_fetch_and_worker_errors_do_not_stop_the_run(crawl_config, memory_backend):
    seed = "https://example.com/recipes/"
    pages = {
        seed: listing_page(["/missing-recipe", "/broken-recipe"]),
        "https://example.com/broken-recipe": PANCAKES_PAGE,
    }
    fetcher = FakeFetcher(pages)
    gate = UpsertGate(memory_backend, now=ticking_clock())
    scheduler = CrawlScheduler(crawl_config, gate=gate, fetcher=fetcher, extractor=ExplodingExtractor())

    summary = scheduler.run([seed])

    assert summary.visited == 3
    assert summary.stats["fetched_error"] == 1
    assert summary.stats["fetched_ok"] == 2
    assert len(memory_backend) == 0


def test_run_stops_at_timeout(crawl_config, memory_backend):
    crawl_config.crawl_timeout_seconds = 0.2
    seed = "https://example.com/recipes/"
    scheduler, _ = make_scheduler(
        crawl_config,
        memory_backend,
        {seed: listing_page([])},
        on_fetch=lambda url: time.sleep(1.0),
    )

    summary = scheduler.run([seed])

    assert summary.timed_out
    assert summary.stats["timed_out"] is True
