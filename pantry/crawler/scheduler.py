"""Concurrent crawl run: worker pool over the frontier, fetch -> classify -> extract -> upsert."""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Sequence

from ..search.mapping import ensure_index
from .admission import AdmissionRegistry
from .classifier import URLClassifier
from .config import CrawlConfig
from .extractor import RecipeExtractor
from .fetcher import Fetcher
from .frontier import Frontier
from .gate import UpsertGate
from .profiles import DEFAULT_SITE_PROFILES, SiteProfile, load_site_profiles
from .stats import StatsCollector
from .types import CrawlSummary, CrawlTask, ExtractedRecipe, FetchResult, PageKind

LOGGER = logging.getLogger(__name__)

POP_TIMEOUT_SECONDS = 0.5
WORKER_JOIN_TIMEOUT_SECONDS = 5.0


def resolve_profiles(config: CrawlConfig) -> tuple[SiteProfile, ...]:
    """Built-in site profiles, overlaid with `config.site_profiles_path` when set."""

    if config.site_profiles_path:
        return load_site_profiles(config.site_profiles_path)
    return DEFAULT_SITE_PROFILES


class CrawlScheduler:
    """Runs one crawl from seeds until the frontier drains or the run times out.

    State per run:
    - Frontier: shared work queue plus the visited set.
    - AdmissionRegistry: per-host concurrency cap and request spacing.
    - StatsCollector: counters reported in the `CrawlSummary`.

    No single page can abort a run: every task is wrapped, failures are
    logged, and the worker moves on.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        gate: UpsertGate,
        fetcher: Fetcher | None = None,
        extractor: RecipeExtractor | None = None,
        classifier: URLClassifier | None = None,
        admission: AdmissionRegistry | None = None,
        stats: StatsCollector | None = None,
        profiles: Sequence[SiteProfile] | None = None,
    ) -> None:
        self.config = config
        self.gate = gate
        profiles = tuple(profiles) if profiles is not None else resolve_profiles(config)

        self.fetcher = fetcher or Fetcher(config)
        self.extractor = extractor or RecipeExtractor(profiles)
        self.classifier = classifier or URLClassifier(profiles, allowed_domains=config.allowed_domains)
        self.admission = admission or AdmissionRegistry(
            max_in_flight=config.max_requests_per_domain,
            min_interval_seconds=config.domain_delay_seconds,
        )
        self.stats = stats or StatsCollector()

    def run(self, seeds: Iterable[str] | None = None) -> CrawlSummary:
        """Crawl from `seeds` (default: configured seeds) and return the run summary."""

        if ensure_index(self.gate.backend):
            LOGGER.info("Created index %r", self.gate.backend.index_name)

        frontier = Frontier(
            max_depth=self.config.max_depth,
            allowed_domains=self.config.allowed_domains,
        )
        seed_urls = list(seeds) if seeds is not None else list(self.config.seeds)
        self.stats.record_enqueue_many(frontier.seed(seed_urls))
        LOGGER.info(
            "Starting crawl: %d seed(s), %d worker(s), max depth %d",
            len(seed_urls),
            self.config.workers,
            self.config.max_depth,
        )

        stop = threading.Event()
        visited_before = self.stats.core().visited

        workers = [
            threading.Thread(
                target=self._worker,
                args=(frontier, stop),
                name=f"crawler-worker-{idx}",
                daemon=True,
            )
            for idx in range(self.config.workers)
        ]
        for worker in workers:
            worker.start()

        timed_out = not frontier.join(timeout=self.config.crawl_timeout_seconds)
        if timed_out:
            LOGGER.warning(
                "Crawl timeout of %.0fs reached; in-flight requests finish on their own",
                self.config.crawl_timeout_seconds,
            )

        stop.set()
        frontier.close()
        if not timed_out:
            for worker in workers:
                worker.join(timeout=WORKER_JOIN_TIMEOUT_SECONDS)

        self.stats.record_frontier_snapshot(frontier.snapshot())
        self.stats.record_admission_snapshot(self.admission.snapshot())
        self.stats.finish(timed_out=timed_out)

        summary = CrawlSummary(
            visited=self.stats.core().visited - visited_before,
            timed_out=timed_out,
            stats=self.stats.to_json(),
        )
        LOGGER.info("Crawl finished: %d URLs visited (timed_out=%s)", summary.visited, timed_out)
        return summary

    def _worker(self, frontier: Frontier, stop: threading.Event) -> None:
        while not stop.is_set():
            task = frontier.pop(timeout=POP_TIMEOUT_SECONDS)
            if task is None:
                continue
            try:
                if not stop.is_set():
                    self.process(frontier, task)
            except Exception:
                LOGGER.exception("Unexpected error while processing %s", task.url)
            finally:
                frontier.task_done()

    def process(self, frontier: Frontier, task: CrawlTask) -> None:
        """Handle one dequeued task end to end."""

        if task.depth > self.config.max_depth:
            LOGGER.debug("Dropping %s: depth %d > %d", task.url, task.depth, self.config.max_depth)
            return
        if not frontier.mark_visited(task.url):
            return
        self.stats.record_visit()

        with self.admission.admit(task.url):
            result = self.fetcher.fetch(task.url)
        self.stats.record_fetch(result)

        if not result.ok:
            LOGGER.warning("Failed to fetch %s: %s", task.url, result.error)
            return

        page_url = result.url
        if page_url != task.url and not frontier.mark_visited(page_url):
            LOGGER.debug("Skipping %s: redirect target %s already visited", task.url, page_url)
            return

        kind = self.classifier.classify(page_url)
        self.stats.record_page(kind)
        links = self.classifier.discover_links(result.document, page_url)
        self.stats.record_links(len(links))
        LOGGER.debug("%s: %s page, %d links", page_url, kind.value, len(links))

        # Links are queued whatever happens to the page's own record.
        results = frontier.push_many(links, depth=task.depth + 1, referrer=page_url)
        self.stats.record_enqueue_many(results)

        if kind == PageKind.DETAIL:
            self._store(result, page_url)

    def _store(self, result: FetchResult, page_url: str) -> None:
        profile = self.classifier.profile_for(page_url)
        record = self.extractor.extract(result.document, page_url, profile)
        if self.config.debug:
            self._log_fields(record)

        outcome = self.gate.upsert(record, likely_recipe=self.classifier.is_likely_recipe(page_url))
        self.stats.record_upsert(outcome)

    @staticmethod
    def _log_fields(record: ExtractedRecipe) -> None:
        LOGGER.debug("Extracted from %s:", record.url)
        for key, value in record.to_json().items():
            if key == "body":
                value = f"<{len(record.body)} chars>"
            LOGGER.debug("  %s: %s", key, value)


__all__ = [
    "CrawlScheduler",
    "resolve_profiles",
]
