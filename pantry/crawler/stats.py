"""Thread-safe crawl statistics aggregation utilities."""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from .frontier import EnqueueResult, EnqueueStatus
from .types import CrawlStats, FetchResult, PageKind, UpsertAction, UpsertResult


class StatsCollector:
    """Collect and summarize crawler runtime statistics.

    The collector is thread-safe and shared by every crawl worker.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()

        self._frontier_extra: dict[str, int] = defaultdict(int)
        self._frontier_snapshot: dict[str, int | bool] = {}

        self._fetch_status_code_counts: dict[str, int] = defaultdict(int)
        self._fetch_error_kind_counts: dict[str, int] = defaultdict(int)
        self._fetch_elapsed_ms_total = 0
        self._fetch_elapsed_samples = 0
        self._fetch_bytes_total = 0

        self._links_discovered = 0
        self._admission_snapshot: dict[str, dict[str, int]] = {}
        self._timed_out = False

    def record_enqueue(self, result_or_status: EnqueueResult | EnqueueStatus) -> None:
        """Record one frontier enqueue outcome."""

        if isinstance(result_or_status, EnqueueResult):
            status = result_or_status.status
        else:
            status = result_or_status

        with self._lock:
            if status == EnqueueStatus.ENQUEUED:
                self._core.frontier_enqueued += 1
            elif status == EnqueueStatus.SKIPPED_SEEN:
                self._core.frontier_skipped_seen += 1
            elif status == EnqueueStatus.SKIPPED_DEPTH:
                self._core.frontier_skipped_depth += 1
            elif status == EnqueueStatus.SKIPPED_OUT_OF_SCOPE:
                self._core.frontier_skipped_scope += 1
            else:
                self._frontier_extra[status.value] += 1

    def record_enqueue_many(self, results: Iterable[EnqueueResult]) -> None:
        """Record many enqueue outcomes."""

        for result in results:
            self.record_enqueue(result)

    def record_frontier_snapshot(self, snapshot: Mapping[str, int | bool]) -> None:
        """Attach latest frontier snapshot for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def record_admission_snapshot(self, snapshot: Mapping[str, Mapping[str, int]]) -> None:
        """Attach per-domain admission counters for diagnostics."""

        with self._lock:
            self._admission_snapshot = {host: dict(values) for host, values in snapshot.items()}

    def record_visit(self) -> None:
        with self._lock:
            self._core.visited += 1

    def record_fetch(self, result: FetchResult) -> None:
        """Record one fetch result."""

        with self._lock:
            if result.ok:
                self._core.fetched_ok += 1
            else:
                self._core.fetched_error += 1

            if result.status_code is not None:
                self._fetch_status_code_counts[str(result.status_code)] += 1
            if result.error_kind is not None:
                self._fetch_error_kind_counts[result.error_kind.value] += 1

            if result.elapsed_ms is not None:
                self._fetch_elapsed_ms_total += int(result.elapsed_ms)
                self._fetch_elapsed_samples += 1
            if result.body is not None:
                self._fetch_bytes_total += len(result.body)

    def record_page(self, kind: PageKind) -> None:
        with self._lock:
            if kind == PageKind.LISTING:
                self._core.listing_pages += 1
            else:
                self._core.detail_pages += 1

    def record_links(self, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._links_discovered += count

    def record_upsert(self, result: UpsertResult) -> None:
        """Record one upsert gate outcome."""

        with self._lock:
            if result.action == UpsertAction.CREATED:
                self._core.recipes_created += 1
            elif result.action == UpsertAction.UPDATED:
                self._core.recipes_updated += 1
            elif result.action == UpsertAction.REJECTED_INVALID:
                self._core.rejected_invalid += 1
            elif result.action == UpsertAction.REJECTED_DUPLICATE:
                self._core.rejected_duplicate += 1
            else:
                self._core.store_failed += 1

    def finish(self, *, timed_out: bool = False) -> None:
        """Mark crawl as finished."""

        with self._lock:
            self._timed_out = timed_out
            self._core.finish()

    def core(self) -> CrawlStats:
        """Return a copy of the core `CrawlStats` record."""

        with self._lock:
            return replace(self._core)

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            core = self._core.to_json()

            start = _parse_iso_utc(self._core.started_at)
            end = (
                _parse_iso_utc(self._core.finished_at)
                if self._core.finished_at
                else datetime.now(timezone.utc)
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            fetch_elapsed_avg = (
                self._fetch_elapsed_ms_total / self._fetch_elapsed_samples
                if self._fetch_elapsed_samples > 0
                else 0.0
            )
            fetched_total = self._core.fetched_ok + self._core.fetched_error

            return {
                **core,
                "duration_seconds": duration_seconds,
                "timed_out": self._timed_out,
                "links_discovered": self._links_discovered,
                "throughput": {
                    "fetched_per_second": (
                        fetched_total / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                },
                "frontier": {
                    "extra_status_counts": dict(self._frontier_extra),
                    "snapshot": dict(self._frontier_snapshot),
                },
                "fetch": {
                    "status_code_counts": dict(self._fetch_status_code_counts),
                    "error_kind_counts": dict(self._fetch_error_kind_counts),
                    "elapsed_ms_total": self._fetch_elapsed_ms_total,
                    "elapsed_ms_avg": fetch_elapsed_avg,
                    "bytes_total": self._fetch_bytes_total,
                },
                "admission": {host: dict(values) for host, values in self._admission_snapshot.items()},
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
