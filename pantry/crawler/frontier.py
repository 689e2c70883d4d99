"""Thread-safe crawl work queue with depth bound and visited-set tracking."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .types import CrawlTask
from .url import canonical_url, is_allowed_domain


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_OUT_OF_SCOPE = "skipped_out_of_scope"
    SKIPPED_DEPTH = "skipped_depth"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_CLOSED = "skipped_closed"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one enqueue attempt."""

    status: EnqueueStatus
    url: str | None = None
    task: CrawlTask | None = None

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED


class VisitedSet:
    """Concurrent set of canonical URLs with atomic check-then-insert."""

    def __init__(self, urls: Iterable[str] | None = None) -> None:
        self._lock = threading.Lock()
        self._urls: set[str] = set(urls or ())

    def add(self, url: str) -> bool:
        """Insert `url`; return False if it was already present."""

        with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            return True

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._urls

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)

    def snapshot(self) -> set[str]:
        with self._lock:
            return set(self._urls)


class Frontier:
    """Unbounded work queue shared by crawl workers.

    - `push` canonicalizes, enforces the depth bound and domain scope, and
      drops URLs already queued this run.
    - Workers call `mark_visited` after `pop`; it is the authoritative
      once-per-run guard, since redirects can map two queued URLs to one page.
    """

    def __init__(
        self,
        *,
        max_depth: int,
        allowed_domains: Iterable[str] = (),
    ) -> None:
        self.max_depth = max_depth
        self.allowed_domains = tuple(allowed_domains)
        self.visited = VisitedSet()

        self._queue: queue.Queue[CrawlTask] = queue.Queue()
        self._lock = threading.Lock()
        self._queued_urls: set[str] = set()
        self._closed = False

        self._enqueued_count = 0
        self._dequeued_count = 0

    def seed(self, seeds: Iterable[str]) -> list[EnqueueResult]:
        """Seed frontier with depth=0 URLs."""

        return [self.push(seed, depth=0) for seed in seeds]

    def push(self, url: str, *, depth: int, referrer: str | None = None) -> EnqueueResult:
        """Attempt to enqueue one URL with constraints enforced."""

        normalized = canonical_url(url)
        if normalized is None:
            return EnqueueResult(EnqueueStatus.SKIPPED_INVALID_URL)
        if depth > self.max_depth:
            return EnqueueResult(EnqueueStatus.SKIPPED_DEPTH, url=normalized)
        if not is_allowed_domain(normalized, self.allowed_domains):
            return EnqueueResult(EnqueueStatus.SKIPPED_OUT_OF_SCOPE, url=normalized)

        with self._lock:
            if self._closed:
                return EnqueueResult(EnqueueStatus.SKIPPED_CLOSED, url=normalized)
            if normalized in self._queued_urls or normalized in self.visited:
                return EnqueueResult(EnqueueStatus.SKIPPED_SEEN, url=normalized)

            self._queued_urls.add(normalized)
            task = CrawlTask(url=normalized, depth=depth, referrer=referrer)
            self._queue.put(task)
            self._enqueued_count += 1

        return EnqueueResult(EnqueueStatus.ENQUEUED, url=normalized, task=task)

    def push_many(
        self,
        urls: Iterable[str],
        *,
        depth: int,
        referrer: str | None = None,
    ) -> list[EnqueueResult]:
        """Attempt to enqueue multiple URLs, preserving input order."""

        return [self.push(url, depth=depth, referrer=referrer) for url in urls]

    def pop(self, *, timeout: float | None = None) -> CrawlTask | None:
        """Pop one task, or return `None` if none arrives within `timeout`."""

        try:
            task = self._queue.get(block=True, timeout=timeout)
        except queue.Empty:
            return None

        with self._lock:
            self._dequeued_count += 1
        return task

    def mark_visited(self, url: str) -> bool:
        """Atomically claim a URL for this run; False means it was already visited."""

        normalized = canonical_url(url) or url
        return self.visited.add(normalized)

    def task_done(self) -> None:
        """Mark one popped task as finished (delegates to Queue.task_done)."""

        self._queue.task_done()

    def join(self, timeout: float | None = None) -> bool:
        """Block until all queued tasks are marked done, or until `timeout` elapses.

        Returns True when the frontier drained.
        """

        done = self._queue.all_tasks_done
        with done:
            return done.wait_for(lambda: not self._queue.unfinished_tasks, timeout=timeout)

    def close(self) -> None:
        """Close frontier to future enqueue attempts."""

        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def qsize(self) -> int:
        """Approximate queue size."""

        return self._queue.qsize()

    def snapshot(self) -> dict[str, int | bool]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            return {
                "closed": self._closed,
                "queue_size": self._queue.qsize(),
                "queued_urls": len(self._queued_urls),
                "visited": len(self.visited),
                "enqueued": self._enqueued_count,
                "dequeued": self._dequeued_count,
            }


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
    "VisitedSet",
]
