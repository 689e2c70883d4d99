"""Per-domain admission control: concurrency cap plus minimum request spacing."""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from .url import host_from_url


class DomainAdmission:
    """Admission state for one hostname.

    - At most `max_in_flight` holders at once (bounded semaphore).
    - Consecutive admissions start at least `min_interval_seconds` apart;
      start times are reserved under a lock, so concurrent waiters queue up
      behind each other instead of all waking at the same instant.
    """

    def __init__(
        self,
        host: str,
        *,
        max_in_flight: int,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_in_flight <= 0:
            raise ValueError("max_in_flight must be > 0")

        self.host = host
        self.max_in_flight = max_in_flight
        self.min_interval_seconds = max(0.0, min_interval_seconds)

        self._clock = clock
        self._sleep = sleep
        self._tokens = threading.BoundedSemaphore(max_in_flight)
        self._lock = threading.Lock()
        self._last_start: float | None = None
        self._in_flight = 0
        self._peak_in_flight = 0
        self._admitted = 0

    @contextmanager
    def admit(self) -> Iterator[None]:
        """Block until a token and a start slot are available, then hold them."""

        self._tokens.acquire()
        try:
            self._wait_for_start_slot()
            with self._lock:
                self._in_flight += 1
                self._admitted += 1
                self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                yield
            finally:
                with self._lock:
                    self._in_flight -= 1
        finally:
            self._tokens.release()

    def _wait_for_start_slot(self) -> None:
        with self._lock:
            now = self._clock()
            start = now
            if self._last_start is not None:
                start = max(now, self._last_start + self.min_interval_seconds)
            self._last_start = start

        if start > now:
            self._sleep(start - now)

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        with self._lock:
            return self._peak_in_flight

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "in_flight": self._in_flight,
                "peak_in_flight": self._peak_in_flight,
                "admitted": self._admitted,
            }


class AdmissionRegistry:
    """Lazily creates one `DomainAdmission` per hostname, guarded by a mutex."""

    def __init__(
        self,
        *,
        max_in_flight: int,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_in_flight = max_in_flight
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._by_host: dict[str, DomainAdmission] = {}

    def for_url(self, url: str) -> DomainAdmission:
        host = host_from_url(url) or url
        with self._lock:
            admission = self._by_host.get(host)
            if admission is None:
                admission = DomainAdmission(
                    host,
                    max_in_flight=self.max_in_flight,
                    min_interval_seconds=self.min_interval_seconds,
                    clock=self._clock,
                    sleep=self._sleep,
                )
                self._by_host[host] = admission
            return admission

    def admit(self, url: str):
        """Context manager admitting one request to the URL's host."""

        return self.for_url(url).admit()

    def hosts(self) -> list[str]:
        with self._lock:
            return sorted(self._by_host)

    def snapshot(self) -> dict[str, dict[str, int]]:
        with self._lock:
            admissions = dict(self._by_host)
        return {host: admission.snapshot() for host, admission in sorted(admissions.items())}


__all__ = [
    "AdmissionRegistry",
    "DomainAdmission",
]
