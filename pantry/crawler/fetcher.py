"""HTTP page fetching with retry/backoff and HTML parsing."""

from __future__ import annotations

import gzip
import logging
import threading
import time
from typing import Callable

import requests
from bs4 import BeautifulSoup

from .config import CrawlConfig
from .types import FetchErrorKind, FetchResult
from .url import is_http_url

LOGGER = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
TERMINAL_STATUS_CODES = frozenset({403, 404})


def maybe_decompress(body: bytes) -> bytes:
    """Decompress a gzip payload that the transport layer left encoded."""

    if not body.startswith(GZIP_MAGIC):
        return body
    try:
        return gzip.decompress(body)
    except (OSError, EOFError) as exc:
        LOGGER.debug("Body looked gzip-encoded but failed to decompress: %s", exc)
        return body


def parse_html(body: bytes) -> BeautifulSoup:
    """Parse raw bytes into a queryable document tree."""

    return BeautifulSoup(body, "lxml")


class Fetcher:
    """Fetch and parse pages over HTTP.

    The fetcher holds no crawl state: each worker thread gets its own
    `requests.Session`, and per-domain pacing is the scheduler's job.

    Status handling:
    - 200 is success.
    - 403/404 and any other non-5xx status are terminal (no retry).
    - 5xx, network errors and parse errors are retried up to
      `fetch_attempts` times with linear backoff.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._session_factory = session_factory
        self._sleep = sleep
        self._thread_local = threading.local()

    def fetch(self, url: str) -> FetchResult:
        """Fetch one URL and return a parsed document or a typed failure."""

        if not url or not is_http_url(url):
            return FetchResult(
                requested_url=url,
                error_kind=FetchErrorKind.INVALID_URL,
                error=f"Invalid or unsupported URL: {url!r}",
            )
        return self._fetch_with_retries(url)

    def _fetch_with_retries(self, url: str) -> FetchResult:
        attempts = max(1, self.config.fetch_attempts)
        result = FetchResult(requested_url=url)

        for attempt in range(1, attempts + 1):
            result = self._fetch_once(url)
            result.attempts = attempt

            if result.ok or not self._is_retryable(result):
                return result

            if attempt < attempts:
                delay = self._backoff_for(result, attempt)
                LOGGER.debug(
                    "Retrying %s in %.1fs after attempt %d/%d: %s",
                    url,
                    delay,
                    attempt,
                    attempts,
                    result.error,
                )
                if delay > 0:
                    self._sleep(delay)

        return result

    @staticmethod
    def _is_retryable(result: FetchResult) -> bool:
        if result.error_kind in {FetchErrorKind.NETWORK, FetchErrorKind.PARSE}:
            return True
        if result.error_kind == FetchErrorKind.HTTP_STATUS:
            return result.status_code is not None and result.status_code >= 500
        return False

    def _backoff_for(self, result: FetchResult, attempt: int) -> float:
        if result.error_kind == FetchErrorKind.HTTP_STATUS:
            return self.config.server_error_backoff_seconds * attempt
        return self.config.retry_backoff_seconds * attempt

    def _fetch_once(self, url: str) -> FetchResult:
        started = time.perf_counter()
        session = self._thread_local_session()

        try:
            response = session.get(
                url,
                headers=self.config.headers(),
                timeout=self.config.request_timeout_seconds,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            return FetchResult(
                requested_url=url,
                error_kind=FetchErrorKind.NETWORK,
                error=f"{exc.__class__.__name__}: {exc}",
                elapsed_ms=int((time.perf_counter() - started) * 1000),
            )

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        result = FetchResult(
            requested_url=url,
            final_url=response.url or url,
            status_code=response.status_code,
            content_type=response.headers.get("Content-Type"),
            elapsed_ms=elapsed_ms,
        )

        if response.status_code != 200:
            result.error_kind = FetchErrorKind.HTTP_STATUS
            if response.status_code in TERMINAL_STATUS_CODES:
                result.error = f"HTTP {response.status_code}: page not accessible"
            else:
                result.error = f"HTTP {response.status_code}"
            return result

        body = maybe_decompress(response.content or b"")
        result.body = body
        try:
            result.document = parse_html(body)
        except Exception as exc:
            result.error_kind = FetchErrorKind.PARSE
            result.error = f"{exc.__class__.__name__}: {exc}"
        return result

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = self._session_factory()
            self._thread_local.session = session
        return session


__all__ = [
    "Fetcher",
    "maybe_decompress",
    "parse_html",
]
