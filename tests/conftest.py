import json
import threading
from typing import Any, Callable

import pytest

from pantry.crawler.config import CrawlConfig, SearchConfig
from pantry.crawler.fetcher import parse_html
from pantry.crawler.types import FetchErrorKind, FetchResult
from pantry.search.memory import MemoryBackend


def render_page(
    *,
    title: str = "",
    body: str = "",
    json_ld: Any = None,
    head: str = "",
) -> str:
    scripts = ""
    if json_ld is not None:
        payload = json_ld if isinstance(json_ld, str) else json.dumps(json_ld)
        scripts = f'<script type="application/ld+json">{payload}</script>'
    title_tag = f"<title>{title}</title>" if title else ""
    return f"<html><head>{title_tag}{head}{scripts}</head><body>{body}</body></html>"


class FakeResponse:
    def __init__(
        self,
        *,
        status_code: int = 200,
        content: bytes = b"",
        url: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.content = content
        self.url = url
        self.headers = headers or {"Content-Type": "text/html; charset=utf-8"}


class FakeSession:
    """Replays queued responses (or raises queued exceptions) for `get`."""

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if not item.url:
            item.url = url
        return item


class FakeFetcher:
    """Serves canned HTML by URL; unknown URLs come back as HTTP 404."""

    def __init__(self, pages: dict[str, str], *, on_fetch: Callable[[str], None] | None = None) -> None:
        self.pages = dict(pages)
        self.on_fetch = on_fetch
        self.fetched: list[str] = []
        self._lock = threading.Lock()

    def fetch(self, url: str) -> FetchResult:
        with self._lock:
            self.fetched.append(url)
        if self.on_fetch is not None:
            self.on_fetch(url)

        html = self.pages.get(url)
        if html is None:
            return FetchResult(
                requested_url=url,
                status_code=404,
                error_kind=FetchErrorKind.HTTP_STATUS,
                error="HTTP 404: page not accessible",
            )
        body = html.encode("utf-8")
        return FetchResult(
            requested_url=url,
            final_url=url,
            status_code=200,
            body=body,
            document=parse_html(body),
            attempts=1,
        )


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend(index_name="recipes")


@pytest.fixture
def crawl_config(tmp_path) -> CrawlConfig:
    return CrawlConfig(
        seeds=[],
        workers=2,
        max_depth=2,
        domain_delay_seconds=0.0,
        max_requests_per_domain=2,
        crawl_timeout_seconds=10.0,
        fetch_attempts=3,
        retry_backoff_seconds=0.0,
        server_error_backoff_seconds=0.0,
        update_backoff_seconds=0.0,
        backup_dir=None,
        search=SearchConfig(backend="memory"),
    )


@pytest.fixture
def page() -> Callable[..., str]:
    return render_page


@pytest.fixture
def soup() -> Callable[[str], Any]:
    return lambda html: parse_html(html.encode("utf-8"))
