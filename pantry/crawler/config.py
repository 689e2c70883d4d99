"""Typed crawler configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_BACKUP_DIR,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_CONNECT_RETRY_DELAY_SECONDS,
    DEFAULT_CRAWL_TIMEOUT_SECONDS,
    DEFAULT_DOMAIN_DELAY_SECONDS,
    DEFAULT_ELASTICSEARCH_URL,
    DEFAULT_FETCH_ATTEMPTS,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_INDEX_NAME,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_REQUESTS_PER_DOMAIN,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_SEARCH_BACKEND,
    DEFAULT_SEARCH_TIMEOUT_SECONDS,
    DEFAULT_SEEDS,
    DEFAULT_SERVER_ERROR_BACKOFF_SECONDS,
    DEFAULT_SIMILARITY_THRESHOLD,
    DEFAULT_UPDATE_BACKOFF_SECONDS,
    DEFAULT_UPDATE_RETRIES,
    DEFAULT_USER_AGENT,
    DEFAULT_WORKERS,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict
from .url import normalize_domain


SEARCH_BACKENDS = ("elasticsearch", "memory")


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True)
class SearchConfig:
    """Connection settings for the storage/search backend."""

    backend: str = DEFAULT_SEARCH_BACKEND
    url: str = DEFAULT_ELASTICSEARCH_URL
    index_name: str = DEFAULT_INDEX_NAME
    connect_retries: int = DEFAULT_CONNECT_RETRIES
    connect_retry_delay_seconds: float = DEFAULT_CONNECT_RETRY_DELAY_SECONDS
    request_timeout_seconds: float = DEFAULT_SEARCH_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        self.backend = self.backend.strip().lower()
        if self.backend not in SEARCH_BACKENDS:
            raise ValueError(f"backend must be one of {SEARCH_BACKENDS}, got {self.backend!r}")
        if not self.index_name.strip():
            raise ValueError("index_name cannot be empty")
        if self.connect_retries <= 0:
            raise ValueError("connect_retries must be > 0")
        if self.connect_retry_delay_seconds < 0:
            raise ValueError("connect_retry_delay_seconds must be >= 0")
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

    def to_dict(self) -> JSONDict:
        return {
            "backend": self.backend,
            "url": self.url,
            "index_name": self.index_name,
            "connect_retries": self.connect_retries,
            "connect_retry_delay_seconds": self.connect_retry_delay_seconds,
            "request_timeout_seconds": self.request_timeout_seconds,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SearchConfig":
        return cls(
            backend=str(payload.get("backend", DEFAULT_SEARCH_BACKEND)),
            url=str(payload.get("url", DEFAULT_ELASTICSEARCH_URL)),
            index_name=str(payload.get("index_name", DEFAULT_INDEX_NAME)),
            connect_retries=_as_int(
                payload.get("connect_retries", DEFAULT_CONNECT_RETRIES), "search.connect_retries"
            ),
            connect_retry_delay_seconds=_as_float(
                payload.get("connect_retry_delay_seconds", DEFAULT_CONNECT_RETRY_DELAY_SECONDS),
                "search.connect_retry_delay_seconds",
            ),
            request_timeout_seconds=_as_float(
                payload.get("request_timeout_seconds", DEFAULT_SEARCH_TIMEOUT_SECONDS),
                "search.request_timeout_seconds",
            ),
        )


@dataclass(slots=True)
class CrawlConfig:
    """Top-level crawler configuration used by scheduler, fetcher, and gate."""

    seeds: list[str] = field(default_factory=lambda: list(DEFAULT_SEEDS))

    workers: int = DEFAULT_WORKERS
    max_depth: int = DEFAULT_MAX_DEPTH
    domain_delay_seconds: float = DEFAULT_DOMAIN_DELAY_SECONDS
    max_requests_per_domain: int = DEFAULT_MAX_REQUESTS_PER_DOMAIN
    crawl_timeout_seconds: float = DEFAULT_CRAWL_TIMEOUT_SECONDS

    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    fetch_attempts: int = DEFAULT_FETCH_ATTEMPTS
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    server_error_backoff_seconds: float = DEFAULT_SERVER_ERROR_BACKOFF_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))

    allowed_domains: list[str] = field(default_factory=list)
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    update_retries: int = DEFAULT_UPDATE_RETRIES
    update_backoff_seconds: float = DEFAULT_UPDATE_BACKOFF_SECONDS

    backup_dir: str | None = DEFAULT_BACKUP_DIR
    site_profiles_path: str | None = None
    debug: bool = False

    search: SearchConfig = field(default_factory=SearchConfig)

    def __post_init__(self) -> None:
        self.seeds = [seed.strip() for seed in self.seeds if seed and seed.strip()]
        self.allowed_domains = [
            domain for domain in (normalize_domain(item) for item in self.allowed_domains) if domain
        ]

        if self.workers <= 0:
            raise ValueError("workers must be > 0")
        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.domain_delay_seconds < 0:
            raise ValueError("domain_delay_seconds must be >= 0")
        if self.max_requests_per_domain <= 0:
            raise ValueError("max_requests_per_domain must be > 0")
        if self.crawl_timeout_seconds <= 0:
            raise ValueError("crawl_timeout_seconds must be > 0")
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")
        if self.fetch_attempts <= 0:
            raise ValueError("fetch_attempts must be > 0")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0")
        if self.server_error_backoff_seconds < 0:
            raise ValueError("server_error_backoff_seconds must be >= 0")
        if not 0.0 < self.similarity_threshold <= 1.0:
            raise ValueError("similarity_threshold must be in (0, 1]")
        if self.update_retries < 0:
            raise ValueError("update_retries must be >= 0")
        if self.update_backoff_seconds < 0:
            raise ValueError("update_backoff_seconds must be >= 0")

    def headers(self) -> dict[str, str]:
        """Return request headers with the configured User-Agent applied."""

        merged = dict(self.default_headers)
        merged["User-Agent"] = self.user_agent
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for logs and reproducibility."""

        return {
            "seeds": list(self.seeds),
            "workers": self.workers,
            "max_depth": self.max_depth,
            "domain_delay_seconds": self.domain_delay_seconds,
            "max_requests_per_domain": self.max_requests_per_domain,
            "crawl_timeout_seconds": self.crawl_timeout_seconds,
            "request_timeout_seconds": self.request_timeout_seconds,
            "fetch_attempts": self.fetch_attempts,
            "retry_backoff_seconds": self.retry_backoff_seconds,
            "server_error_backoff_seconds": self.server_error_backoff_seconds,
            "user_agent": self.user_agent,
            "default_headers": dict(self.default_headers),
            "allowed_domains": list(self.allowed_domains),
            "similarity_threshold": self.similarity_threshold,
            "update_retries": self.update_retries,
            "update_backoff_seconds": self.update_backoff_seconds,
            "backup_dir": self.backup_dir,
            "site_profiles_path": self.site_profiles_path,
            "debug": self.debug,
            "search": self.search.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary; missing keys take defaults."""

        raw_seeds = payload.get("seeds")
        seeds = list(DEFAULT_SEEDS) if raw_seeds is None else [str(seed) for seed in raw_seeds]

        raw_search = payload.get("search") or {}
        if not isinstance(raw_search, Mapping):
            raise ValueError(f"Invalid mapping for 'search': {raw_search!r}")

        return cls(
            seeds=seeds,
            workers=_as_int(payload.get("workers", DEFAULT_WORKERS), "workers"),
            max_depth=_as_int(payload.get("max_depth", DEFAULT_MAX_DEPTH), "max_depth"),
            domain_delay_seconds=_as_float(
                payload.get("domain_delay_seconds", DEFAULT_DOMAIN_DELAY_SECONDS),
                "domain_delay_seconds",
            ),
            max_requests_per_domain=_as_int(
                payload.get("max_requests_per_domain", DEFAULT_MAX_REQUESTS_PER_DOMAIN),
                "max_requests_per_domain",
            ),
            crawl_timeout_seconds=_as_float(
                payload.get("crawl_timeout_seconds", DEFAULT_CRAWL_TIMEOUT_SECONDS),
                "crawl_timeout_seconds",
            ),
            request_timeout_seconds=_as_float(
                payload.get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS),
                "request_timeout_seconds",
            ),
            fetch_attempts=_as_int(
                payload.get("fetch_attempts", DEFAULT_FETCH_ATTEMPTS), "fetch_attempts"
            ),
            retry_backoff_seconds=_as_float(
                payload.get("retry_backoff_seconds", DEFAULT_RETRY_BACKOFF_SECONDS),
                "retry_backoff_seconds",
            ),
            server_error_backoff_seconds=_as_float(
                payload.get("server_error_backoff_seconds", DEFAULT_SERVER_ERROR_BACKOFF_SECONDS),
                "server_error_backoff_seconds",
            ),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            default_headers={
                str(k): str(v)
                for k, v in dict(payload.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
            allowed_domains=[str(item) for item in payload.get("allowed_domains") or []],
            similarity_threshold=_as_float(
                payload.get("similarity_threshold", DEFAULT_SIMILARITY_THRESHOLD),
                "similarity_threshold",
            ),
            update_retries=_as_int(
                payload.get("update_retries", DEFAULT_UPDATE_RETRIES), "update_retries"
            ),
            update_backoff_seconds=_as_float(
                payload.get("update_backoff_seconds", DEFAULT_UPDATE_BACKOFF_SECONDS),
                "update_backoff_seconds",
            ),
            backup_dir=_as_optional_str(payload.get("backup_dir", DEFAULT_BACKUP_DIR)),
            site_profiles_path=_as_optional_str(payload.get("site_profiles_path")),
            debug=_as_bool(payload.get("debug", False), "debug"),
            search=SearchConfig.from_dict(raw_search),
        )


def read_mapping_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON or YAML file whose top level is a mapping."""

    file_path = Path(path)
    suffix = file_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    text = file_path.read_text(encoding="utf-8")
    payload = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError(f"Config at {file_path} must be a mapping at top level")
    return payload


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    return CrawlConfig.from_dict(read_mapping_file(path))


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "CrawlConfig",
    "SEARCH_BACKENDS",
    "SearchConfig",
    "load_config",
    "read_mapping_file",
    "save_config",
]
