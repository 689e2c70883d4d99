"""CLI entrypoint for the recipe crawler."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from pantry.crawler import (
    CrawlConfig,
    CrawlScheduler,
    Fetcher,
    RecipeExtractor,
    URLClassifier,
    UpsertGate,
    load_config,
)
from pantry.crawler.scheduler import resolve_profiles
from pantry.search import (
    BackendUnavailableError,
    MemoryBackend,
    NotFoundError,
    SearchBackend,
    build_backend,
)

LOGGER = logging.getLogger("pantry.crawl")

COMMANDS = ("recipes", "index", "delete", "test-url")
PREVIEW_LINKS = 5
PREVIEW_LIST_ITEMS = 5


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl recipe sites, extract recipes, and index them for search.",
    )

    parser.add_argument(
        "command",
        choices=COMMANDS,
        help=(
            "recipes: crawl the configured seed sites; index [URL]: crawl from URL "
            "(or the seeds); delete: drop the recipes index; test-url URL: extract "
            "one page without storing anything."
        ),
    )
    parser.add_argument("url", nargs="?", default=None, help="URL for 'index' and 'test-url'.")

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config.",
    )
    parser.add_argument("--workers", type=int, default=None, help="Number of crawler workers.")
    parser.add_argument("--depth", type=int, default=None, help="Maximum crawl depth.")
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Minimum seconds between request starts on one domain.",
    )
    parser.add_argument(
        "--max-requests",
        dest="max_requests",
        type=int,
        default=None,
        help="Maximum concurrent requests per domain.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Overall crawl timeout in seconds.",
    )

    parser.add_argument(
        "--backend",
        choices=("elasticsearch", "memory"),
        default=None,
        help="Storage/search backend.",
    )
    parser.add_argument("--es-url", dest="es_url", type=str, default=None)
    parser.add_argument("--index-name", dest="index_name", type=str, default=None)
    parser.add_argument(
        "--backup-dir",
        dest="backup_dir",
        type=str,
        default=None,
        help="Directory for per-recipe JSON backups. Pass an empty string to disable.",
    )

    parser.add_argument(
        "--log-file",
        dest="log_file",
        type=Path,
        default=Path("logs/crawl.log"),
    )
    parser.add_argument(
        "--print-stats-json",
        dest="print_stats_json",
        action="store_true",
        help="Print full stats JSON in stdout after a crawl.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging, including every extracted field.",
    )

    args = parser.parse_args(argv)
    if args.command == "test-url" and not args.url:
        parser.error("test-url requires a URL")
    if args.command in {"recipes", "delete"} and args.url:
        parser.error(f"{args.command} does not take a URL")
    return args


def build_config(args: argparse.Namespace) -> CrawlConfig:
    payload: dict[str, Any] = {}
    if args.config is not None:
        payload = load_config(args.config).to_dict()

    if args.command == "index" and args.url:
        payload["seeds"] = [args.url]

    if args.workers is not None:
        payload["workers"] = args.workers
    if args.depth is not None:
        payload["max_depth"] = args.depth
    if args.delay is not None:
        payload["domain_delay_seconds"] = args.delay
    if args.max_requests is not None:
        payload["max_requests_per_domain"] = args.max_requests
    if args.timeout is not None:
        payload["crawl_timeout_seconds"] = args.timeout
    if args.backup_dir is not None:
        payload["backup_dir"] = args.backup_dir or None
    if args.debug:
        payload["debug"] = True

    search = dict(payload.get("search") or {})
    if args.backend is not None:
        search["backend"] = args.backend
    if args.es_url is not None:
        search["url"] = args.es_url
    if args.index_name is not None:
        search["index_name"] = args.index_name
    payload["search"] = search

    return CrawlConfig.from_dict(payload)


def setup_logging(log_path: Path, debug: bool) -> None:
    log_level = logging.DEBUG if debug else logging.INFO

    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # Trafilatura warns "discarding data: None" on most recipe pages.
    logging.getLogger("trafilatura").setLevel(logging.ERROR)
    logging.getLogger("trafilatura.core").setLevel(logging.ERROR)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("elastic_transport").setLevel(logging.WARNING)


def run_crawl(config: CrawlConfig, backend: SearchBackend, *, print_stats_json: bool) -> None:
    gate = UpsertGate.from_config(backend, config)
    scheduler = CrawlScheduler(config, gate=gate)
    summary = scheduler.run()

    stats = summary.stats
    print("\n--- Core Stats ---")
    for key in [
        "frontier_enqueued",
        "fetched_ok",
        "fetched_error",
        "listing_pages",
        "detail_pages",
        "recipes_created",
        "recipes_updated",
        "rejected_invalid",
        "rejected_duplicate",
        "store_failed",
        "duration_seconds",
    ]:
        if key in stats:
            print(f"{key}: {stats[key]}")
    if summary.timed_out:
        print("Crawl stopped at the configured timeout.")

    if print_stats_json:
        print("\n--- Full Stats JSON ---")
        print(json.dumps(stats, indent=2, sort_keys=True))

    print(f"\nCrawling completed. Processed {summary.visited} URLs.")


def delete_index(backend: SearchBackend) -> None:
    try:
        backend.delete_index()
    except NotFoundError:
        print(f"Index {backend.index_name!r} does not exist.")
        return
    print(f"Deleted index {backend.index_name!r}.")


def _preview(value: Any) -> str:
    if isinstance(value, list):
        if not value:
            return "[]"
        shown = "\n".join(f"    - {item}" for item in value[:PREVIEW_LIST_ITEMS])
        extra = len(value) - PREVIEW_LIST_ITEMS
        return f"{len(value)} item(s)\n{shown}" + (f"\n    ... {extra} more" if extra > 0 else "")
    return str(value) if value else "<empty>"


def preview_url(config: CrawlConfig, url: str) -> int:
    """Fetch and extract one page, print what would be stored, and store nothing."""

    profiles = resolve_profiles(config)
    classifier = URLClassifier(profiles, allowed_domains=config.allowed_domains)
    extractor = RecipeExtractor(profiles)
    result = Fetcher(config).fetch(url)

    if not result.ok:
        print(f"Failed to fetch {url}: {result.error}")
        return 1

    page_url = result.url
    kind = classifier.classify(page_url)
    record = extractor.extract(result.document, page_url, classifier.profile_for(page_url))

    print(f"\n=== {page_url} ===")
    print(f"classification: {kind.value}")
    print(f"likely recipe: {classifier.is_likely_recipe(page_url)}")

    print("\n--- Extracted Fields ---")
    for key, value in record.to_json().items():
        if key in {"id", "crawl_date"}:
            continue
        if key == "body":
            value = f"<{len(record.body)} chars>"
        print(f"{key}: {_preview(value)}")

    # Validation never touches the backend; an empty in-memory one stands in.
    gate = UpsertGate(MemoryBackend(), allowed_domains=config.allowed_domains)
    validated, reason = gate.validate(record, likely_recipe=classifier.is_likely_recipe(page_url))
    print("\n--- Minimum Data Check ---")
    print("passes" if validated is not None else f"fails: {reason}")

    links = classifier.discover_links(result.document, page_url)
    print(f"\n--- Links ({len(links)} found, showing {min(len(links), PREVIEW_LINKS)}) ---")
    for link in links[:PREVIEW_LINKS]:
        print(f"  {link}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, debug=args.debug)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    try:
        if args.command == "test-url":
            return preview_url(config, args.url)

        backend = build_backend(config.search)
        try:
            if args.command == "delete":
                delete_index(backend)
                return 0

            LOGGER.info(
                "Starting crawl: command=%s, seeds=%d, workers=%d, backend=%s",
                args.command,
                len(config.seeds),
                config.workers,
                config.search.backend,
            )
            run_crawl(config, backend, print_stats_json=args.print_stats_json)
        finally:
            backend.close()
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except BackendUnavailableError as exc:
        logging.error("Search backend unavailable: %s", exc)
        return 1
    except Exception:
        logging.exception("Crawler run failed")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
