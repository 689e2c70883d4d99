"""Crawler package: config, shared types, and the crawl-extract-dedup pipeline."""

from .admission import AdmissionRegistry, DomainAdmission
from .backup import RecipeBackup
from .classifier import URLClassifier
from .config import CrawlConfig, SearchConfig, load_config, save_config
from .dedup import levenshtein, normalize_title, record_id_for, title_similarity
from .extractor import RecipeExtractor, convert_duration
from .fetcher import Fetcher
from .frontier import EnqueueResult, EnqueueStatus, Frontier, VisitedSet
from .gate import UpsertGate
from .profiles import DEFAULT_SITE_PROFILES, FieldSelectors, SiteProfile, find_profile, load_site_profiles
from .scheduler import CrawlScheduler
from .stats import StatsCollector
from .types import (
    CrawlStats,
    CrawlSummary,
    CrawlTask,
    ExtractedRecipe,
    FetchErrorKind,
    FetchResult,
    PageKind,
    UpsertAction,
    UpsertResult,
    utc_now_iso,
)
from .url import canonical_url, host_from_url, normalize_domain, resolve_url, title_from_url

__all__ = [
    "AdmissionRegistry",
    "CrawlConfig",
    "CrawlScheduler",
    "CrawlStats",
    "CrawlSummary",
    "CrawlTask",
    "DEFAULT_SITE_PROFILES",
    "DomainAdmission",
    "EnqueueResult",
    "EnqueueStatus",
    "ExtractedRecipe",
    "FetchErrorKind",
    "FetchResult",
    "Fetcher",
    "FieldSelectors",
    "Frontier",
    "PageKind",
    "RecipeBackup",
    "RecipeExtractor",
    "SearchConfig",
    "SiteProfile",
    "StatsCollector",
    "URLClassifier",
    "UpsertAction",
    "UpsertGate",
    "UpsertResult",
    "VisitedSet",
    "canonical_url",
    "convert_duration",
    "find_profile",
    "host_from_url",
    "levenshtein",
    "load_config",
    "load_site_profiles",
    "normalize_domain",
    "normalize_title",
    "record_id_for",
    "resolve_url",
    "save_config",
    "title_from_url",
    "title_similarity",
    "utc_now_iso",
]
