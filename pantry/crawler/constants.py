"""Default values shared by crawler config, fetcher, and CLI."""

from __future__ import annotations


DEFAULT_WORKERS = 10
DEFAULT_MAX_DEPTH = 3
DEFAULT_DOMAIN_DELAY_SECONDS = 1.0
DEFAULT_MAX_REQUESTS_PER_DOMAIN = 5
DEFAULT_CRAWL_TIMEOUT_SECONDS = 30 * 60.0

DEFAULT_REQUEST_TIMEOUT_SECONDS = 45.0
DEFAULT_FETCH_ATTEMPTS = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
DEFAULT_SERVER_ERROR_BACKOFF_SECONDS = 3.0

DEFAULT_SIMILARITY_THRESHOLD = 0.8
DEFAULT_UPDATE_RETRIES = 3
DEFAULT_UPDATE_BACKOFF_SECONDS = 0.2

DEFAULT_BACKUP_DIR = "recipe_backups"

DEFAULT_SEARCH_BACKEND = "elasticsearch"
DEFAULT_ELASTICSEARCH_URL = "http://localhost:9200"
DEFAULT_INDEX_NAME = "recipes"
DEFAULT_CONNECT_RETRIES = 5
DEFAULT_CONNECT_RETRY_DELAY_SECONDS = 3.0
DEFAULT_SEARCH_TIMEOUT_SECONDS = 30.0

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

# Popular recipe sites crawled when no explicit seeds are given.
DEFAULT_SEEDS: tuple[str, ...] = (
    "https://pinchofyum.com/recipes",
    "https://minimalistbaker.com/recipes",
    "https://cookieandkate.com/recipes",
    "https://loveandlemons.com/recipes",
    "https://smittenkitchen.com/recipes",
    "https://seriouseats.com/recipes",
    "https://halfbakedharvest.com/category/recipes",
    "https://101cookbooks.com/recipes",
    "https://food52.com/recipes",
    "https://budgetbytes.com/category/recipes",
    "https://thewoksoflife.com/recipes",
    "https://www.delish.com/cooking/recipe-ideas/",
    "https://www.allrecipes.com/recipes/",
    "https://www.foodnetwork.com/recipes",
    "https://www.epicurious.com/recipes",
    "https://www.simplyrecipes.com/recipes/",
)

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".yaml", ".yml", ".json")


__all__ = [
    "DEFAULT_BACKUP_DIR",
    "DEFAULT_CONNECT_RETRIES",
    "DEFAULT_CONNECT_RETRY_DELAY_SECONDS",
    "DEFAULT_CRAWL_TIMEOUT_SECONDS",
    "DEFAULT_DOMAIN_DELAY_SECONDS",
    "DEFAULT_ELASTICSEARCH_URL",
    "DEFAULT_FETCH_ATTEMPTS",
    "DEFAULT_HTTP_HEADERS",
    "DEFAULT_INDEX_NAME",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_REQUESTS_PER_DOMAIN",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "DEFAULT_RETRY_BACKOFF_SECONDS",
    "DEFAULT_SEARCH_BACKEND",
    "DEFAULT_SEARCH_TIMEOUT_SECONDS",
    "DEFAULT_SEEDS",
    "DEFAULT_SERVER_ERROR_BACKOFF_SECONDS",
    "DEFAULT_SIMILARITY_THRESHOLD",
    "DEFAULT_UPDATE_BACKOFF_SECONDS",
    "DEFAULT_UPDATE_RETRIES",
    "DEFAULT_USER_AGENT",
    "DEFAULT_WORKERS",
    "JSON_INDENT",
    "SUPPORTED_CONFIG_SUFFIXES",
]
