"""URL canonicalization, href filtering, and domain matching helpers."""

from __future__ import annotations

import posixpath
import re
from typing import Iterable, Sequence
from urllib.parse import parse_qsl, unquote, urlencode, urljoin, urlsplit, urlunsplit


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("#", "javascript", "mailto:", "tel:", "data:")
SOCIAL_DOMAINS = (
    "twitter.com",
    "x.com",
    "facebook.com",
    "instagram.com",
    "pinterest.com",
    "youtube.com",
    "tiktok.com",
)
TRACKING_QUERY_PARAM_PREFIXES = ("utm_",)
TRACKING_QUERY_PARAMS = {
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
    "igshid",
    "ref_src",
}


def host_from_url(url: str) -> str:
    """Extract the lowercased host of a URL with any `www.` prefix removed."""

    host = (urlsplit(url).hostname or "").strip().lower()
    if host.startswith("www."):
        host = host[4:]
    return host.strip(".")


def normalize_domain(domain_or_url: str) -> str:
    """Normalize a bare domain or a URL to the form used for matching."""

    raw = (domain_or_url or "").strip().lower()
    if not raw:
        return ""
    return host_from_url(raw if "://" in raw else f"//{raw}")


def is_http_url(url: str, allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES) -> bool:
    """Return True if URL is absolute and has an allowed HTTP-like scheme."""

    parsed = urlsplit((url or "").strip())
    if not parsed.scheme or not parsed.netloc:
        return False
    return parsed.scheme.lower() in allowed_schemes


def _normalize_query(query: str) -> str:
    if not query:
        return ""
    pairs = [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if key.lower() not in TRACKING_QUERY_PARAMS
        and not key.lower().startswith(TRACKING_QUERY_PARAM_PREFIXES)
    ]
    return urlencode(sorted(pairs), doseq=True)


def _normalize_path(path: str) -> str:
    if not path:
        return "/"
    collapsed = re.sub(r"/{2,}", "/", path)
    normalized = posixpath.normpath(collapsed)
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    if collapsed.endswith("/") and normalized != "/":
        normalized += "/"
    return normalized


def canonical_url(url: str) -> str | None:
    """Canonicalize an absolute URL for visited-set and dedup keys.

    Lowercases scheme and host, drops default ports, fragments, and tracking
    parameters, and sorts the query. The trailing slash is preserved because
    listing detection depends on path shape.
    """

    raw = (url or "").strip()
    if not is_http_url(raw):
        return None

    parsed = urlsplit(raw)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    if not host:
        return None
    try:
        port = parsed.port
    except ValueError:
        return None
    netloc = host
    if port is not None and (scheme, port) not in {("http", 80), ("https", 443)}:
        netloc = f"{host}:{port}"

    return urlunsplit((scheme, netloc, _normalize_path(parsed.path), _normalize_query(parsed.query), ""))


def is_social_url(url: str) -> bool:
    host = host_from_url(url)
    return any(host == domain or host.endswith("." + domain) for domain in SOCIAL_DOMAINS)


def is_crawlable_href(href: str | None) -> bool:
    """Return False for empty, fragment, script, mail, and phone links."""

    if not href:
        return False
    candidate = href.strip().lower()
    return bool(candidate) and not candidate.startswith(SKIP_HREF_PREFIXES)


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative href against the page URL and canonicalize it.

    Rooted paths join against the page's scheme and host; other relative paths
    join against the page's current directory. Social-sharing hosts are dropped.
    """

    if not is_crawlable_href(href):
        return None
    absolute = urljoin(base_url, href.strip())
    if is_social_url(absolute):
        return None
    return canonical_url(absolute)


def is_allowed_domain(url_or_host: str, allowed_domains: Iterable[str]) -> bool:
    """Return True when the host equals or is a subdomain of an allowed domain.

    An empty allowlist admits every host.
    """

    allowed = [normalize_domain(domain) for domain in allowed_domains]
    allowed = [domain for domain in allowed if domain]
    if not allowed:
        return True

    host = host_from_url(url_or_host) if "://" in url_or_host else normalize_domain(url_or_host)
    if not host:
        return False
    return any(host == domain or host.endswith("." + domain) for domain in allowed)


def path_segments(url: str) -> list[str]:
    return [segment for segment in urlsplit(url).path.split("/") if segment]


def title_from_url(url: str) -> str:
    """Derive a readable title from the last path segment (`chocolate-cake` -> `Chocolate Cake`)."""

    segments = path_segments(url)
    if not segments:
        return ""
    slug = unquote(segments[-1])
    slug = re.sub(r"\.(html?|php|aspx?)$", "", slug, flags=re.IGNORECASE)
    words = [word for word in re.split(r"[-_\s]+", slug) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "SKIP_HREF_PREFIXES",
    "SOCIAL_DOMAINS",
    "canonical_url",
    "host_from_url",
    "is_allowed_domain",
    "is_crawlable_href",
    "is_http_url",
    "is_social_url",
    "normalize_domain",
    "path_segments",
    "resolve_url",
    "title_from_url",
]
