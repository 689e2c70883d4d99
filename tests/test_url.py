from pantry.crawler.url import (
    canonical_url,
    host_from_url,
    is_allowed_domain,
    normalize_domain,
    resolve_url,
    title_from_url,
)


def test_canonical_url_drops_fragment_default_port_and_tracking():
    url = "HTTPS://Example.com:443/recipes/cake/?utm_source=x&b=2&a=1#comments"
    assert canonical_url(url) == "https://example.com/recipes/cake/?a=1&b=2"


def test_canonical_url_rejects_non_http():
    assert canonical_url("ftp://example.com/file") is None
    assert canonical_url("/relative/path") is None
    assert canonical_url("") is None


def test_resolve_rooted_and_relative_hrefs():
    page = "https://example.com/recipes/dinner/"
    assert resolve_url(page, "/recipe/soup") == "https://example.com/recipe/soup"
    assert resolve_url(page, "pasta-bake") == "https://example.com/recipes/dinner/pasta-bake"
    assert resolve_url(page, "https://other.org/x") == "https://other.org/x"


def test_resolve_skips_fragments_scripts_and_social_hosts():
    page = "https://example.com/"
    assert resolve_url(page, "#top") is None
    assert resolve_url(page, "javascript:void(0)") is None
    assert resolve_url(page, "mailto:cook@example.com") is None
    assert resolve_url(page, "https://www.pinterest.com/pin/123") is None
    assert resolve_url(page, "https://twitter.com/share") is None
    assert resolve_url(page, None) is None


def test_host_and_domain_normalization():
    assert host_from_url("https://WWW.Example.com/path") == "example.com"
    assert normalize_domain("www.example.com") == "example.com"
    assert normalize_domain("https://sub.example.com/x") == "sub.example.com"


def test_allowed_domain_matches_subdomains():
    assert is_allowed_domain("https://blog.example.com/a", ["example.com"])
    assert not is_allowed_domain("https://notexample.com/a", ["example.com"])
    assert is_allowed_domain("https://anything.org/", [])


def test_title_from_url_uses_last_segment():
    assert title_from_url("https://example.com/recipes/chocolate-cake/") == "Chocolate Cake"
    assert title_from_url("https://example.com/easy_banana_bread.html") == "Easy Banana Bread"
    assert title_from_url("https://example.com/") == ""
