from pantry.crawler.classifier import URLClassifier
from pantry.crawler.types import PageKind


def test_listing_urls():
    classifier = URLClassifier()
    assert classifier.classify("https://example.com/recipes/") == PageKind.LISTING
    assert classifier.classify("https://example.com/recipes/breakfast/") == PageKind.LISTING
    assert classifier.classify("https://example.com/category/desserts") == PageKind.LISTING
    assert classifier.classify("https://www.delish.com/cooking/recipe-ideas/") == PageKind.LISTING


def test_detail_urls():
    classifier = URLClassifier()
    assert classifier.classify("https://example.com/recipes/breakfast/pancakes/") == PageKind.DETAIL
    assert classifier.classify("https://example.com/pancakes-recipe") == PageKind.DETAIL
    assert classifier.classify("https://example.com/about") == PageKind.DETAIL


def test_likely_recipe():
    classifier = URLClassifier()
    assert classifier.is_likely_recipe("https://example.com/pancakes-recipe")
    assert classifier.is_likely_recipe("https://example.com/recipe/fluffy-pancakes")
    assert classifier.is_likely_recipe("https://example.com/2024/123456/tomato-soup")
    assert not classifier.is_likely_recipe("https://example.com/about")


def test_generic_link_discovery_filters_and_dedups(soup):
    document = soup(
        """
        <html><body>
          <a href="/recipes/breakfast/">Breakfast</a>
          <a href="/recipes/breakfast/#top">Breakfast again</a>
          <a href="https://facebook.com/sharer?u=x">Share</a>
          <a href="#comments">Comments</a>
          <a href="/about-us">About</a>
          <a href="https://other.com/recipes/x">Elsewhere</a>
          <a href="/chicken-soup">Chicken soup</a>
        </body></html>
        """
    )
    classifier = URLClassifier(allowed_domains=["example.com"])

    links = classifier.discover_links(document, "https://example.com/")

    assert links == [
        "https://example.com/recipes/breakfast/",
        "https://example.com/chicken-soup",
    ]


def test_profile_link_selectors_keep_document_order(soup):
    document = soup(
        """
        <html><body>
          <a href="/recipes/dinner/">Dinner</a>
          <a href="/about">About</a>
          <a href="/recipe/tacos">Tacos</a>
        </body></html>
        """
    )
    classifier = URLClassifier()

    links = classifier.discover_links(document, "https://pinchofyum.com/")

    assert links == [
        "https://pinchofyum.com/recipes/dinner/",
        "https://pinchofyum.com/recipe/tacos",
    ]
    assert classifier.profile_for("https://www.pinchofyum.com/x").domain == "pinchofyum.com"
    assert classifier.profile_for("https://example.com/x") is None
