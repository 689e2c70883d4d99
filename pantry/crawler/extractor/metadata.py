"""Page-level metadata fallbacks: `<title>`, headings, and meta tags."""

from __future__ import annotations

from bs4 import BeautifulSoup

from .text import clean_text


def _meta_content(document: BeautifulSoup, *, name: str | None = None, prop: str | None = None) -> str:
    attrs = {"name": name} if name else {"property": prop}
    for tag in document.find_all("meta", attrs=attrs):
        content = clean_text(tag.get("content"))
        if content:
            return content
    return ""


def page_title(document: BeautifulSoup) -> str:
    """`<title>` text, else the first `<h1>`."""

    if document.title is not None:
        title = clean_text(document.title.get_text(" "))
        if title:
            return title
    heading = document.find("h1")
    if heading is not None:
        return clean_text(heading.get_text(" "))
    return ""


def meta_description(document: BeautifulSoup) -> str:
    """`<meta name=description>`, else `og:description`."""

    return _meta_content(document, name="description") or _meta_content(document, prop="og:description")


def meta_image(document: BeautifulSoup) -> str:
    """`og:image`, else `twitter:image`."""

    return (
        _meta_content(document, prop="og:image")
        or _meta_content(document, name="twitter:image")
        or _meta_content(document, prop="twitter:image")
    )


__all__ = [
    "meta_description",
    "meta_image",
    "page_title",
]
