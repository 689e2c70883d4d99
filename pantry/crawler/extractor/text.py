"""Text helpers: whitespace cleanup, list normalization, block-wise page text."""

from __future__ import annotations

import re
from typing import Iterable

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

_WHITESPACE_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]+>")
STEP_PREFIX_RE = re.compile(r"^\s*(?:step\s*\d+\s*[:.)-]?|\d+\s*[.):-](?=\s|$))\s*", re.IGNORECASE)

BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "br", "dd", "div", "dl", "dt",
        "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6",
        "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section", "table",
        "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
    }
)
SKIP_TAGS = frozenset({"head", "iframe", "noscript", "script", "style", "svg", "template"})


def clean_text(text: str | None) -> str:
    """Collapse runs of whitespace and trim."""

    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_tags(text: str) -> str:
    """Drop inline markup that some sites embed inside structured-data strings."""

    return clean_text(_TAG_RE.sub(" ", text))


def strip_step_prefix(text: str) -> str:
    """Remove leading "Step 3:" / "3." numbering from an instruction line."""

    return STEP_PREFIX_RE.sub("", text, count=1).strip()


def normalize_lines(lines: Iterable[str], *, strip_steps: bool = False) -> list[str]:
    """Whitespace-normalize, drop empties and duplicates, keep first-seen order."""

    result: list[str] = []
    seen: set[str] = set()
    for line in lines:
        text = clean_text(line)
        if strip_steps:
            text = strip_step_prefix(text)
        if not text or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result


def text_blocks(root: BeautifulSoup | Tag | None) -> list[str]:
    """Return visible text of `root` as one whitespace-collapsed line per block element."""

    if root is None:
        return []

    lines: list[str] = []
    buffer: list[str] = []

    def flush() -> None:
        text = clean_text("".join(buffer))
        buffer.clear()
        if text:
            lines.append(text)

    def walk(node: Tag) -> None:
        for child in node.children:
            if isinstance(child, Tag):
                if child.name in SKIP_TAGS:
                    continue
                if child.name in BLOCK_TAGS:
                    flush()
                    walk(child)
                    flush()
                else:
                    walk(child)
            elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
                buffer.append(str(child))

    walk(root)
    flush()
    return lines


def element_text(element: Tag) -> str:
    return clean_text(element.get_text(" "))


__all__ = [
    "BLOCK_TAGS",
    "STEP_PREFIX_RE",
    "clean_text",
    "element_text",
    "normalize_lines",
    "strip_step_prefix",
    "strip_tags",
    "text_blocks",
]
