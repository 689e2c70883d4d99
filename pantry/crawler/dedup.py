"""Title normalization and fuzzy similarity used for near-duplicate detection."""

from __future__ import annotations

import hashlib
import re

from .url import canonical_url

MARKETING_TOKENS = ("the", "best", "easy", "homemade", "recipe", "recipes")

_MARKETING_RE = re.compile(r"\b(?:" + "|".join(MARKETING_TOKENS) + r")\b")
_NON_WORD_RE = re.compile(r"[^\w\s]+|_")
_WHITESPACE_RE = re.compile(r"\s+")

RECORD_ID_CHARS = 20


def normalize_title(title: str) -> str:
    """Lowercase, drop marketing words, turn punctuation into spaces, collapse whitespace.

    >>> normalize_title("The Best Chocolate Cake Recipe!")
    'chocolate cake'
    """

    text = (title or "").lower()
    text = _NON_WORD_RE.sub(" ", text)
    text = _MARKETING_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def levenshtein(left: str, right: str) -> int:
    """Edit distance with unit-cost insert, delete, and substitute."""

    if left == right:
        return 0
    if len(left) < len(right):
        left, right = right, left
    if not right:
        return len(left)

    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (left_char != right_char),
                )
            )
        previous = current
    return previous[-1]


def title_similarity(left: str, right: str) -> float:
    """Return 1 - distance / max length over normalized titles, in [0, 1].

    Two titles that both normalize to the empty string are not considered
    similar; there is nothing left to compare.
    """

    a = normalize_title(left)
    b = normalize_title(right)
    if not a or not b:
        return 0.0
    longest = max(len(a), len(b))
    return 1.0 - levenshtein(a, b) / longest


def record_id_for(url: str) -> str:
    """Deterministic record id derived from the canonical URL."""

    normalized = canonical_url(url) or url
    return hashlib.sha1(normalized.encode("utf-8")).hexdigest()[:RECORD_ID_CHARS]


__all__ = [
    "MARKETING_TOKENS",
    "levenshtein",
    "normalize_title",
    "record_id_for",
    "title_similarity",
]
