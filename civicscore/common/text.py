"""Name normalisation and similarity."""

from __future__ import annotations

import html
import re

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_WARD_RE = re.compile(r"ward\s*(\d+)", re.IGNORECASE)
MIN_WORD_LENGTH = 3


def decode_html_entities(value: str | None) -> str:
    if not value:
        return ""
    return _CONTROL_CHARS_RE.sub("", html.unescape(value))


def override_key(name: str | None) -> str:
    return decode_html_entities(name).lower().strip()


def normalise_name(name: str | None) -> str:
    cleaned = decode_html_entities(name).lower()
    cleaned = _NON_ALNUM_RE.sub(" ", cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def name_words(name: str | None) -> set[str]:
    return {word for word in normalise_name(name).split(" ") if len(word) >= MIN_WORD_LENGTH}


def name_similarity(first: str | None, second: str | None) -> float:
    """Jaccard index over the normalised word sets of two names."""
    left = normalise_name(first)
    right = normalise_name(second)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0

    left_words = name_words(left)
    right_words = name_words(right)
    if not left_words or not right_words:
        return 0.0
    return len(left_words & right_words) / len(left_words | right_words)


def normalise_ward(value: str | None) -> str | None:
    """Reduce ``"Ward 14"``, ``"14"`` and ``" 14 "`` to ``"14"``."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    match = _WARD_RE.search(text)
    if match:
        return str(int(match.group(1)))
    if text.isdigit():
        return str(int(text))
    return text
