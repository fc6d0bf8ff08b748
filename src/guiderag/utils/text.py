"""Text helpers: Hebrew-aware normalization, affix stripping and token chunking."""

from __future__ import annotations

import re
from typing import Iterable, List

# Hebrew points and cantillation marks
_POINTS_RE = re.compile("[\u0591-\u05C7]")
_NON_WORD_RE = re.compile("[^a-z0-9\u0590-\u05FF\u200c\u200d]+")
_WORD_RE = re.compile("[A-Za-z0-9\u0590-\u05FF\u200c\u200d]+")

_FINAL_FORMS = str.maketrans({"ך": "כ", "ם": "מ", "ן": "נ", "ף": "פ", "ץ": "צ"})

# Checked in order, first match wins.
HEBREW_SUFFIXES: tuple[str, ...] = (
    "ויות",
    "יות",
    "ות",
    "יים",
    "ים",
    "ותיו",
    "ויותיו",
    "יותיו",
    "ה",
    "הם",
    "יה",
    "יו",
    "יהן",
    "יהם",
    "נו",
    "כם",
    "כן",
    "י",
    "ו",
    "ת",
)
HEBREW_PREFIXES: tuple[str, ...] = ("ה", "ב", "ל", "מ", "כ", "ש")


def normalize_text(text: str) -> str:
    """Lower-case, drop points, fold final letters and keep only word characters."""
    if not text:
        return ""
    lowered = str(text).lower()
    lowered = _POINTS_RE.sub("", lowered)
    lowered = lowered.translate(_FINAL_FORMS)
    return _NON_WORD_RE.sub(" ", lowered).strip()


def _strip_first(token: str, affixes: Iterable[str], *, suffix: bool) -> str:
    for affix in affixes:
        if len(token) <= len(affix) + 2:
            continue
        if suffix and token.endswith(affix):
            return token[: -len(affix)]
        if not suffix and token.startswith(affix):
            return token[len(affix) :]
    return token


def stem_token(token: str) -> str:
    """Strip at most one known suffix and then one single-letter prefix.

    A suffix or prefix is only removed while the token stays longer than
    ``len(affix) + 2`` characters, so short words survive untouched.
    """
    token = _strip_first(token, HEBREW_SUFFIXES, suffix=True)
    return _strip_first(token, HEBREW_PREFIXES, suffix=False)


def tokenize(text: str) -> List[str]:
    """Normalize ``text`` and return its non-empty stemmed tokens."""
    normalized = normalize_text(text)
    if not normalized:
        return []
    stems = (stem_token(part) for part in normalized.split(" "))
    return [stem for stem in stems if stem]


def word_tokens(text: str) -> List[str]:
    """Split ``text`` into raw word tokens without normalizing them."""
    if not text:
        return []
    return _WORD_RE.findall(text)


def chunk_text(text: str, *, max_tokens: int = 60, min_chars: int = 20) -> List[str]:
    """Group word tokens into consecutive windows of ``max_tokens``.

    Windows whose joined text is ``min_chars`` characters or shorter are dropped.
    """
    words = word_tokens(text)
    step = max(max_tokens, 1)
    chunks: List[str] = []
    for start in range(0, len(words), step):
        window = " ".join(words[start : start + step])
        if len(window) > min_chars:
            chunks.append(window)
    return chunks


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return " ".join(text.split())


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())
