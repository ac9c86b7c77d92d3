"""
Local fallbacks for summaries and tags when the provider cannot be used.
"""

from __future__ import annotations

import re
from collections import Counter

from ..storage import Summary

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]?")
_NON_WORD_RE = re.compile(r"[^a-z0-9\s]")
_STOPWORDS: frozenset[str] = frozenset(
    {
        "the",
        "and",
        "is",
        "in",
        "to",
        "of",
        "a",
        "for",
        "on",
        "with",
        "that",
        "this",
        "it",
        "as",
        "are",
        "was",
        "by",
        "an",
        "be",
        "or",
        "from",
        "at",
        "we",
        "you",
        "your",
    }
)


def local_summary(text: str) -> str:
    """First two sentences of *text*, whitespace collapsed."""
    collapsed = re.sub(r"\s+", " ", text or "").strip()
    if not collapsed:
        return "No content"
    sentences = [match.group(0).strip() for match in _SENTENCE_RE.finditer(collapsed)]
    sentences = [sentence for sentence in sentences if sentence]
    return " ".join(sentences[:2]) or collapsed[:200]


def top_keywords(text: str, n: int = 5) -> list[str]:
    """Most frequent non-stopword terms, first occurrence breaking ties."""
    if not text:
        return []
    words = _NON_WORD_RE.sub(" ", text.lower()).split()
    counts = Counter(
        word for word in words if len(word) >= 3 and word not in _STOPWORDS
    )
    return [word for word, _ in counts.most_common(n)]


def fallback_summary(text: str, bullets: int = 3) -> Summary:
    return Summary(short=local_summary(text), bullets=tuple(top_keywords(text, bullets)))
