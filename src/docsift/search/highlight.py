"""
Snippet highlighting for search results.
"""

from __future__ import annotations

import re

DEFAULT_SNIPPET_LENGTH = 300
_ELLIPSIS = "..."


def highlight_snippet(text: str, query: str, *, max_length: int = DEFAULT_SNIPPET_LENGTH) -> str:
    """Truncate *text* and wrap each query term in ``<mark>`` tags."""
    if not text:
        return ""

    snippet = text[:max_length]
    terms = sorted({term for term in query.split() if term}, key=len, reverse=True)
    if terms:
        pattern = re.compile("|".join(re.escape(term) for term in terms), re.IGNORECASE)
        snippet = pattern.sub(lambda match: f"<mark>{match.group(0)}</mark>", snippet)

    if len(text) > max_length:
        snippet += _ELLIPSIS
    return snippet
