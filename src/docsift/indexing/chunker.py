"""
Chunking utilities for extracted document text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_SENTENCE_END_RE = re.compile(r"[.!?]\s")
_BOUNDARY_WINDOW = 100


@dataclass(frozen=True)
class TextChunk:
    """A content chunk with source offsets."""

    text: str
    position: int
    start_char: int
    end_char: int


class SmartChunker:
    """
    Sentence-aware chunker with overlap.

    Windows of ``chunk_size`` characters are snapped to the last sentence end
    found within ``_BOUNDARY_WINDOW`` characters of the window boundary.
    """

    def __init__(self, chunk_size: int = 1500, overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        if overlap < 0:
            raise ValueError("overlap must be >= 0")
        if overlap >= chunk_size:
            raise ValueError("overlap must be smaller than chunk_size")

        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk_text(self, text: str) -> list[TextChunk]:
        """
        Split text into overlapping chunks while preferring sentence ends.
        """
        if not text:
            return []

        chunks: list[TextChunk] = []
        start = 0
        position = 0
        total = len(text)

        while start < total:
            end = min(start + self.chunk_size, total)

            if end < total:
                boundary = self._sentence_boundary(text, start, end)
                if boundary is not None:
                    end = boundary

            chunk_text = text[start:end].strip()
            if chunk_text:
                chunks.append(
                    TextChunk(
                        text=chunk_text,
                        position=position,
                        start_char=start,
                        end_char=end,
                    )
                )
                position += 1

            if end >= total:
                break
            next_start = end - self.overlap
            if next_start <= start:
                next_start = end
            start = next_start

        return chunks

    @staticmethod
    def _sentence_boundary(text: str, start: int, end: int) -> int | None:
        search_start = max(start, end - _BOUNDARY_WINDOW)
        search_end = min(len(text), end + _BOUNDARY_WINDOW)
        last_match = None
        for match in _SENTENCE_END_RE.finditer(text, search_start, search_end):
            last_match = match
        if last_match is None:
            return None
        # Keep the punctuation, leave the whitespace for the next chunk.
        return last_match.start() + 1


def chunk_text(text: str, chunk_size: int = 1500, overlap: int = 200) -> list[str]:
    """Return the chunk texts for *text*."""
    return [chunk.text for chunk in SmartChunker(chunk_size, overlap).chunk_text(text)]
