"""
Vector similarity between a query embedding and stored chunk embeddings.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..storage import ChunkRecord, DocumentRecord


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*; 0 when undefined."""
    if len(a) == 0 or len(a) != len(b):
        return 0.0
    left = np.asarray(a, dtype=float)
    right = np.asarray(b, dtype=float)
    magnitude = float(np.linalg.norm(left) * np.linalg.norm(right))
    if magnitude == 0.0:
        return 0.0
    return float(np.clip(np.dot(left, right) / magnitude, -1.0, 1.0))


@dataclass(frozen=True)
class SemanticMatch:
    """Best-matching chunk of a document for a query vector."""

    doc_id: str
    score: float
    chunk: ChunkRecord


class SemanticMatcher:
    """Score documents by their most similar chunk."""

    def match(
        self,
        query_embedding: Sequence[float],
        documents: Sequence[DocumentRecord],
    ) -> list[SemanticMatch]:
        matches: list[SemanticMatch] = []
        for document in documents:
            best: SemanticMatch | None = None
            for chunk in document.chunks:
                if not chunk.has_embedding:
                    continue
                score = cosine_similarity(query_embedding, chunk.embedding or [])
                if best is None or score > best.score:
                    best = SemanticMatch(doc_id=document.id, score=score, chunk=chunk)
            if best is not None and best.score > 0:
                matches.append(best)
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches
