"""
Ranking helpers for merging semantic and keyword result sets.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..storage import ChunkRecord
from .keyword import KeywordMatch
from .semantic import SemanticMatch

DEFAULT_SEMANTIC_WEIGHT = 0.7


@dataclass(frozen=True)
class RankedDocument:
    """Merged retrieval candidate for a document."""

    doc_id: str
    semantic_score: float
    keyword_score: float
    weight: float = DEFAULT_SEMANTIC_WEIGHT
    matched_chunk: ChunkRecord | None = None

    @property
    def combined_score(self) -> float:
        return self.weight * self.semantic_score + (1 - self.weight) * self.keyword_score

    @property
    def matched_by(self) -> str:
        if self.semantic_score > 0 and self.keyword_score > 0:
            return "semantic+keyword"
        if self.semantic_score > 0:
            return "semantic"
        return "keyword"


def fuse_scores(
    semantic: Sequence[SemanticMatch],
    keyword: Sequence[KeywordMatch],
    *,
    weight: float = DEFAULT_SEMANTIC_WEIGHT,
) -> list[RankedDocument]:
    """Union both result sets and sort by the weighted combined score."""
    if not 0.0 <= weight <= 1.0:
        raise ValueError(f"weight must be between 0 and 1, got {weight}")

    semantic_by_id = {match.doc_id: match for match in semantic}
    keyword_by_id = {match.doc_id: match.score for match in keyword}

    doc_ids = list(semantic_by_id)
    doc_ids.extend(doc_id for doc_id in keyword_by_id if doc_id not in semantic_by_id)

    ranked = []
    for doc_id in doc_ids:
        semantic_match = semantic_by_id.get(doc_id)
        ranked.append(
            RankedDocument(
                doc_id=doc_id,
                semantic_score=semantic_match.score if semantic_match else 0.0,
                keyword_score=keyword_by_id.get(doc_id, 0.0),
                weight=weight,
                matched_chunk=semantic_match.chunk if semantic_match else None,
            )
        )
    ranked.sort(key=lambda doc: doc.combined_score, reverse=True)
    return ranked
