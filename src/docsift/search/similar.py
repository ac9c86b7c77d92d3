"""
Nearest-neighbor recommendations from stored first-chunk embeddings.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import DocumentNotFoundError
from ..storage import DocumentRecord, ProcessingStatus, StorageBackend
from .semantic import cosine_similarity


@dataclass(frozen=True)
class SimilarDocument:
    document: DocumentRecord
    score: float


class SimilarityRecommender:
    """Recommend documents whose representative vector is closest."""

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    def recommend(self, doc_id: str, *, limit: int = 5) -> list[SimilarDocument]:
        target = self.storage.get_document(doc_id)
        if target is None:
            raise DocumentNotFoundError(f"Document {doc_id} not found")

        reference = target.first_embedding
        if not reference:
            return []

        neighbors: list[SimilarDocument] = []
        for document in self.storage.list_documents(status=ProcessingStatus.COMPLETE):
            if document.id == target.id:
                continue
            embedding = document.first_embedding
            if not embedding:
                continue
            neighbors.append(
                SimilarDocument(
                    document=document,
                    score=cosine_similarity(reference, embedding),
                )
            )
        neighbors.sort(key=lambda neighbor: neighbor.score, reverse=True)
        return neighbors[: max(limit, 0)]
