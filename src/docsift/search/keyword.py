"""
Per-request TF-IDF keyword scoring.

The index is fitted over the candidate set of one search and thrown away
afterwards, so keyword scores are only comparable within a single result set.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer

from ..storage import DocumentRecord

logger = logging.getLogger(__name__)

# Keep single-character tokens; the default pattern drops them.
_TOKEN_PATTERN = r"(?u)\b\w+\b"


@dataclass(frozen=True)
class KeywordMatch:
    """Normalized keyword relevance of one document."""

    doc_id: str
    score: float


def document_corpus_text(document: DocumentRecord) -> str:
    return f"{document.title} {document.text} {' '.join(document.tags)}"


class KeywordIndex:
    """TF-IDF model over a fixed set of documents."""

    def __init__(self, documents: Sequence[DocumentRecord]) -> None:
        self.doc_ids = [document.id for document in documents]
        self.vectorizer = TfidfVectorizer(
            lowercase=True,
            norm=None,
            token_pattern=_TOKEN_PATTERN,
        )
        self._matrix = None
        if not documents:
            return
        try:
            self._matrix = self.vectorizer.fit_transform(
                [document_corpus_text(document) for document in documents]
            )
        except ValueError:
            # Raised for an empty vocabulary, e.g. only blank documents.
            logger.debug("Keyword index has no vocabulary for %d documents", len(documents))
            self._matrix = None

    def raw_scores(self, query: str) -> np.ndarray:
        """Summed TF-IDF weight of each query term, one value per document."""
        scores = np.zeros(len(self.doc_ids), dtype=float)
        if self._matrix is None:
            return scores
        vocabulary = self.vectorizer.vocabulary_
        analyze = self.vectorizer.build_analyzer()
        for term in query.split():
            # "budget?" or "q3-budget" yield the same tokens the corpus was fitted on.
            for token in analyze(term):
                column = vocabulary.get(token)
                if column is None:
                    continue
                scores += self._matrix[:, column].toarray().ravel()
        return scores

    def score(self, query: str) -> list[KeywordMatch]:
        """Score every document against *query*, normalized to [0, 1]."""
        scores = self.raw_scores(query)
        if scores.size == 0:
            return []
        top = float(scores.max())
        divisor = top if top > 0 else 1.0
        matches = [
            KeywordMatch(doc_id=doc_id, score=float(value) / divisor)
            for doc_id, value in zip(self.doc_ids, scores)
        ]
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches
