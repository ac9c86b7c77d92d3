"""
Hybrid search over processed documents.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime

from ..errors import InvalidQueryError, ProviderError, SearchProviderError
from ..providers import AIProvider
from ..storage import DocumentRecord, ProcessingStatus, StorageBackend, Summary
from .highlight import DEFAULT_SNIPPET_LENGTH, highlight_snippet
from .keyword import KeywordIndex, KeywordMatch
from .ranker import DEFAULT_SEMANTIC_WEIGHT, RankedDocument, fuse_scores
from .semantic import SemanticMatch, SemanticMatcher

logger = logging.getLogger(__name__)

QUERY_CHAR_LIMIT = 2048
ALL_CATEGORIES = "All"


@dataclass(frozen=True)
class SearchHit:
    """Ranked document hit with its display snippet."""

    doc_id: str
    title: str
    snippet: str
    summary: Summary | None
    tags: tuple[str, ...]
    category: str
    upload_date: datetime
    score: float
    semantic_score: float
    keyword_score: float
    matched_by: str


@dataclass(frozen=True)
class SearchPage:
    results: list[SearchHit]
    total: int
    page: int
    total_pages: int


class HybridSearchEngine:
    """Blend semantic and keyword relevance over completed documents."""

    def __init__(
        self,
        storage: StorageBackend,
        provider: AIProvider,
        *,
        semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
        snippet_length: int = DEFAULT_SNIPPET_LENGTH,
    ) -> None:
        if not 0.0 <= semantic_weight <= 1.0:
            raise ValueError(f"semantic_weight must be between 0 and 1, got {semantic_weight}")
        self.storage = storage
        self.provider = provider
        self.semantic_weight = semantic_weight
        self.snippet_length = snippet_length
        self.matcher = SemanticMatcher()

    async def search(
        self,
        *,
        query: str,
        category: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> SearchPage:
        if not query or not query.strip():
            raise InvalidQueryError("Query is required")
        page = max(page, 1)
        limit = max(limit, 1)

        candidates = self._candidates(category)
        if not candidates:
            return SearchPage(results=[], total=0, page=1, total_pages=0)

        try:
            query_embedding = await self.provider.embed(
                query[:QUERY_CHAR_LIMIT], task_type="RETRIEVAL_QUERY"
            )
        except ProviderError as exc:
            raise SearchProviderError(f"Could not embed search query: {exc}") from exc

        semantic, keyword = await self._score_parallel(
            query=query,
            query_embedding=query_embedding,
            candidates=candidates,
        )
        ranked = fuse_scores(semantic, keyword, weight=self.semantic_weight)

        self.storage.log_search(
            query=query,
            category=category,
            results_count=len(ranked),
        )
        logger.info(
            "Search %r over %d candidates returned %d results",
            query,
            len(candidates),
            len(ranked),
        )

        start = (page - 1) * limit
        by_id = {document.id: document for document in candidates}
        results = [
            self._to_hit(by_id[doc.doc_id], doc, query)
            for doc in ranked[start : start + limit]
        ]
        return SearchPage(
            results=results,
            total=len(ranked),
            page=page,
            total_pages=math.ceil(len(ranked) / limit),
        )

    def _candidates(self, category: str | None) -> list[DocumentRecord]:
        if category is None or not category.strip() or category == ALL_CATEGORIES:
            category = None
        return self.storage.list_documents(
            status=ProcessingStatus.COMPLETE,
            category=category,
        )

    async def _score_parallel(
        self,
        *,
        query: str,
        query_embedding: list[float],
        candidates: list[DocumentRecord],
    ) -> tuple[list[SemanticMatch], list[KeywordMatch]]:
        semantic, keyword = await asyncio.gather(
            asyncio.to_thread(self.matcher.match, query_embedding, candidates),
            asyncio.to_thread(self._keyword_scores, query, candidates),
        )
        return semantic, keyword

    @staticmethod
    def _keyword_scores(query: str, candidates: list[DocumentRecord]) -> list[KeywordMatch]:
        return KeywordIndex(candidates).score(query)

    def _to_hit(self, document: DocumentRecord, ranked: RankedDocument, query: str) -> SearchHit:
        if ranked.matched_chunk is not None:
            snippet = highlight_snippet(
                ranked.matched_chunk.text, query, max_length=self.snippet_length
            )
        else:
            snippet = highlight_snippet(
                document.text[: self.snippet_length], query, max_length=self.snippet_length
            )
        return SearchHit(
            doc_id=document.id,
            title=document.title,
            snippet=snippet,
            summary=document.summary,
            tags=document.tags,
            category=document.category,
            upload_date=document.upload_date,
            score=ranked.combined_score,
            semantic_score=ranked.semantic_score,
            keyword_score=ranked.keyword_score,
            matched_by=ranked.matched_by,
        )
