"""
Document processing pipeline.

Each stage loads the current document snapshot, validates and persists its
status change before doing any work, then persists what it produced. The
workflow in ``docsift.indexing.workflow`` runs the stages in order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from ..config import UNCATEGORIZED, resolve_categories
from ..errors import DocumentNotFoundError, ExtractionError, ProviderError
from ..extraction import extract_text
from ..models import MalformedResponse
from ..providers import AIProvider
from ..storage import (
    ChunkRecord,
    DocumentRecord,
    ProcessingStatus,
    StorageBackend,
    Summary,
)
from .chunker import SmartChunker
from .heuristics import fallback_summary, top_keywords
from .state import apply_stage

logger = logging.getLogger(__name__)

EMBED_CHAR_LIMIT = 2048
EMBED_DELAY_SECONDS = 0.1
SUMMARY_BULLETS = 3
MAX_TAGS = 5

Extractor = Callable[[str, str], str]


class ProcessingPipeline:
    """Extract, chunk, embed, summarize and classify stored documents."""

    def __init__(
        self,
        storage: StorageBackend,
        provider: AIProvider,
        *,
        chunker: SmartChunker | None = None,
        extractor: Extractor | None = None,
        categories: Sequence[str] | None = None,
        embed_delay: float = EMBED_DELAY_SECONDS,
        embed_char_limit: int = EMBED_CHAR_LIMIT,
    ) -> None:
        self.storage = storage
        self.provider = provider
        self.chunker = chunker or SmartChunker()
        self.extractor = extractor or extract_text
        self.categories = resolve_categories(list(categories) if categories else None)
        self.embed_delay = embed_delay
        self.embed_char_limit = embed_char_limit

    async def extract(self, doc_id: str) -> str:
        document = self._commit(self._load(doc_id), ProcessingStatus.EXTRACTING)
        logger.info("Processing %s (%s)", document.original_name, document.id)

        text = await asyncio.to_thread(
            self.extractor, document.file_path, document.media_type
        )
        self._commit(document, text=text)
        logger.info("Extracted %d characters from %s", len(text), document.original_name)
        return text

    async def embed(self, doc_id: str, text: str) -> list[ChunkRecord]:
        document = self._commit(self._load(doc_id), ProcessingStatus.EMBEDDING)

        chunks = self.chunker.chunk_text(text)
        if not chunks:
            raise ExtractionError("No text content could be extracted")
        logger.info("Created %d chunks for %s", len(chunks), document.id)

        records: list[ChunkRecord] = []
        for index, chunk in enumerate(chunks):
            embedding: list[float] | None
            try:
                embedding = await self.provider.embed(chunk.text[: self.embed_char_limit])
            except ProviderError as exc:
                logger.warning(
                    "Embedding failed for chunk %d of %s: %s", index, document.id, exc
                )
                embedding = None
            records.append(
                ChunkRecord(
                    doc_id=document.id,
                    position=chunk.position,
                    text=chunk.text,
                    start_char=chunk.start_char,
                    end_char=chunk.end_char,
                    embedding=embedding,
                )
            )
            if index < len(chunks) - 1 and self.embed_delay > 0:
                await asyncio.sleep(self.embed_delay)

        self.storage.replace_chunks(document.id, records)
        logger.info(
            "Generated embeddings for %d of %d chunks of %s",
            sum(1 for record in records if record.has_embedding),
            len(records),
            document.id,
        )
        return records

    async def tag(self, doc_id: str, text: str) -> DocumentRecord:
        document = self._commit(self._load(doc_id), ProcessingStatus.TAGGING)

        summary = await self._summarize(text)
        document = self._commit(document, summary=summary)

        category, tags = await self._classify(text)
        document = self._commit(
            document,
            ProcessingStatus.COMPLETE,
            category=category,
            tags=tags,
        )
        logger.info(
            "Classified %s as %s with tags: %s", document.id, category, ", ".join(tags)
        )
        return document

    def fail(self, doc_id: str, message: str) -> DocumentRecord | None:
        """Move a document to ``error`` unless it already finished."""
        document = self.storage.get_document(doc_id)
        if document is None:
            logger.error("Cannot record failure of unknown document %s", doc_id)
            return None
        if document.status.is_terminal:
            return document
        return self._commit(document, ProcessingStatus.ERROR, error_message=message)

    async def _summarize(self, text: str) -> Summary:
        try:
            result = await self.provider.summarize(text)
        except ProviderError as exc:
            logger.warning("Summary provider failed, using local summary: %s", exc)
            return fallback_summary(text, SUMMARY_BULLETS)

        if isinstance(result, MalformedResponse):
            logger.warning("Malformed summary response, using local summary: %s", result.reason)
            return fallback_summary(text, SUMMARY_BULLETS)

        payload = result.value
        short = payload.short.strip()
        bullets = [bullet.strip() for bullet in payload.bullets if bullet.strip()]
        if not short or not bullets:
            logger.warning("Blank summary response, using local summary")
            return fallback_summary(text, SUMMARY_BULLETS)
        return Summary(short=short, bullets=tuple(bullets[:SUMMARY_BULLETS]))

    async def _classify(self, text: str) -> tuple[str, tuple[str, ...]]:
        try:
            result = await self.provider.classify(text, categories=self.categories)
        except ProviderError as exc:
            logger.warning("Classification provider failed, using keywords: %s", exc)
            return UNCATEGORIZED, tuple(top_keywords(text, MAX_TAGS))

        if isinstance(result, MalformedResponse):
            logger.warning("Malformed classification response, using keywords: %s", result.reason)
            return UNCATEGORIZED, tuple(top_keywords(text, MAX_TAGS))

        payload = result.value
        category = payload.category.strip()
        if category not in self.categories:
            logger.warning("Provider returned unknown category %r", payload.category)
            category = UNCATEGORIZED
        tags = [tag.strip() for tag in payload.tags if tag.strip()]
        return category, tuple(tags[:MAX_TAGS])

    def _load(self, doc_id: str) -> DocumentRecord:
        document = self.storage.get_document(doc_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {doc_id} not found")
        return document

    def _commit(
        self,
        document: DocumentRecord,
        status: ProcessingStatus | None = None,
        **changes: Any,
    ) -> DocumentRecord:
        updated = apply_stage(document, status, **changes)
        fields = dict(changes)
        if status is not None:
            fields["status"] = status
        self.storage.update_document(document.id, **fields)
        return updated
