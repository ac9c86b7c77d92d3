"""
Storage interfaces and data models for document persistence.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from ..config import UNCATEGORIZED


class ProcessingStatus(str, Enum):
    """Pipeline stage a document currently occupies."""

    PENDING = "pending"
    EXTRACTING = "extracting"
    EMBEDDING = "embedding"
    TAGGING = "tagging"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETE, ProcessingStatus.ERROR)

    @property
    def is_processing(self) -> bool:
        return not self.is_terminal and self is not ProcessingStatus.PENDING


@dataclass(frozen=True)
class Summary:
    """Short overview plus key takeaway bullets."""

    short: str
    bullets: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"short": self.short, "bullets": list(self.bullets)}


@dataclass(frozen=True)
class ChunkRecord:
    """A text chunk stored for a document."""

    doc_id: str
    position: int
    text: str
    start_char: int
    end_char: int
    embedding: list[float] | None = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


@dataclass(frozen=True)
class DocumentRecord:
    """Immutable snapshot of a stored document."""

    id: str
    title: str
    original_name: str
    file_path: str
    media_type: str
    size: int
    upload_date: datetime
    status: ProcessingStatus = ProcessingStatus.PENDING
    text: str = ""
    category: str = UNCATEGORIZED
    tags: tuple[str, ...] = ()
    summary: Summary | None = None
    error_message: str | None = None
    chunks: tuple[ChunkRecord, ...] = ()

    @property
    def first_embedding(self) -> list[float] | None:
        """Embedding of the first chunk, used as the representative vector."""
        if not self.chunks:
            return None
        return self.chunks[0].embedding or None


@dataclass(frozen=True)
class SearchLogEntry:
    """A logged search request."""

    query: str
    category: str | None
    results_count: int
    created_at: datetime


class StorageBackend(Protocol):
    """Protocol for persistence operations used by processing and retrieval."""

    def initialize(self) -> None:
        """Initialize required tables."""

    def close(self) -> None:
        """Release the underlying connection."""

    def create_document(
        self,
        *,
        title: str,
        original_name: str,
        file_path: str,
        media_type: str,
        size: int,
    ) -> DocumentRecord:
        """Insert a new document in `pending` status."""

    def get_document(self, doc_id: str) -> DocumentRecord | None:
        """Get a document and its chunks by id."""

    def update_document(self, doc_id: str, **fields: Any) -> None:
        """Persist a partial update of document fields."""

    def replace_chunks(self, doc_id: str, chunks: list[ChunkRecord]) -> None:
        """Replace the whole chunk sequence of a document."""

    def list_documents(
        self,
        *,
        status: ProcessingStatus | None = None,
        category: str | None = None,
    ) -> list[DocumentRecord]:
        """List documents with their chunks, optionally filtered."""

    def log_search(
        self,
        *,
        query: str,
        category: str | None,
        results_count: int,
    ) -> None:
        """Record a search request."""

    def recent_searches(self, *, limit: int = 5) -> list[SearchLogEntry]:
        """Return the most recent searches first."""

    def category_counts(self) -> list[dict[str, Any]]:
        """Return `{"category", "count"}` rows sorted by category."""

    def reassign_category(self, name: str, *, target: str = UNCATEGORIZED) -> int:
        """Move every document in *name* to *target*. Return count moved."""

    def update_document_metadata(
        self,
        doc_id: str,
        *,
        title: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
    ) -> DocumentRecord | None:
        """Apply user edits to title, category and tags. Blank values are ignored."""

    def delete_document(self, doc_id: str) -> bool:
        """Delete a document and its chunks. Return False if it did not exist."""

    def stats(self) -> dict[str, Any]:
        """Return document and search totals for the dashboard."""

    def recent_uploads(self, *, limit: int = 10) -> list[DocumentRecord]:
        """Return the newest documents first, without chunks."""

    def search_trends(self, *, days: int = 7) -> list[dict[str, Any]]:
        """Return `{"date", "searches"}` rows per day over the last *days*."""
