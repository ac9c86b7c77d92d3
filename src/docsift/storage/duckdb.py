"""
DuckDB storage backend for document persistence.
"""

from __future__ import annotations

import json
import uuid
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import duckdb

from ..config import UNCATEGORIZED
from ..errors import PersistenceError
from .base import (
    ChunkRecord,
    DocumentRecord,
    ProcessingStatus,
    SearchLogEntry,
    Summary,
)

_DOCUMENT_FIELDS: tuple[str, ...] = (
    "id",
    "title",
    "original_name",
    "file_path",
    "media_type",
    "size",
    "upload_date",
    "status",
    "text",
    "category",
    "tags_json",
    "summary_json",
    "error_message",
)
_DOCUMENT_COLUMNS = ", ".join(_DOCUMENT_FIELDS)
_DOCUMENT_SELECT = ", ".join(f"d.{field}" for field in _DOCUMENT_FIELDS)

_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {"title", "text", "status", "category", "tags", "summary", "error_message"}
)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


@contextmanager
def _persistence_errors(action: str) -> Iterator[None]:
    try:
        yield
    except duckdb.Error as exc:
        raise PersistenceError(f"Failed to {action}: {exc}") from exc


class DuckDBStorage:
    """DuckDB-backed persistence for documents, chunks, and search logs."""

    def __init__(self, db_path: str, *, initialize: bool = True) -> None:
        self.db_path = str(Path(db_path).expanduser().resolve())
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(self.db_path)
        if initialize:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._conn.close()

    def initialize(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                id VARCHAR PRIMARY KEY,
                title VARCHAR NOT NULL,
                original_name VARCHAR NOT NULL,
                file_path VARCHAR NOT NULL,
                media_type VARCHAR NOT NULL,
                size BIGINT NOT NULL,
                upload_date TIMESTAMP NOT NULL,
                status VARCHAR NOT NULL DEFAULT 'pending',
                text VARCHAR NOT NULL DEFAULT '',
                category VARCHAR NOT NULL DEFAULT 'Uncategorized',
                tags_json VARCHAR NOT NULL DEFAULT '[]',
                summary_json VARCHAR,
                error_message VARCHAR
            );
            """
        )
        # Chunks are replaced wholesale, so the table carries no key of its own.
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS chunks (
                doc_id VARCHAR NOT NULL,
                position INTEGER NOT NULL,
                text VARCHAR NOT NULL,
                start_char INTEGER NOT NULL,
                end_char INTEGER NOT NULL,
                embedding DOUBLE[]
            );
            """
        )
        self._conn.execute("CREATE SEQUENCE IF NOT EXISTS search_log_seq;")
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS search_logs (
                id BIGINT DEFAULT nextval('search_log_seq'),
                query VARCHAR NOT NULL,
                category VARCHAR,
                results_count INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )

    def create_document(
        self,
        *,
        title: str,
        original_name: str,
        file_path: str,
        media_type: str,
        size: int,
    ) -> DocumentRecord:
        document = DocumentRecord(
            id=_new_id("doc"),
            title=title,
            original_name=original_name,
            file_path=file_path,
            media_type=media_type,
            size=size,
            upload_date=datetime.now(),
        )
        with _persistence_errors(f"create document {original_name!r}"):
            self._conn.execute(
                f"""
                INSERT INTO documents ({_DOCUMENT_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    document.id,
                    document.title,
                    document.original_name,
                    document.file_path,
                    document.media_type,
                    document.size,
                    document.upload_date,
                    document.status.value,
                    document.text,
                    document.category,
                    json.dumps(list(document.tags)),
                    None,
                    None,
                ],
            )
        return document

    def get_document(self, doc_id: str) -> DocumentRecord | None:
        with _persistence_errors(f"load document {doc_id}"):
            row = self._conn.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ? LIMIT 1",
                [doc_id],
            ).fetchone()
            if row is None:
                return None
            chunk_rows = self._conn.execute(
                """
                SELECT doc_id, position, text, start_char, end_char, embedding
                FROM chunks
                WHERE doc_id = ?
                ORDER BY position
                """,
                [doc_id],
            ).fetchall()
        chunks = tuple(self._row_to_chunk(chunk_row) for chunk_row in chunk_rows)
        return self._row_to_document(row, chunks)

    def update_document(self, doc_id: str, **fields: Any) -> None:
        if not fields:
            return
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported document fields: {', '.join(sorted(unknown))}")

        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            column, encoded = self._encode_field(name, value)
            assignments.append(f"{column} = ?")
            params.append(encoded)
        params.append(doc_id)

        with _persistence_errors(f"update document {doc_id}"):
            exists = self._conn.execute(
                "SELECT COUNT(*) FROM documents WHERE id = ?", [doc_id]
            ).fetchone()
            if not exists or int(exists[0]) == 0:
                raise PersistenceError(f"Document {doc_id} does not exist")
            self._conn.execute(
                f"UPDATE documents SET {', '.join(assignments)} WHERE id = ?",
                params,
            )

    def update_document_metadata(
        self,
        doc_id: str,
        *,
        title: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
    ) -> DocumentRecord | None:
        """Apply user edits to title, category and tags. None if *doc_id* is unknown."""
        if self.get_document(doc_id) is None:
            return None
        fields: dict[str, Any] = {}
        if title is not None and title.strip():
            fields["title"] = title.strip()
        if category is not None and category.strip():
            fields["category"] = category.strip()
        if tags is not None:
            fields["tags"] = [tag.strip() for tag in tags if tag.strip()]
        self.update_document(doc_id, **fields)
        return self.get_document(doc_id)

    def delete_document(self, doc_id: str) -> bool:
        with _persistence_errors(f"delete document {doc_id}"):
            row = self._conn.execute(
                "SELECT COUNT(*) FROM documents WHERE id = ?", [doc_id]
            ).fetchone()
            if not row or int(row[0]) == 0:
                return False
            self._conn.begin()
            try:
                self._conn.execute("DELETE FROM chunks WHERE doc_id = ?", [doc_id])
                self._conn.execute("DELETE FROM documents WHERE id = ?", [doc_id])
            except duckdb.Error:
                self._conn.rollback()
                raise
            self._conn.commit()
        return True

    def replace_chunks(self, doc_id: str, chunks: list[ChunkRecord]) -> None:
        with _persistence_errors(f"replace chunks of {doc_id}"):
            self._conn.begin()
            try:
                self._conn.execute("DELETE FROM chunks WHERE doc_id = ?", [doc_id])
                if chunks:
                    self._conn.executemany(
                        """
                        INSERT INTO chunks
                            (doc_id, position, text, start_char, end_char, embedding)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        [
                            (
                                doc_id,
                                chunk.position,
                                chunk.text,
                                chunk.start_char,
                                chunk.end_char,
                                list(chunk.embedding) if chunk.embedding else None,
                            )
                            for chunk in chunks
                        ],
                    )
            except duckdb.Error:
                self._conn.rollback()
                raise
            self._conn.commit()

    def list_documents(
        self,
        *,
        status: ProcessingStatus | None = None,
        category: str | None = None,
    ) -> list[DocumentRecord]:
        where: list[str] = []
        params: list[Any] = []
        if status is not None:
            where.append("d.status = ?")
            params.append(ProcessingStatus(status).value)
        if category is not None:
            where.append("d.category = ?")
            params.append(category)
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        with _persistence_errors("list documents"):
            rows = self._conn.execute(
                f"""
                SELECT {_DOCUMENT_SELECT}
                FROM documents d
                {where_sql}
                ORDER BY d.upload_date DESC, d.id ASC
                """,
                params,
            ).fetchall()
            chunk_rows = self._conn.execute(
                f"""
                SELECT c.doc_id, c.position, c.text, c.start_char, c.end_char, c.embedding
                FROM chunks c
                JOIN documents d ON d.id = c.doc_id
                {where_sql}
                ORDER BY c.doc_id, c.position
                """,
                params,
            ).fetchall()

        chunks_by_doc: dict[str, list[ChunkRecord]] = defaultdict(list)
        for chunk_row in chunk_rows:
            chunk = self._row_to_chunk(chunk_row)
            chunks_by_doc[chunk.doc_id].append(chunk)
        return [
            self._row_to_document(row, tuple(chunks_by_doc.get(str(row[0]), ())))
            for row in rows
        ]

    def log_search(
        self,
        *,
        query: str,
        category: str | None,
        results_count: int,
    ) -> None:
        with _persistence_errors("log search"):
            self._conn.execute(
                """
                INSERT INTO search_logs (query, category, results_count, created_at)
                VALUES (?, ?, ?, ?)
                """,
                [query.strip(), category, results_count, datetime.now()],
            )

    def recent_searches(self, *, limit: int = 5) -> list[SearchLogEntry]:
        with _persistence_errors("list recent searches"):
            rows = self._conn.execute(
                """
                SELECT query, category, results_count, created_at
                FROM search_logs
                ORDER BY id DESC
                LIMIT ?
                """,
                [max(limit, 1)],
            ).fetchall()
        return [
            SearchLogEntry(
                query=str(row[0]),
                category=str(row[1]) if row[1] is not None else None,
                results_count=int(row[2]),
                created_at=row[3],
            )
            for row in rows
        ]

    def category_counts(self) -> list[dict[str, Any]]:
        with _persistence_errors("count categories"):
            rows = self._conn.execute(
                """
                SELECT category, COUNT(*)
                FROM documents
                GROUP BY category
                ORDER BY category
                """
            ).fetchall()
        return [{"category": str(row[0]), "count": int(row[1])} for row in rows]

    def reassign_category(self, name: str, *, target: str = UNCATEGORIZED) -> int:
        with _persistence_errors(f"reassign category {name!r}"):
            row = self._conn.execute(
                "SELECT COUNT(*) FROM documents WHERE category = ?", [name]
            ).fetchone()
            moved = int(row[0]) if row else 0
            if moved:
                self._conn.execute(
                    "UPDATE documents SET category = ? WHERE category = ?",
                    [target, name],
                )
        return moved

    def stats(self) -> dict[str, Any]:
        with _persistence_errors("collect statistics"):
            totals = self._conn.execute(
                """
                SELECT
                    COUNT(*),
                    COALESCE(SUM(size), 0),
                    COUNT(DISTINCT CASE WHEN category <> ? THEN category END)
                FROM documents
                """,
                [UNCATEGORIZED],
            ).fetchone()
            searches = self._conn.execute("SELECT COUNT(*) FROM search_logs").fetchone()
            status_rows = self._conn.execute(
                "SELECT status, COUNT(*) FROM documents GROUP BY status ORDER BY status"
            ).fetchall()
        return {
            "total_documents": int(totals[0]) if totals else 0,
            "total_searches": int(searches[0]) if searches else 0,
            "storage_used": int(totals[1]) if totals else 0,
            "categories_count": int(totals[2]) if totals else 0,
            "by_status": {str(row[0]): int(row[1]) for row in status_rows},
        }

    def recent_uploads(self, *, limit: int = 10) -> list[DocumentRecord]:
        """Newest documents first, without their chunks."""
        with _persistence_errors("list recent uploads"):
            rows = self._conn.execute(
                f"""
                SELECT {_DOCUMENT_COLUMNS}
                FROM documents
                ORDER BY upload_date DESC, id ASC
                LIMIT ?
                """,
                [max(limit, 1)],
            ).fetchall()
        return [self._row_to_document(row, ()) for row in rows]

    def search_trends(self, *, days: int = 7) -> list[dict[str, Any]]:
        since = datetime.now() - timedelta(days=max(days, 1))
        with _persistence_errors("aggregate search trends"):
            rows = self._conn.execute(
                """
                SELECT CAST(created_at AS DATE) AS day, COUNT(*)
                FROM search_logs
                WHERE created_at >= ?
                GROUP BY day
                ORDER BY day
                """,
                [since],
            ).fetchall()
        return [{"date": row[0].isoformat(), "searches": int(row[1])} for row in rows]

    @staticmethod
    def _encode_field(name: str, value: Any) -> tuple[str, Any]:
        if name == "status":
            return "status", ProcessingStatus(value).value
        if name == "tags":
            return "tags_json", json.dumps([str(tag) for tag in value])
        if name == "summary":
            if value is None:
                return "summary_json", None
            return "summary_json", json.dumps(value.to_dict())
        return name, value

    @staticmethod
    def _row_to_chunk(row: tuple[Any, ...]) -> ChunkRecord:
        embedding = row[5]
        return ChunkRecord(
            doc_id=str(row[0]),
            position=int(row[1]),
            text=str(row[2]),
            start_char=int(row[3]),
            end_char=int(row[4]),
            embedding=[float(value) for value in embedding] if embedding else None,
        )

    @staticmethod
    def _row_to_document(
        row: tuple[Any, ...], chunks: tuple[ChunkRecord, ...]
    ) -> DocumentRecord:
        summary: Summary | None = None
        if row[11]:
            raw_summary = json.loads(str(row[11]))
            summary = Summary(
                short=str(raw_summary.get("short", "")),
                bullets=tuple(str(item) for item in raw_summary.get("bullets", [])),
            )
        return DocumentRecord(
            id=str(row[0]),
            title=str(row[1]),
            original_name=str(row[2]),
            file_path=str(row[3]),
            media_type=str(row[4]),
            size=int(row[5]),
            upload_date=row[6],
            status=ProcessingStatus(str(row[7])),
            text=str(row[8]),
            category=str(row[9]),
            tags=tuple(str(tag) for tag in json.loads(str(row[10]))),
            summary=summary,
            error_message=str(row[12]) if row[12] is not None else None,
            chunks=chunks,
        )
