"""Storage backends for DocSift documents."""

from .base import (
    ChunkRecord,
    DocumentRecord,
    ProcessingStatus,
    SearchLogEntry,
    StorageBackend,
    Summary,
)
from .duckdb import DuckDBStorage

__all__ = [
    "ChunkRecord",
    "DocumentRecord",
    "ProcessingStatus",
    "SearchLogEntry",
    "StorageBackend",
    "Summary",
    "DuckDBStorage",
]
