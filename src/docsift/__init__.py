"""
DocSift - document ingestion and hybrid semantic/keyword search.

Documents are extracted (Docling for PDF, Office and image formats), split
into overlapping chunks, embedded and classified with Google Gemini, and
stored in DuckDB. Queries blend cosine similarity over chunk embeddings with
a per-request TF-IDF keyword score.

Example usage:
    >>> from docsift import DuckDBStorage, GeminiProvider, HybridSearchEngine
    >>> engine = HybridSearchEngine(DuckDBStorage("docs.duckdb"), GeminiProvider())
    >>> page = await engine.search(query="quarterly budget")
"""

from .errors import (
    DocsiftError,
    DocumentNotFoundError,
    EmbeddingError,
    ExtractionError,
    InvalidQueryError,
    InvalidTransitionError,
    PersistenceError,
    ProviderError,
    SearchProviderError,
)
from .indexing import (
    DocumentProcessingWorkflow,
    ProcessingPipeline,
    ProcessingQueue,
    SmartChunker,
    chunk_text,
)
from .providers import AIProvider, GeminiProvider
from .search import (
    HybridSearchEngine,
    SearchHit,
    SearchPage,
    SimilarityRecommender,
    cosine_similarity,
    fuse_scores,
    highlight_snippet,
)
from .storage import DocumentRecord, DuckDBStorage, ProcessingStatus

__all__ = [
    # Errors
    "DocsiftError",
    "DocumentNotFoundError",
    "EmbeddingError",
    "ExtractionError",
    "InvalidQueryError",
    "InvalidTransitionError",
    "PersistenceError",
    "ProviderError",
    "SearchProviderError",
    # Processing
    "DocumentProcessingWorkflow",
    "ProcessingPipeline",
    "ProcessingQueue",
    "SmartChunker",
    "chunk_text",
    # Providers
    "AIProvider",
    "GeminiProvider",
    # Search
    "HybridSearchEngine",
    "SearchHit",
    "SearchPage",
    "SimilarityRecommender",
    "cosine_similarity",
    "fuse_scores",
    "highlight_snippet",
    # Storage
    "DocumentRecord",
    "DuckDBStorage",
    "ProcessingStatus",
]
