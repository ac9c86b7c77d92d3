"""
Error taxonomy for document processing and retrieval.
"""

from __future__ import annotations


class DocsiftError(Exception):
    """Base class for all DocSift errors."""


class ExtractionError(DocsiftError):
    """Raised when a file cannot be turned into text."""


class ProviderError(DocsiftError):
    """Raised when the AI provider call itself fails."""


class EmbeddingError(ProviderError):
    """Raised when an embedding cannot be generated for a piece of text."""


class PersistenceError(DocsiftError):
    """Raised when the document store rejects a read or write."""


class SearchProviderError(DocsiftError):
    """Raised when the query embedding cannot be generated during a search."""


class InvalidTransitionError(DocsiftError):
    """Raised when a processing status change would move backwards."""


class DocumentNotFoundError(DocsiftError, LookupError):
    """Raised when a document id is not present in the store."""


class InvalidQueryError(DocsiftError, ValueError):
    """Raised when a search query is empty or whitespace only."""
