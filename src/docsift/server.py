"""
FastAPI server for DocSift.

Documents are registered from files that already exist on disk and processed
in the background. Search, similar-document, category and stats endpoints read
the persisted store; document metadata can be edited or removed.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import UNCATEGORIZED, resolve_categories, resolve_db_path
from .errors import (
    DocumentNotFoundError,
    InvalidQueryError,
    PersistenceError,
    SearchProviderError,
)
from .extraction import is_supported_media_type
from .indexing import ProcessingPipeline, ProcessingQueue
from .providers import AIProvider, GeminiProvider
from .search import HybridSearchEngine, SimilarityRecommender
from .storage import DocumentRecord, DuckDBStorage, ProcessingStatus, StorageBackend

PREVIEW_CHAR_LIMIT = 2000

app = FastAPI(title="DocSift", description="Hybrid semantic and keyword document search")

_queue: ProcessingQueue | None = None


@lru_cache(maxsize=1)
def get_storage() -> StorageBackend:
    return DuckDBStorage(resolve_db_path())


@lru_cache(maxsize=1)
def get_provider() -> AIProvider:
    return GeminiProvider()


def get_queue(
    storage: StorageBackend = Depends(get_storage),
    provider: AIProvider = Depends(get_provider),
) -> ProcessingQueue:
    """Return the process-wide queue, creating it on first use."""
    global _queue
    if _queue is None:
        _queue = ProcessingQueue(ProcessingPipeline(storage, provider))
    return _queue


class DocumentRequest(BaseModel):
    """Request model for registering a document."""

    file_path: str
    media_type: str
    title: str | None = None


class SearchRequest(BaseModel):
    """Request model for search queries."""

    query: str
    category: str | None = None
    page: int = 1
    limit: int = 10


class DocumentUpdateRequest(BaseModel):
    """Request model for editing document metadata."""

    title: str | None = None
    category: str | None = None
    tags: list[str] | None = None


class CategoryRequest(BaseModel):
    name: str = ""


def _summary_payload(document: DocumentRecord) -> dict[str, Any] | None:
    return document.summary.to_dict() if document.summary else None


def _document_payload(document: DocumentRecord) -> dict[str, Any]:
    return {
        "id": document.id,
        "title": document.title,
        "originalName": document.original_name,
        "mediaType": document.media_type,
        "size": document.size,
        "uploadDate": document.upload_date.isoformat(),
        "status": document.status.value,
        "category": document.category,
        "tags": list(document.tags),
        "summary": _summary_payload(document),
        "error": document.error_message,
    }


@app.post("/api/documents", status_code=201)
async def submit_document(
    request: DocumentRequest,
    storage: StorageBackend = Depends(get_storage),
    queue: ProcessingQueue = Depends(get_queue),
):
    """Register a file and start processing it in the background."""
    path = Path(request.file_path).expanduser()
    if not path.is_file():
        return JSONResponse({"error": f"File not found: {request.file_path}"}, status_code=400)
    if not is_supported_media_type(request.media_type):
        return JSONResponse(
            {"error": f"Unsupported file format: {request.media_type}"}, status_code=400
        )

    try:
        document = storage.create_document(
            title=(request.title or "").strip() or path.stem,
            original_name=path.name,
            file_path=str(path.resolve()),
            media_type=request.media_type,
            size=path.stat().st_size,
        )
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)

    queue.submit(document.id)
    return {"id": document.id, "title": document.title, "status": document.status.value}


@app.get("/api/documents")
async def list_documents(
    category: str | None = None,
    status: str | None = None,
    storage: StorageBackend = Depends(get_storage),
):
    """List documents, newest first."""
    try:
        status_filter = ProcessingStatus(status) if status else None
    except ValueError:
        return JSONResponse({"error": f"Unknown status: {status}"}, status_code=400)
    try:
        documents = storage.list_documents(status=status_filter, category=category or None)
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    return {"documents": [_document_payload(document) for document in documents]}


@app.get("/api/documents/{doc_id}/status")
async def document_status(doc_id: str, storage: StorageBackend = Depends(get_storage)):
    """Report the processing status of a document."""
    document = storage.get_document(doc_id)
    if document is None:
        return JSONResponse({"error": "Document not found"}, status_code=404)
    return {"status": document.status.value, "error": document.error_message}


@app.get("/api/documents/{doc_id}")
async def document_preview(doc_id: str, storage: StorageBackend = Depends(get_storage)):
    """Return document details with a truncated text preview."""
    document = storage.get_document(doc_id)
    if document is None:
        return JSONResponse({"error": "Document not found"}, status_code=404)
    payload = _document_payload(document)
    payload["text"] = document.text[:PREVIEW_CHAR_LIMIT]
    payload["chunkCount"] = len(document.chunks)
    return payload


@app.patch("/api/documents/{doc_id}")
async def update_document(
    doc_id: str,
    request: DocumentUpdateRequest,
    storage: StorageBackend = Depends(get_storage),
):
    """Edit the title, category or tags of a document."""
    try:
        document = storage.update_document_metadata(
            doc_id, title=request.title, category=request.category, tags=request.tags
        )
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    if document is None:
        return JSONResponse({"error": "Document not found"}, status_code=404)
    return _document_payload(document)


@app.delete("/api/documents/{doc_id}")
async def delete_document(doc_id: str, storage: StorageBackend = Depends(get_storage)):
    """Remove a document and its chunks. The source file is left in place."""
    document = storage.get_document(doc_id)
    if document is None:
        return JSONResponse({"error": "Document not found"}, status_code=404)
    if document.status.is_processing:
        return JSONResponse(
            {"error": f"Document is still {document.status.value}"}, status_code=409
        )
    try:
        storage.delete_document(doc_id)
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    return {"message": "Document deleted successfully"}


@app.get("/api/documents/{doc_id}/similar")
async def similar_documents(
    doc_id: str,
    limit: int = 5,
    storage: StorageBackend = Depends(get_storage),
):
    """Recommend documents close to *doc_id*."""
    try:
        neighbors = SimilarityRecommender(storage).recommend(doc_id, limit=limit)
    except DocumentNotFoundError:
        return JSONResponse({"error": "Document not found"}, status_code=404)
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    return {
        "similar": [
            {
                "id": neighbor.document.id,
                "title": neighbor.document.title,
                "category": neighbor.document.category,
                "tags": list(neighbor.document.tags),
                "summary": _summary_payload(neighbor.document),
                "uploadDate": neighbor.document.upload_date.isoformat(),
                "score": neighbor.score,
            }
            for neighbor in neighbors
        ]
    }


@app.post("/api/search")
async def search_documents(
    request: SearchRequest,
    storage: StorageBackend = Depends(get_storage),
    provider: AIProvider = Depends(get_provider),
):
    """Search completed documents and return a page of ranked hits."""
    engine = HybridSearchEngine(storage, provider)
    try:
        page = await engine.search(
            query=request.query,
            category=request.category,
            page=request.page,
            limit=request.limit,
        )
    except InvalidQueryError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except SearchProviderError as exc:
        return JSONResponse({"error": str(exc)}, status_code=502)
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)

    return {
        "results": [
            {
                "id": hit.doc_id,
                "title": hit.title,
                "snippet": hit.snippet,
                "summary": hit.summary.to_dict() if hit.summary else None,
                "tags": list(hit.tags),
                "category": hit.category,
                "uploadDate": hit.upload_date.isoformat(),
                "score": hit.score,
                "semanticScore": hit.semantic_score,
                "keywordScore": hit.keyword_score,
                "matchedBy": hit.matched_by,
            }
            for hit in page.results
        ],
        "total": page.total,
        "page": page.page,
        "totalPages": page.total_pages,
    }


@app.get("/api/search/recent")
async def recent_searches(limit: int = 5, storage: StorageBackend = Depends(get_storage)):
    """List the most recent searches."""
    try:
        entries = storage.recent_searches(limit=limit)
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    return [
        {
            "query": entry.query,
            "category": entry.category,
            "resultsCount": entry.results_count,
            "timestamp": entry.created_at.isoformat(),
        }
        for entry in entries
    ]


@app.get("/api/categories")
async def list_categories(storage: StorageBackend = Depends(get_storage)):
    """Known categories plus any category in use, with document counts."""
    try:
        counts = {row["category"]: row["count"] for row in storage.category_counts()}
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    names = list(resolve_categories())
    names.extend(sorted(name for name in counts if name not in names))
    return [{"category": name, "count": counts.get(name, 0)} for name in names]


@app.post("/api/categories")
async def create_category(
    request: CategoryRequest, storage: StorageBackend = Depends(get_storage)
):
    """Validate a new category name. It exists once a document is assigned to it."""
    name = request.name.strip()
    if not name:
        return JSONResponse({"error": "Category name is required"}, status_code=400)
    try:
        in_use = {row["category"] for row in storage.category_counts()}
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    if name in in_use or name in resolve_categories():
        return JSONResponse({"error": "Category already exists"}, status_code=400)
    return {"message": "Category ready to use", "category": name}


@app.delete("/api/categories/{name}")
async def delete_category(name: str, storage: StorageBackend = Depends(get_storage)):
    """Move every document in a category to Uncategorized."""
    if name == UNCATEGORIZED:
        return JSONResponse(
            {"error": f"{UNCATEGORIZED} cannot be deleted"}, status_code=400
        )
    try:
        moved = storage.reassign_category(name)
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    return {"message": "Category deleted successfully", "filesUpdated": moved}


@app.get("/api/stats")
async def dashboard_stats(
    uploads: int = 10,
    days: int = 7,
    storage: StorageBackend = Depends(get_storage),
):
    """Totals, category breakdown, recent uploads and daily search counts."""
    try:
        totals = storage.stats()
        counts = storage.category_counts()
        recent = storage.recent_uploads(limit=uploads)
        trends = storage.search_trends(days=days)
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    return {
        "totalFiles": totals["total_documents"],
        "totalSearches": totals["total_searches"],
        "storageUsed": totals["storage_used"],
        "categoriesCount": totals["categories_count"],
        "byStatus": totals["by_status"],
        "categories": sorted(counts, key=lambda row: (-row["count"], row["category"])),
        "recentUploads": [
            {
                "id": document.id,
                "title": document.title,
                "category": document.category,
                "uploadDate": document.upload_date.isoformat(),
                "status": document.status.value,
            }
            for document in recent
        ],
        "searchTrends": trends,
    }


def run_server(host: str = "127.0.0.1", port: int = 8000):
    """Run the FastAPI server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
