import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Annotated

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from .config import resolve_categories, resolve_db_path
from .errors import DocsiftError
from .extraction import is_supported_media_type
from .indexing import DocumentProcessingWorkflow, ProcessDocumentEvent, ProcessingPipeline, StageEvent
from .providers import GeminiProvider
from .search import HybridSearchEngine, SimilarityRecommender
from .storage import DuckDBStorage

app = Typer(help="Ingest documents and search them by meaning and keywords.")
console = Console()

DbPathOption = Annotated[
    str | None,
    Option("--db-path", help="DuckDB file to use. Defaults to DOCSIFT_DB_PATH or ~/.docsift."),
]


@app.callback()
def configure(
    verbose: Annotated[bool, Option("--verbose", "-v", help="Show progress logs.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _open_storage(db_path: str | None) -> DuckDBStorage:
    return DuckDBStorage(resolve_db_path(db_path))


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/] {message}")
    raise Exit(code=1)


def _provider() -> GeminiProvider:
    try:
        return GeminiProvider()
    except ValueError as exc:
        _fail(str(exc))


async def run_ingest(pipeline: ProcessingPipeline, doc_id: str):
    workflow = DocumentProcessingWorkflow(pipeline=pipeline)
    handler = workflow.run(start_event=ProcessDocumentEvent(doc_id=doc_id))
    with console.status(status="Processing document...") as status:
        async for event in handler.stream_events():
            if isinstance(event, StageEvent):
                status.update(f"Stage: {event.status}")
                console.print(f"[cyan]•[/] {event.status}")
        result = await handler
        status.stop()
    return result


@app.command()
def ingest(
    file_path: Annotated[Path, Argument(help="File to ingest.")],
    title: Annotated[str | None, Option("--title", "-t", help="Document title.")] = None,
    media_type: Annotated[
        str | None, Option("--media-type", help="Override the guessed media type.")
    ] = None,
    db_path: DbPathOption = None,
) -> None:
    """Register FILE_PATH and run the processing pipeline on it."""
    path = file_path.expanduser()
    if not path.is_file():
        _fail(f"File not found: {file_path}")
    resolved_type = media_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    if not is_supported_media_type(resolved_type):
        _fail(f"Unsupported file format: {resolved_type}")

    provider = _provider()
    storage = _open_storage(db_path)
    try:
        document = storage.create_document(
            title=title or path.stem,
            original_name=path.name,
            file_path=str(path.resolve()),
            media_type=resolved_type,
            size=path.stat().st_size,
        )
        result = asyncio.run(run_ingest(ProcessingPipeline(storage, provider), document.id))
    finally:
        storage.close()

    if result.error:
        console.print(
            Panel(result.error, title="Processing failed", title_align="left", border_style="bold red")
        )
        raise Exit(code=1)
    console.print(
        Panel(
            f"[bold]{document.title}[/] ({document.id})\n"
            f"Category: {result.category}\nTags: {', '.join(result.tags)}\n"
            f"Chunks: {result.embedded_count} of {result.chunk_count} embedded",
            title="Document processed",
            title_align="left",
            border_style="bold green",
        )
    )


@app.command()
def status(
    doc_id: Annotated[str, Argument(help="Document id.")],
    db_path: DbPathOption = None,
) -> None:
    """Show the processing status of a document."""
    storage = _open_storage(db_path)
    try:
        document = storage.get_document(doc_id)
    finally:
        storage.close()
    if document is None:
        _fail(f"Document {doc_id} not found")
    console.print(f"[bold]{document.title}[/]: {document.status.value}")
    if document.error_message:
        console.print(f"[red]{document.error_message}[/]")


@app.command()
def search(
    query: Annotated[str, Argument(help="Natural-language query.")],
    category: Annotated[str | None, Option("--category", "-c", help="Category filter.")] = None,
    page: Annotated[int, Option("--page", help="Result page.")] = 1,
    limit: Annotated[int, Option("--limit", "-n", help="Results per page.")] = 10,
    db_path: DbPathOption = None,
) -> None:
    """Search completed documents."""
    provider = _provider()
    storage = _open_storage(db_path)
    try:
        engine = HybridSearchEngine(storage, provider)
        result = asyncio.run(
            engine.search(query=query, category=category, page=page, limit=limit)
        )
    except DocsiftError as exc:
        _fail(str(exc))
    finally:
        storage.close()

    if not result.results:
        console.print("No matching documents.")
        return

    table = Table(title=f"Results for {query!r} (page {result.page}/{result.total_pages})")
    table.add_column("Score", justify="right")
    table.add_column("Semantic", justify="right")
    table.add_column("Keyword", justify="right")
    table.add_column("Match")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Id", style="dim")
    for hit in result.results:
        table.add_row(
            f"{hit.score:.3f}",
            f"{hit.semantic_score:.3f}",
            f"{hit.keyword_score:.3f}",
            hit.matched_by,
            hit.title,
            hit.category,
            hit.doc_id,
        )
    console.print(table)
    console.print(f"{result.total} total results")


@app.command()
def similar(
    doc_id: Annotated[str, Argument(help="Document id.")],
    limit: Annotated[int, Option("--limit", "-n", help="Number of neighbors.")] = 5,
    db_path: DbPathOption = None,
) -> None:
    """List documents similar to DOC_ID."""
    storage = _open_storage(db_path)
    try:
        neighbors = SimilarityRecommender(storage).recommend(doc_id, limit=limit)
    except DocsiftError as exc:
        _fail(str(exc))
    finally:
        storage.close()

    if not neighbors:
        console.print("No similar documents.")
        return
    table = Table(title="Similar documents")
    table.add_column("Score", justify="right")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Id", style="dim")
    for neighbor in neighbors:
        table.add_row(
            f"{neighbor.score:.3f}",
            neighbor.document.title,
            neighbor.document.category,
            neighbor.document.id,
        )
    console.print(table)


@app.command()
def categories(db_path: DbPathOption = None) -> None:
    """Show known categories with document counts."""
    storage = _open_storage(db_path)
    try:
        counts = {row["category"]: row["count"] for row in storage.category_counts()}
    finally:
        storage.close()

    names = list(resolve_categories())
    names.extend(sorted(name for name in counts if name not in names))
    table = Table(title="Categories")
    table.add_column("Category")
    table.add_column("Documents", justify="right")
    for name in names:
        table.add_row(name, str(counts.get(name, 0)))
    console.print(table)


@app.command()
def update(
    doc_id: Annotated[str, Argument(help="Document id.")],
    title: Annotated[str | None, Option("--title", "-t", help="New title.")] = None,
    category: Annotated[str | None, Option("--category", "-c", help="New category.")] = None,
    tags: Annotated[
        str | None, Option("--tags", help="Comma-separated tags replacing the current ones.")
    ] = None,
    db_path: DbPathOption = None,
) -> None:
    """Edit the title, category or tags of a document."""
    tag_list = tags.split(",") if tags is not None else None
    storage = _open_storage(db_path)
    try:
        document = storage.update_document_metadata(
            doc_id, title=title, category=category, tags=tag_list
        )
    except DocsiftError as exc:
        _fail(str(exc))
    finally:
        storage.close()
    if document is None:
        _fail(f"Document {doc_id} not found")
    console.print(
        f"[bold]{document.title}[/] ({document.id})\n"
        f"Category: {document.category}\nTags: {', '.join(document.tags)}"
    )


@app.command()
def delete(
    doc_id: Annotated[str, Argument(help="Document id.")],
    db_path: DbPathOption = None,
) -> None:
    """Remove a document and its chunks from the store."""
    storage = _open_storage(db_path)
    try:
        deleted = storage.delete_document(doc_id)
    except DocsiftError as exc:
        _fail(str(exc))
    finally:
        storage.close()
    if not deleted:
        _fail(f"Document {doc_id} not found")
    console.print(f"Deleted {doc_id}")


@app.command()
def stats(
    days: Annotated[int, Option("--days", help="Days of search history to show.")] = 7,
    db_path: DbPathOption = None,
) -> None:
    """Show document and search statistics."""
    storage = _open_storage(db_path)
    try:
        totals = storage.stats()
        recent = storage.recent_uploads(limit=5)
        trends = storage.search_trends(days=days)
    finally:
        storage.close()

    statuses = ", ".join(f"{name}: {count}" for name, count in totals["by_status"].items())
    console.print(
        Panel(
            f"Documents: {totals['total_documents']} ({statuses or 'none'})\n"
            f"Storage used: {totals['storage_used']} bytes\n"
            f"Categories in use: {totals['categories_count']}\n"
            f"Searches: {totals['total_searches']}",
            title="Statistics",
            title_align="left",
        )
    )
    if recent:
        table = Table(title="Recent uploads")
        table.add_column("Title")
        table.add_column("Category")
        table.add_column("Status")
        table.add_column("Uploaded")
        for document in recent:
            table.add_row(
                document.title,
                document.category,
                document.status.value,
                document.upload_date.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)
    if trends:
        table = Table(title=f"Searches over the last {days} days")
        table.add_column("Date")
        table.add_column("Searches", justify="right")
        for row in trends:
            table.add_row(row["date"], str(row["searches"]))
        console.print(table)


@app.command()
def serve(
    host: Annotated[str, Option("--host", help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, Option("--port", help="Bind port.")] = 8000,
) -> None:
    """Run the HTTP API."""
    from .server import run_server

    run_server(host=host, port=port)
