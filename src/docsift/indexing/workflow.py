"""
Workflow wiring for document processing and the background queue.

Each processing stage is one workflow step. Stage changes are written to the
event stream so callers can follow progress, and every failure ends the run
with a ``ProcessingEndEvent`` carrying the error after the document has been
moved to ``error``.
"""

import asyncio
import logging

from workflows import Context, Workflow, step
from workflows.events import Event, StartEvent, StopEvent

from ..errors import PersistenceError
from ..storage import ProcessingStatus
from .pipeline import ProcessingPipeline

logger = logging.getLogger(__name__)

MAX_KEPT_RESULTS = 256


class ProcessDocumentEvent(StartEvent):
    doc_id: str


class StageEvent(Event):
    doc_id: str
    status: str


class TextExtractedEvent(Event):
    doc_id: str
    text: str


class ChunksEmbeddedEvent(Event):
    doc_id: str
    text: str
    chunk_count: int
    embedded_count: int


class ProcessingEndEvent(StopEvent):
    doc_id: str
    status: str
    error: str | None = None
    category: str | None = None
    tags: list[str] = []
    chunk_count: int = 0
    embedded_count: int = 0


class DocumentProcessingWorkflow(Workflow):
    def __init__(self, pipeline: ProcessingPipeline, **kwargs) -> None:
        kwargs.setdefault("timeout", None)
        super().__init__(**kwargs)
        self.pipeline = pipeline

    @step
    async def extract_text(
        self, ev: ProcessDocumentEvent, ctx: Context
    ) -> TextExtractedEvent | ProcessingEndEvent:
        ctx.write_event_to_stream(
            StageEvent(doc_id=ev.doc_id, status=ProcessingStatus.EXTRACTING.value)
        )
        try:
            text = await self.pipeline.extract(ev.doc_id)
        except Exception as exc:
            return self._failed(ev.doc_id, exc)
        return TextExtractedEvent(doc_id=ev.doc_id, text=text)

    @step
    async def embed_chunks(
        self, ev: TextExtractedEvent, ctx: Context
    ) -> ChunksEmbeddedEvent | ProcessingEndEvent:
        ctx.write_event_to_stream(
            StageEvent(doc_id=ev.doc_id, status=ProcessingStatus.EMBEDDING.value)
        )
        try:
            chunks = await self.pipeline.embed(ev.doc_id, ev.text)
        except Exception as exc:
            return self._failed(ev.doc_id, exc)
        return ChunksEmbeddedEvent(
            doc_id=ev.doc_id,
            text=ev.text,
            chunk_count=len(chunks),
            embedded_count=sum(1 for chunk in chunks if chunk.has_embedding),
        )

    @step
    async def tag_document(
        self, ev: ChunksEmbeddedEvent, ctx: Context
    ) -> ProcessingEndEvent:
        ctx.write_event_to_stream(
            StageEvent(doc_id=ev.doc_id, status=ProcessingStatus.TAGGING.value)
        )
        try:
            document = await self.pipeline.tag(ev.doc_id, ev.text)
        except Exception as exc:
            return self._failed(ev.doc_id, exc)
        ctx.write_event_to_stream(
            StageEvent(doc_id=ev.doc_id, status=ProcessingStatus.COMPLETE.value)
        )
        return ProcessingEndEvent(
            doc_id=ev.doc_id,
            status=document.status.value,
            category=document.category,
            tags=list(document.tags),
            chunk_count=ev.chunk_count,
            embedded_count=ev.embedded_count,
        )

    def _failed(self, doc_id: str, exc: Exception) -> ProcessingEndEvent:
        message = str(exc) or exc.__class__.__name__
        logger.exception("Processing failed for %s", doc_id)
        try:
            self.pipeline.fail(doc_id, message)
        except PersistenceError:
            logger.exception("Could not record failure status for %s", doc_id)
        return ProcessingEndEvent(
            doc_id=doc_id,
            status=ProcessingStatus.ERROR.value,
            error=message,
        )


class ProcessingQueue:
    """Run one processing workflow per document as a detached asyncio task."""

    def __init__(
        self, pipeline: ProcessingPipeline, *, max_results: int = MAX_KEPT_RESULTS
    ) -> None:
        self.pipeline = pipeline
        self.max_results = max_results
        self._tasks: dict[str, asyncio.Task[ProcessingEndEvent]] = {}
        self._results: dict[str, ProcessingEndEvent] = {}

    def submit(self, doc_id: str) -> asyncio.Task[ProcessingEndEvent]:
        """Start processing *doc_id* and return its completion task."""
        existing = self._tasks.get(doc_id)
        if existing is not None:
            return existing

        self._results.pop(doc_id, None)
        task = asyncio.ensure_future(self._run(doc_id))
        self._tasks[doc_id] = task
        task.add_done_callback(lambda finished: self._finished(doc_id, finished))
        return task

    def in_flight(self) -> list[str]:
        return sorted(doc_id for doc_id, task in self._tasks.items() if not task.done())

    async def wait(self, doc_id: str) -> ProcessingEndEvent | None:
        """Wait for *doc_id* to finish and hand over its result.

        A finished result is returned once; None if *doc_id* was never
        submitted, was already collected or has been evicted.
        """
        task = self._tasks.get(doc_id)
        if task is not None:
            result = await task
            self._results.pop(doc_id, None)
            return result
        return self._results.pop(doc_id, None)

    async def join(self) -> list[ProcessingEndEvent]:
        """Wait for every in-flight document."""
        tasks = list(self._tasks.values())
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def _run(self, doc_id: str) -> ProcessingEndEvent:
        workflow = DocumentProcessingWorkflow(pipeline=self.pipeline)
        handler = workflow.run(start_event=ProcessDocumentEvent(doc_id=doc_id))
        async for event in handler.stream_events():
            if isinstance(event, StageEvent):
                logger.debug("Document %s entered %s", event.doc_id, event.status)
        return await handler

    def _finished(self, doc_id: str, task: asyncio.Task[ProcessingEndEvent]) -> None:
        if self._tasks.get(doc_id) is task:
            del self._tasks[doc_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background processing failed for %s: %s", doc_id, exc)
            return
        result = task.result()
        self._results[doc_id] = result
        while len(self._results) > self.max_results:
            evicted = next(iter(self._results))
            del self._results[evicted]
            logger.debug("Dropped uncollected result of %s", evicted)
        logger.info(
            "Document %s finished with status %s (%d of %d chunks embedded)",
            doc_id,
            result.status,
            result.embedded_count,
            result.chunk_count,
        )
