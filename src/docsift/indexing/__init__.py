"""Document processing components for DocSift."""

from .chunker import SmartChunker, TextChunk, chunk_text
from .pipeline import ProcessingPipeline
from .state import apply_stage, can_transition, ensure_transition
from .workflow import (
    DocumentProcessingWorkflow,
    ProcessDocumentEvent,
    ProcessingEndEvent,
    ProcessingQueue,
    StageEvent,
)

__all__ = [
    "SmartChunker",
    "TextChunk",
    "chunk_text",
    "ProcessingPipeline",
    "apply_stage",
    "can_transition",
    "ensure_transition",
    "DocumentProcessingWorkflow",
    "ProcessDocumentEvent",
    "ProcessingEndEvent",
    "ProcessingQueue",
    "StageEvent",
]
