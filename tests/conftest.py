from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from docsift.errors import EmbeddingError
from docsift.models import (
    ClassificationPayload,
    MalformedResponse,
    Parsed,
    SummaryPayload,
)
from docsift.storage import (
    ChunkRecord,
    DocumentRecord,
    DuckDBStorage,
    ProcessingStatus,
    Summary,
)


# ---------------------------------------------------------------------------
# Fake GenAI client
# ---------------------------------------------------------------------------


@dataclass
class FakeEmbedding:
    values: list[float]


@dataclass
class FakeEmbedResult:
    embeddings: list[FakeEmbedding]


@dataclass
class FakeGenerateResponse:
    text: str | None


class FakeModels:
    """Records calls and returns scripted responses."""

    def __init__(
        self,
        *,
        generate_text: str | None = None,
        error: Exception | None = None,
    ) -> None:
        self.generate_text = generate_text
        self.error = error
        self.embed_calls: list[dict[str, Any]] = []
        self.generate_calls: list[dict[str, Any]] = []

    async def embed_content(
        self, *, model: str, contents: list[str], config: dict
    ) -> FakeEmbedResult:
        self.embed_calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        dim = config.get("output_dimensionality", 768)
        return FakeEmbedResult(
            embeddings=[FakeEmbedding(values=[0.5] * dim) for _ in contents]
        )

    async def generate_content(
        self, *, model: str, contents: str, config: dict
    ) -> FakeGenerateResponse:
        self.generate_calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        return FakeGenerateResponse(text=self.generate_text)


class FakeAio:
    def __init__(self, models: FakeModels) -> None:
        self.models = models


class FakeGenAIClient:
    def __init__(self, models: FakeModels | None = None) -> None:
        self.aio = FakeAio(models or FakeModels())


# ---------------------------------------------------------------------------
# Fake provider
# ---------------------------------------------------------------------------


DEFAULT_SUMMARY = Parsed(
    value=SummaryPayload(
        short="A plan for the spring launch.",
        bullets=["Launch in April", "Budget approved", "Team assigned", "Extra"],
    )
)
DEFAULT_CLASSIFICATION = Parsed(
    value=ClassificationPayload(
        category="Campaigns",
        tags=["launch", "spring", "budget", "team", "plan", "extra"],
    )
)


class FakeProvider:
    """Deterministic AIProvider with scriptable failures.

    ``embed_results`` is consumed in order for document embeddings; an
    Exception entry is raised instead of returned. Query embeddings always
    return ``query_embedding``.
    """

    def __init__(
        self,
        *,
        embed_results: Sequence[list[float] | Exception] | None = None,
        query_embedding: list[float] | None = None,
        summary: Any = DEFAULT_SUMMARY,
        classification: Any = DEFAULT_CLASSIFICATION,
    ) -> None:
        self.embed_results = list(embed_results or [])
        self.query_embedding = query_embedding or [1.0, 0.0, 0.0]
        self.summary = summary
        self.classification = classification
        self.embed_calls: list[tuple[str, str]] = []
        self.classify_categories: list[Sequence[str] | None] = []

    async def embed(self, text: str, *, task_type: str = "RETRIEVAL_DOCUMENT") -> list[float]:
        self.embed_calls.append((text, task_type))
        if task_type == "RETRIEVAL_QUERY":
            if isinstance(self.query_embedding, Exception):
                raise self.query_embedding
            return list(self.query_embedding)
        if self.embed_results:
            result = self.embed_results.pop(0)
            if isinstance(result, Exception):
                raise result
            return list(result)
        return [1.0, 0.0, 0.0]

    async def summarize(self, text: str) -> Parsed[SummaryPayload] | MalformedResponse:
        if isinstance(self.summary, Exception):
            raise self.summary
        return self.summary

    async def classify(
        self,
        text: str,
        *,
        categories: Sequence[str] | None = None,
    ) -> Parsed[ClassificationPayload] | MalformedResponse:
        self.classify_categories.append(categories)
        if isinstance(self.classification, Exception):
            raise self.classification
        return self.classification


def embedding_failure() -> EmbeddingError:
    return EmbeddingError("quota exceeded")


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def storage(tmp_path: Path):
    store = DuckDBStorage(str(tmp_path / "docsift.duckdb"))
    yield store
    store.close()


def add_document(
    storage: DuckDBStorage,
    *,
    title: str,
    text: str,
    embeddings: Sequence[list[float] | None] = (),
    category: str = "Research",
    tags: Sequence[str] = (),
    status: ProcessingStatus = ProcessingStatus.COMPLETE,
    summary: Summary | None = None,
) -> DocumentRecord:
    """Store a document directly in *status* with one chunk per embedding."""
    document = storage.create_document(
        title=title,
        original_name=f"{title}.txt",
        file_path=f"/tmp/{title}.txt",
        media_type="text/plain",
        size=len(text),
    )
    storage.update_document(
        document.id,
        text=text,
        status=status,
        category=category,
        tags=list(tags),
        summary=summary,
    )
    chunks = [
        ChunkRecord(
            doc_id=document.id,
            position=position,
            text=text or f"chunk {position}",
            start_char=0,
            end_char=len(text),
            embedding=embedding,
        )
        for position, embedding in enumerate(embeddings)
    ]
    if chunks:
        storage.replace_chunks(document.id, chunks)
    stored = storage.get_document(document.id)
    assert stored is not None
    return stored
