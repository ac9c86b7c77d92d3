"""
AI provider for embeddings, summaries, and classification.

Wraps the Google GenAI API behind a small protocol so the processing
pipeline and the search engine can be driven by deterministic fakes.
Structured responses are requested as JSON and validated against Pydantic
models; anything that does not validate comes back as a
``MalformedResponse`` instead of raising.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any, Protocol

from google.genai import Client as GenAIClient

from .config import resolve_categories
from .errors import EmbeddingError, ProviderError
from .models import (
    ClassificationPayload,
    MalformedResponse,
    Parsed,
    PayloadT,
    SummaryPayload,
    parse_payload,
)


_DEFAULT_EMBEDDING_MODEL = "gemini-embedding-001"
_DEFAULT_GENERATION_MODEL = "gemini-2.0-flash"
_DEFAULT_DIM = 768
PROMPT_CHAR_LIMIT = 4000

SUMMARY_PROMPT = """
Summarize the following document.

DOCUMENT TEXT:
{text}

Provide:
1. A brief 2-sentence overview (`short`)
2. Exactly 3 key takeaway bullet points (`bullets`)
"""

CLASSIFY_PROMPT = """
Analyze the following document text and classify it.

DOCUMENT TEXT:
{text}

INSTRUCTIONS:
1. Classify into ONE category from: {categories}
2. Extract exactly 5 relevant keywords/tags
"""


class AIProvider(Protocol):
    """Capabilities the pipeline and search engine need from an AI backend."""

    async def embed(
        self, text: str, *, task_type: str = "RETRIEVAL_DOCUMENT"
    ) -> list[float]:
        """Return an embedding vector or raise ``EmbeddingError``."""

    async def summarize(self, text: str) -> Parsed[SummaryPayload] | MalformedResponse:
        """Summarize a document; raise ``ProviderError`` on transport failure."""

    async def classify(
        self,
        text: str,
        *,
        categories: Sequence[str] | None = None,
    ) -> Parsed[ClassificationPayload] | MalformedResponse:
        """Classify a document; raise ``ProviderError`` on transport failure."""


class GeminiProvider:
    """Embeddings and structured generation via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        embedding_model: str | None = None,
        generation_model: str | None = None,
        dim: int | None = None,
        prompt_char_limit: int = PROMPT_CHAR_LIMIT,
        client: Any | None = None,
    ) -> None:
        self.embedding_model = embedding_model or os.getenv(
            "DOCSIFT_EMBEDDING_MODEL", _DEFAULT_EMBEDDING_MODEL
        )
        self.generation_model = generation_model or os.getenv(
            "DOCSIFT_GENERATION_MODEL", _DEFAULT_GENERATION_MODEL
        )
        self.dim = dim or int(os.getenv("DOCSIFT_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.prompt_char_limit = prompt_char_limit

        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv("GOOGLE_API_KEY")
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            self._client = GenAIClient(api_key=resolved_key)

    async def embed(
        self, text: str, *, task_type: str = "RETRIEVAL_DOCUMENT"
    ) -> list[float]:
        """Embed a single text."""
        try:
            result = await self._client.aio.models.embed_content(
                model=self.embedding_model,
                contents=[text],
                config={
                    "task_type": task_type,
                    "output_dimensionality": self.dim,
                },
            )
        except Exception as exc:
            raise EmbeddingError(f"Failed to generate embedding: {exc}") from exc

        embeddings = result.embeddings or []
        if not embeddings or not embeddings[0].values:
            raise EmbeddingError("Provider returned no embedding values")
        return [float(value) for value in embeddings[0].values]

    async def summarize(self, text: str) -> Parsed[SummaryPayload] | MalformedResponse:
        prompt = SUMMARY_PROMPT.format(text=text[: self.prompt_char_limit])
        return await self._generate(prompt, SummaryPayload)

    async def classify(
        self,
        text: str,
        *,
        categories: Sequence[str] | None = None,
    ) -> Parsed[ClassificationPayload] | MalformedResponse:
        allowed = categories or resolve_categories()
        prompt = CLASSIFY_PROMPT.format(
            text=text[: self.prompt_char_limit],
            categories=", ".join(allowed),
        )
        return await self._generate(prompt, ClassificationPayload)

    async def _generate(
        self, prompt: str, schema: type[PayloadT]
    ) -> Parsed[PayloadT] | MalformedResponse:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.generation_model,
                contents=prompt,
                config={
                    "response_mime_type": "application/json",
                    "response_json_schema": schema.model_json_schema(),
                },
            )
        except Exception as exc:
            raise ProviderError(f"Generation request failed: {exc}") from exc
        return parse_payload(response.text, schema)
