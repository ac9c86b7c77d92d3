from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, ValidationError

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class SummaryPayload(BaseModel):
    """Summary returned by the provider for a document"""

    short: str = Field(min_length=1, description="Brief two-sentence overview")
    bullets: list[str] = Field(
        min_length=1, description="Exactly three key takeaway bullet points"
    )


class ClassificationPayload(BaseModel):
    """Category and keyword tags returned by the provider for a document"""

    category: str = Field(description="One category from the allowed list")
    tags: list[str] = Field(description="Exactly five relevant keywords")


@dataclass(frozen=True)
class Parsed(Generic[PayloadT]):
    """A provider response that matched the expected schema."""

    value: PayloadT


@dataclass(frozen=True)
class MalformedResponse:
    """A provider response that could not be validated."""

    reason: str
    raw: str | None = None


def parse_payload(
    raw: str | None, model: type[PayloadT]
) -> Parsed[PayloadT] | MalformedResponse:
    if raw is None or not raw.strip():
        return MalformedResponse(reason="empty response", raw=raw)
    try:
        return Parsed(value=model.model_validate_json(raw))
    except ValidationError as exc:
        return MalformedResponse(reason=str(exc), raw=raw)
