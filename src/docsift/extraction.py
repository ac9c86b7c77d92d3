"""
Text extraction for submitted files.

Plain text is read directly; PDF, Office and image formats go through
Docling, which also runs OCR on images and scanned pages.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .errors import ExtractionError

NO_TEXT_PLACEHOLDER = "No text found in image"

DOCLING_MEDIA_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    }
)

_CONVERTER: Any | None = None


def is_supported_media_type(media_type: str) -> bool:
    return (
        media_type.startswith("text/")
        or media_type.startswith("image/")
        or media_type in DOCLING_MEDIA_TYPES
    )


def extract_text(file_path: str, media_type: str) -> str:
    """Return the text content of *file_path* or raise ``ExtractionError``."""
    path = Path(file_path)
    if not path.is_file():
        raise ExtractionError(f"No such file: {file_path}")
    if not is_supported_media_type(media_type):
        raise ExtractionError(f"Unsupported file format: {media_type}")

    if media_type.startswith("text/"):
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ExtractionError(f"Text extraction failed: {exc}") from exc

    try:
        text = _convert_with_docling(path)
    except Exception as exc:
        raise ExtractionError(f"Text extraction failed: {exc}") from exc

    if media_type.startswith("image/") and not text.strip():
        return NO_TEXT_PLACEHOLDER
    return text


def _get_converter() -> Any:
    global _CONVERTER
    if _CONVERTER is None:
        from docling.document_converter import DocumentConverter

        _CONVERTER = DocumentConverter()
    return _CONVERTER


def _convert_with_docling(path: Path) -> str:
    result = _get_converter().convert(str(path))
    return result.document.export_to_markdown()
