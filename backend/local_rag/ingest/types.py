"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class DocumentFormat(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    CSV = "csv"
    PDF = "pdf"
    DOCX = "docx"


@dataclass(slots=True)
class RawDocument:
    """Text extracted from a single source file."""

    path: Path
    format: DocumentFormat
    text: str
    size_bytes: int


@dataclass(slots=True, frozen=True)
class TextChunk:
    """Contiguous grapheme span ``[start, end)`` of a document."""

    text: str
    index: int
    start: int
    end: int


@dataclass(slots=True)
class FileInfo:
    name: str
    format: DocumentFormat
    size_bytes: int

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


@dataclass(slots=True)
class IngestSummary:
    """Outcome of ingesting one file into a collection."""

    chunks_processed: int = 0
    chunks_stored: int = 0
    total_chars: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "chunks_processed": self.chunks_processed,
            "chunks_stored": self.chunks_stored,
            "total_chars": self.total_chars,
        }


__all__ = [
    "DocumentFormat",
    "RawDocument",
    "TextChunk",
    "FileInfo",
    "IngestSummary",
]
