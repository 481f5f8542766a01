"""Chunking utilities."""

from __future__ import annotations

import regex

from local_rag.core.logging import get_logger
from local_rag.ingest.types import TextChunk

logger = get_logger(__name__)

_GRAPHEME_RE = regex.compile(r"\X")


def split_graphemes(text: str) -> list[str]:
    """Split text into extended grapheme clusters."""
    return _GRAPHEME_RE.findall(text)


def chunk_text(text: str, chunk_size: int, overlap: int) -> list[TextChunk]:
    """Slide a ``chunk_size`` window over the graphemes of ``text``.

    Consecutive windows share ``overlap`` graphemes. Windows that are only
    whitespace are dropped without consuming a sequence index, so emitted
    indices are always ``0..n-1``. Offsets are grapheme positions, ``end``
    exclusive.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    if overlap < 0:
        raise ValueError("overlap must not be negative")

    graphemes = split_graphemes(text)
    total = len(graphemes)
    if total == 0:
        return []

    step = chunk_size - overlap
    if step < 1:
        logger.warning(
            "Chunk overlap %s is not smaller than chunk size %s; advancing one grapheme per chunk",
            overlap,
            chunk_size,
        )
        step = 1

    chunks: list[TextChunk] = []
    start = 0
    while start < total:
        end = min(start + chunk_size, total)
        piece = "".join(graphemes[start:end])
        if piece.strip():
            chunks.append(TextChunk(text=piece, index=len(chunks), start=start, end=end))
        if end == total:
            break
        start += step
    return chunks


__all__ = ["chunk_text", "split_graphemes"]
