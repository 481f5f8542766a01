"""Retrieval components."""

from .vector_store import (
    CollectionStats,
    IndexedChunk,
    SearchResult,
    VectorStore,
    format_context,
    table_name_for,
)

__all__ = [
    "VectorStore",
    "IndexedChunk",
    "SearchResult",
    "CollectionStats",
    "format_context",
    "table_name_for",
]
