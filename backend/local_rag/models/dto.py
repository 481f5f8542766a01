"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class IngestRequest(BaseModel):
    collection_id: str = Field(min_length=1)
    path: str = Field(description="Filesystem path of the document to ingest")
    file_name: str | None = Field(default=None, description="Display name stored with each chunk")
    embedding_model: str | None = None
    chunk_size: int | None = Field(default=None, ge=1)
    overlap: int | None = Field(default=None, ge=0)
    encrypt: bool = False
    password: str | None = None


class IngestResponse(BaseModel):
    chunks_processed: int
    chunks_stored: int
    total_chars: int


class SearchRequest(BaseModel):
    query: str
    limit: int | None = Field(default=None, ge=1, le=100)
    encrypted: bool = False
    password: str | None = None
    embedding_model: str | None = None


class SearchResultItem(BaseModel):
    chunk_text: str
    similarity: float
    file_name: str
    chunk_index: int
    approximate: bool = False


class SearchResponse(BaseModel):
    collection_id: str
    results: list[SearchResultItem]


class ContextResponse(BaseModel):
    collection_id: str
    context: str


class CollectionStatsResponse(BaseModel):
    collection_id: str
    total_chunks: int
    approx_total_files: int
    approx_size_mb: float


class CollectionListResponse(BaseModel):
    collections: list[str]


class DeleteResponse(BaseModel):
    status: str = "ok"
    deleted: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    detail: str


__all__ = [
    "IngestRequest",
    "IngestResponse",
    "SearchRequest",
    "SearchResultItem",
    "SearchResponse",
    "ContextResponse",
    "CollectionStatsResponse",
    "CollectionListResponse",
    "DeleteResponse",
    "ErrorResponse",
]
