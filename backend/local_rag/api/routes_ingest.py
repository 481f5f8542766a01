"""Ingest API routes."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends

from local_rag.api.dependencies import get_orchestrator
from local_rag.models.dto import ErrorResponse, IngestRequest, IngestResponse
from local_rag.orchestrator import RagOrchestrator

router = APIRouter(
    responses={
        413: {"model": ErrorResponse, "description": "File exceeds the size limit"},
        415: {"model": ErrorResponse, "description": "Unsupported file type"},
        503: {"model": ErrorResponse, "description": "Embedding provider unreachable"},
    }
)


@router.post("", response_model=IngestResponse, summary="Ingest one document into a collection")
async def trigger_ingest(
    request: IngestRequest,
    orchestrator: RagOrchestrator = Depends(get_orchestrator),
) -> IngestResponse:
    summary = await orchestrator.ingest(
        collection_id=request.collection_id,
        file_path=Path(request.path).expanduser(),
        file_name=request.file_name,
        embedding_model=request.embedding_model,
        chunk_size=request.chunk_size,
        overlap=request.overlap,
        encrypt=request.encrypt,
        password=request.password,
    )
    return IngestResponse(**summary.to_dict())
