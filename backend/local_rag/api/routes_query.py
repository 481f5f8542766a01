"""Query API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from local_rag.api.dependencies import get_orchestrator
from local_rag.models.dto import ContextResponse, ErrorResponse, SearchRequest, SearchResponse, SearchResultItem
from local_rag.orchestrator import RagOrchestrator

router = APIRouter(
    responses={
        400: {"model": ErrorResponse, "description": "Password missing for an encrypted collection"},
        403: {"model": ErrorResponse, "description": "Stored text could not be decrypted"},
        404: {"model": ErrorResponse, "description": "Collection not found"},
        503: {"model": ErrorResponse, "description": "Embedding provider unreachable"},
    }
)


@router.post(
    "/collections/{collection_id}/search",
    response_model=SearchResponse,
    summary="Rank stored chunks against a query",
)
async def run_search(
    collection_id: str,
    request: SearchRequest,
    orchestrator: RagOrchestrator = Depends(get_orchestrator),
) -> SearchResponse:
    results = await orchestrator.search(
        collection_id,
        request.query,
        limit=request.limit,
        encrypted=request.encrypted,
        password=request.password,
        embedding_model=request.embedding_model,
    )
    return SearchResponse(
        collection_id=collection_id,
        results=[SearchResultItem(**result.to_dict()) for result in results],
    )


@router.post(
    "/collections/{collection_id}/context",
    response_model=ContextResponse,
    summary="Assemble a context block for a query",
)
async def build_context(
    collection_id: str,
    request: SearchRequest,
    orchestrator: RagOrchestrator = Depends(get_orchestrator),
) -> ContextResponse:
    context = await orchestrator.retrieve(
        collection_id,
        request.query,
        max_chunks=request.limit,
        encrypted=request.encrypted,
        password=request.password,
        embedding_model=request.embedding_model,
    )
    return ContextResponse(collection_id=collection_id, context=context)
