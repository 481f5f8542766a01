"""Administrative routes for Local RAG."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from local_rag.api.dependencies import get_orchestrator
from local_rag.core.metrics import metrics_response
from local_rag.models.dto import CollectionListResponse, CollectionStatsResponse, DeleteResponse
from local_rag.orchestrator import RagOrchestrator

router = APIRouter()


@router.get("/collections", response_model=CollectionListResponse, summary="List collections")
async def list_collections(
    orchestrator: RagOrchestrator = Depends(get_orchestrator),
) -> CollectionListResponse:
    return CollectionListResponse(collections=await orchestrator.list_collections())


@router.get(
    "/collections/{collection_id}/stats",
    response_model=CollectionStatsResponse,
    summary="Chunk count and size of a collection",
)
async def collection_stats(
    collection_id: str,
    orchestrator: RagOrchestrator = Depends(get_orchestrator),
) -> CollectionStatsResponse:
    stats = await orchestrator.stats(collection_id)
    return CollectionStatsResponse(collection_id=collection_id, **stats.to_dict())


@router.delete(
    "/collections/{collection_id}",
    response_model=DeleteResponse,
    summary="Delete a collection and all of its chunks",
)
async def delete_collection(
    collection_id: str,
    orchestrator: RagOrchestrator = Depends(get_orchestrator),
) -> DeleteResponse:
    await orchestrator.delete_collection(collection_id)
    return DeleteResponse(status="ok", deleted=[collection_id])


@router.delete("/collections", response_model=DeleteResponse, summary="Drop every collection")
async def clear_collections(
    confirm: bool = Query(default=False, description="Must be true to proceed"),
    orchestrator: RagOrchestrator = Depends(get_orchestrator),
) -> DeleteResponse:
    if not confirm:
        raise HTTPException(status_code=400, detail="Pass confirm=true to drop every collection")
    existing = await orchestrator.list_collections()
    await orchestrator.clear_all()
    return DeleteResponse(status="ok", deleted=existing)


@router.get("/metrics", summary="Prometheus metrics")
async def metrics() -> Response:
    return metrics_response()
