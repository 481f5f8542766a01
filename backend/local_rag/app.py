"""FastAPI application setup for Local RAG."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from local_rag.api.dependencies import (
    get_app_settings,
    get_embedding_provider,
    get_orchestrator,
    get_vector_store,
)
from local_rag.api.routes_admin import router as admin_router
from local_rag.api.routes_ingest import router as ingest_router
from local_rag.api.routes_query import router as query_router
from local_rag.core import errors
from local_rag.core.logging import configure_logging, get_logger
from local_rag.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

configure_logging()
logger = get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[errors.RagError], int]] = [
    (errors.CollectionNotFound, 404),
    (errors.UnsupportedFormat, 415),
    (errors.FileTooLarge, 413),
    (errors.ExtractionFailed, 422),
    (errors.InputMismatch, 422),
    (errors.DimensionMismatch, 422),
    (errors.MissingPassword, 400),
    (errors.DecryptionFailed, 403),
    (errors.ProviderUnavailable, 503),
    (errors.ProviderError, 502),
]

app = FastAPI(
    title="Local RAG",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:1420",
        "http://localhost:1420",
        "tauri://localhost",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ingest_router, prefix="/ingest", tags=["ingest"])
app.include_router(query_router, prefix="", tags=["query"])
app.include_router(admin_router, prefix="", tags=["admin"])


def status_for(exc: errors.RagError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


@app.exception_handler(errors.RagError)
async def rag_error_handler(request: Request, exc: errors.RagError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("Request %s failed: %s", request.url.path, exc, exc_info=exc)
    else:
        logger.info("Request %s rejected: %s", request.url.path, exc)
    return JSONResponse(status_code=status, content=exc.to_dict())


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - started)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_vector_store()
    get_embedding_provider()
    get_orchestrator()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
