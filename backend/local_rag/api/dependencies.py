"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from local_rag.core.config import Settings, get_settings
from local_rag.ingest.embeddings import EmbeddingProvider, HashedEmbeddingProvider, OllamaEmbeddingProvider
from local_rag.orchestrator import RagOrchestrator
from local_rag.retrieval.vector_store import VectorStore
from local_rag.security.encryption import EncryptionService

_ENCRYPTION: EncryptionService | None = None
_VECTOR_STORE: VectorStore | None = None
_EMBEDDING_PROVIDER: EmbeddingProvider | None = None
_ORCHESTRATOR: RagOrchestrator | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_encryption_service() -> EncryptionService:
    global _ENCRYPTION
    if _ENCRYPTION is None:
        settings = get_app_settings()
        _ENCRYPTION = EncryptionService(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
        )
    return _ENCRYPTION


def get_vector_store() -> VectorStore:
    global _VECTOR_STORE
    if _VECTOR_STORE is None:
        settings = get_app_settings()
        _VECTOR_STORE = VectorStore(settings.store_path, get_encryption_service())
    return _VECTOR_STORE


def get_embedding_provider() -> EmbeddingProvider:
    global _EMBEDDING_PROVIDER
    if _EMBEDDING_PROVIDER is None:
        settings = get_app_settings()
        if settings.embedding_backend == "hashed":
            _EMBEDDING_PROVIDER = HashedEmbeddingProvider(
                model_name=settings.embedding_model,
                dim=settings.hashed_dim,
            )
        else:
            _EMBEDDING_PROVIDER = OllamaEmbeddingProvider(
                base_url=settings.ollama_url,
                model_name=settings.embedding_model,
                timeout=settings.embedding_timeout,
            )
    return _EMBEDDING_PROVIDER


def get_orchestrator() -> RagOrchestrator:
    global _ORCHESTRATOR
    if _ORCHESTRATOR is None:
        _ORCHESTRATOR = RagOrchestrator(
            settings=get_app_settings(),
            embedding_provider=get_embedding_provider(),
            vector_store=get_vector_store(),
        )
    return _ORCHESTRATOR


def reset_dependencies() -> None:
    """Drop cached singletons so the next request rebuilds them."""
    global _ENCRYPTION, _VECTOR_STORE, _EMBEDDING_PROVIDER, _ORCHESTRATOR
    get_app_settings.cache_clear()
    _ENCRYPTION = None
    _VECTOR_STORE = None
    _EMBEDDING_PROVIDER = None
    _ORCHESTRATOR = None


__all__ = [
    "get_app_settings",
    "get_encryption_service",
    "get_vector_store",
    "get_embedding_provider",
    "get_orchestrator",
    "reset_dependencies",
]
