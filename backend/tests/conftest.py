"""Test fixtures for Local RAG."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from local_rag.core.config import Settings  # noqa: E402
from local_rag.ingest.embeddings import HashedEmbeddingProvider  # noqa: E402
from local_rag.orchestrator import RagOrchestrator  # noqa: E402
from local_rag.retrieval.vector_store import VectorStore  # noqa: E402
from local_rag.security.encryption import EncryptionService  # noqa: E402

# Argon2 at production cost makes every encrypted row take tens of ms.
FAST_ARGON2 = {"time_cost": 1, "memory_cost": 64, "parallelism": 1}


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("LRAG_STORE_PATH", str(tmp_path / "vectors.db"))
    monkeypatch.setenv("LRAG_EMBEDDING_BACKEND", "hashed")
    monkeypatch.setenv("LRAG_ARGON2_TIME_COST", str(FAST_ARGON2["time_cost"]))
    monkeypatch.setenv("LRAG_ARGON2_MEMORY_COST", str(FAST_ARGON2["memory_cost"]))
    monkeypatch.delenv("LRAG_CONFIG", raising=False)

    from local_rag.api import dependencies as deps
    from local_rag.core.config import get_settings

    get_settings.cache_clear()
    deps.reset_dependencies()
    yield
    get_settings.cache_clear()
    deps.reset_dependencies()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        store_path=tmp_path / "vectors.db",
        embedding_backend="hashed",
        chunk_size=200,
        chunk_overlap=40,
        argon2_time_cost=FAST_ARGON2["time_cost"],
        argon2_memory_cost=FAST_ARGON2["memory_cost"],
    )


@pytest.fixture
def encryption() -> EncryptionService:
    return EncryptionService(**FAST_ARGON2)


@pytest.fixture
def store(tmp_path: Path, encryption: EncryptionService) -> VectorStore:
    return VectorStore(tmp_path / "vectors.db", encryption)


@pytest.fixture
def provider() -> HashedEmbeddingProvider:
    return HashedEmbeddingProvider(dim=64)


@pytest.fixture
def orchestrator(settings: Settings, provider: HashedEmbeddingProvider, store: VectorStore) -> RagOrchestrator:
    return RagOrchestrator(settings=settings, embedding_provider=provider, vector_store=store)


@pytest.fixture(scope="session")
def sample_text() -> str:
    return (
        "Grapes grow on vines in warm climates.\n\n"
        "Submarines navigate the deep ocean using sonar.\n\n"
        "Sourdough bread needs a lively starter and patience."
    )
