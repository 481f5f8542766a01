"""RAG orchestration: file ingestion and query-time retrieval."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

from local_rag.core.config import Settings
from local_rag.core.errors import InputMismatch, MissingPassword
from local_rag.core.logging import get_logger
from local_rag.core.metrics import INGEST_DURATION
from local_rag.ingest.chunker import chunk_text
from local_rag.ingest.embeddings import EmbeddingProvider
from local_rag.ingest.loaders import LoaderRegistry
from local_rag.ingest.types import IngestSummary, RawDocument, TextChunk
from local_rag.retrieval.vector_store import CollectionStats, IndexedChunk, SearchResult, VectorStore
from local_rag.utils.ids import new_chunk_id

logger = get_logger(__name__)


class RagOrchestrator:
    """Coordinate loaders, chunking, embeddings and the vector store.

    Collaborators are passed in explicitly; the orchestrator keeps no state
    of its own between calls, so concurrent ingests and retrievals only
    contend inside the vector store.
    """

    def __init__(
        self,
        settings: Settings,
        embedding_provider: EmbeddingProvider,
        vector_store: VectorStore,
        loader_registry: LoaderRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.embedding_provider = embedding_provider
        self.vector_store = vector_store
        self.loader_registry = loader_registry or LoaderRegistry()

    async def ingest(
        self,
        collection_id: str,
        file_path: Path,
        file_name: str | None = None,
        embedding_model: str | None = None,
        chunk_size: int | None = None,
        overlap: int | None = None,
        encrypt: bool = False,
        password: str | None = None,
    ) -> IngestSummary:
        """Extract, chunk, embed and store one file.

        Nothing is written unless every stage succeeds; the final insert is a
        single transaction. Retrying a failed call reprocesses the whole file.
        """
        if encrypt and not password:
            raise MissingPassword("Password required for encryption")
        path = Path(file_path).expanduser()
        name = file_name or path.name
        size = chunk_size if chunk_size is not None else self.settings.chunk_size
        step_overlap = overlap if overlap is not None else self.settings.chunk_overlap
        started = time.perf_counter()

        await asyncio.to_thread(self.loader_registry.validate_file_size, path, self.settings.max_file_size_mb)
        document = await asyncio.to_thread(self.loader_registry.extract, path)
        chunks = await asyncio.to_thread(chunk_text, document.text, size, step_overlap)
        logger.info(
            "Chunked %s into %s chunks",
            name,
            len(chunks),
            extra={"ctx_collection": collection_id, "ctx_format": document.format.value},
        )

        vectors = await self.embedding_provider.embed_batch(
            [chunk.text for chunk in chunks], model=embedding_model
        )
        if len(vectors) != len(chunks):
            raise InputMismatch(
                f"Embedding provider returned {len(vectors)} vectors for {len(chunks)} chunks"
            )

        records = _build_records(collection_id, name, chunks)
        stored = await self.vector_store.insert(
            collection_id, records, vectors, encrypt=encrypt, password=password
        )
        INGEST_DURATION.labels(format=document.format.value).observe(time.perf_counter() - started)
        return _summarize(document, chunks, stored)

    async def search(
        self,
        collection_id: str,
        query_text: str,
        limit: int | None = None,
        encrypted: bool = False,
        password: str | None = None,
        embedding_model: str | None = None,
    ) -> list[SearchResult]:
        query_vector = await self.embedding_provider.embed(query_text, model=embedding_model)
        return await self.vector_store.search(
            collection_id,
            query_vector,
            limit if limit is not None else self.settings.max_context_chunks,
            encrypted=encrypted,
            password=password,
        )

    async def retrieve(
        self,
        collection_id: str,
        query_text: str,
        max_chunks: int | None = None,
        encrypted: bool = False,
        password: str | None = None,
        embedding_model: str | None = None,
    ) -> str:
        """Return the assembled context block for ``query_text``."""
        query_vector = await self.embedding_provider.embed(query_text, model=embedding_model)
        return await self.vector_store.get_context(
            collection_id,
            query_vector,
            max_chunks if max_chunks is not None else self.settings.max_context_chunks,
            encrypted=encrypted,
            password=password,
        )

    # Collection management -------------------------------------------

    async def delete_collection(self, collection_id: str) -> None:
        await self.vector_store.delete_collection(collection_id)

    async def stats(self, collection_id: str) -> CollectionStats:
        return await self.vector_store.stats(collection_id)

    async def list_collections(self) -> list[str]:
        return await self.vector_store.list_collections()

    async def clear_all(self) -> None:
        await self.vector_store.clear_all()


def _build_records(collection_id: str, file_name: str, chunks: list[TextChunk]) -> list[IndexedChunk]:
    return [
        IndexedChunk(
            id=new_chunk_id(),
            collection_id=collection_id,
            chunk_text=chunk.text,
            chunk_index=chunk.index,
            file_name=file_name,
        )
        for chunk in chunks
    ]


def _summarize(document: RawDocument, chunks: list[TextChunk], stored: int) -> IngestSummary:
    return IngestSummary(
        chunks_processed=len(chunks),
        chunks_stored=stored,
        total_chars=len(document.text),
    )


__all__ = ["RagOrchestrator"]
