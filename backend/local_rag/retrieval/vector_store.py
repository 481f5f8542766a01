"""Per-collection vector storage and nearest-neighbour search.

Every collection lives in its own SQLite table named after the collection id.
The ``embedding`` column holds float32 vectors whose byte width is pinned by a
CHECK constraint when the table is created, so the dimension of a collection
is fixed by its first write. A ``collections`` table records id, table name
and dimension; ``chunk_ids`` keeps chunk ids unique across all collections.

Public methods are coroutines. SQLite work happens in a worker thread on a
fresh connection, so concurrent callers suspend instead of blocking the loop.
"""

from __future__ import annotations

import asyncio
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterator, Sequence

import numpy as np

from local_rag.core.errors import (
    CollectionNotFound,
    DimensionMismatch,
    InputMismatch,
    MissingPassword,
    StorageError,
)
from local_rag.core.logging import get_logger
from local_rag.core.metrics import INDEX_SIZE, SEARCH_LATENCY
from local_rag.db.sqlite import SQLiteDatabase
from local_rag.security.encryption import EncryptionService

logger = get_logger(__name__)

TABLE_PREFIX = "embeddings_"
CONTEXT_SEPARATOR = "\n\n---\n\n"
_FLOAT_BYTES = 4


def _now_ms() -> int:
    return int(time.time() * 1000)


_META_SCHEMA = """
CREATE TABLE IF NOT EXISTS collections (
  collection_id TEXT PRIMARY KEY,
  table_name TEXT NOT NULL UNIQUE,
  dimension INTEGER NOT NULL CHECK (dimension > 0),
  created_at INTEGER NOT NULL,
  updated_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS chunk_ids (
  id TEXT PRIMARY KEY,
  collection_id TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_chunk_ids_collection ON chunk_ids (collection_id);
"""


@dataclass(slots=True, frozen=True)
class IndexedChunk:
    id: str
    collection_id: str
    chunk_text: str
    chunk_index: int
    file_name: str


@dataclass(slots=True)
class SearchResult:
    chunk_text: str
    similarity: float
    file_name: str
    chunk_index: int
    # True when ``similarity`` is a rank-derived stand-in; only order holds.
    approximate: bool = False

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(slots=True)
class CollectionStats:
    total_chunks: int = 0
    approx_total_files: int = 0
    approx_size_mb: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class CollectionHandle:
    collection_id: str
    table_name: str
    dimension: int


def table_name_for(collection_id: str) -> str:
    """Map a collection id to its table name.

    Lower-case ASCII letters and digits are kept; every other UTF-8 byte is
    written as ``_xx``. SQLite folds identifier case, so upper-case letters
    are escaped too.
    """
    if not collection_id:
        raise ValueError("collection id must not be empty")
    parts: list[str] = []
    for char in collection_id:
        if ("a" <= char <= "z") or ("0" <= char <= "9"):
            parts.append(char)
        else:
            parts.extend(f"_{byte:02x}" for byte in char.encode("utf-8"))
    return TABLE_PREFIX + "".join(parts)


def collection_id_for(table_name: str) -> str:
    """Inverse of :func:`table_name_for`."""
    if not table_name.startswith(TABLE_PREFIX):
        raise ValueError(f"not a collection table: {table_name}")
    encoded = table_name[len(TABLE_PREFIX) :]
    buffer = bytearray()
    pos = 0
    while pos < len(encoded):
        char = encoded[pos]
        if char == "_":
            hex_pair = encoded[pos + 1 : pos + 3]
            if len(hex_pair) != 2:
                raise ValueError(f"truncated escape in table name: {table_name}")
            buffer.append(int(hex_pair, 16))
            pos += 3
        else:
            buffer.extend(char.encode("ascii"))
            pos += 1
    if not buffer:
        raise ValueError(f"empty collection id in table name: {table_name}")
    return buffer.decode("utf-8")


def format_context(results: Sequence[SearchResult]) -> str:
    """Render search results as one context block for a prompt."""
    return CONTEXT_SEPARATOR.join(
        f"From {result.file_name} (chunk {result.chunk_index}):\n{result.chunk_text}"
        for result in results
    )


def rank_vectors(matrix: np.ndarray, query: np.ndarray, limit: int) -> tuple[np.ndarray, np.ndarray, bool]:
    """Return ``(row order, scores, approximate)`` for the ``limit`` best rows.

    Scores are cosine similarities. A zero query vector has no cosine, so rows
    are then ordered by Euclidean distance and scored ``1 - rank / limit``.
    """
    k = min(limit, matrix.shape[0])
    query_norm = float(np.linalg.norm(query))
    if query_norm > 0.0:
        denominators = np.linalg.norm(matrix, axis=1) * query_norm
        scores = np.divide(
            matrix @ query,
            denominators,
            out=np.full(matrix.shape[0], -1.0, dtype=np.float64),
            where=denominators > 0.0,
        )
        order = np.argsort(-scores, kind="stable")[:k]
        return order, scores[order], False

    distances = np.linalg.norm(matrix - query, axis=1)
    order = np.argsort(distances, kind="stable")[:k]
    approx_scores = np.array([1.0 - rank / limit for rank in range(len(order))], dtype=np.float64)
    return order, approx_scores, True


class VectorStore:
    """Durable per-collection vector tables with optional payload encryption."""

    def __init__(self, db_path: Path, encryption: EncryptionService) -> None:
        self.db_path = db_path.expanduser()
        self.encryption = encryption
        self._registry: dict[str, CollectionHandle] = {}
        self._schema_ready = False

    # Public API -------------------------------------------------------

    async def ensure_collection(self, collection_id: str, dim: int) -> int:
        """Create the collection if absent and return its dimension.

        An existing collection keeps the dimension it was created with and
        ``dim`` is ignored.
        """
        handle = await asyncio.to_thread(self._ensure_collection_sync, collection_id, dim)
        return handle.dimension

    async def insert(
        self,
        collection_id: str,
        chunks: Sequence[IndexedChunk],
        vectors: Sequence[Sequence[float]],
        encrypt: bool = False,
        password: str | None = None,
    ) -> int:
        if len(chunks) != len(vectors):
            raise InputMismatch(
                f"Chunks and embeddings length mismatch: {len(chunks)} chunks, {len(vectors)} vectors"
            )
        if not chunks:
            return 0
        dim = len(vectors[0])
        if dim == 0:
            raise InputMismatch("Embedding vectors must not be empty")
        for idx, vector in enumerate(vectors):
            if len(vector) != dim:
                raise DimensionMismatch(expected=dim, actual=len(vector), index=idx)
        if encrypt and not password:
            raise MissingPassword("Password required for encryption")
        for chunk in chunks:
            if chunk.collection_id != collection_id:
                raise InputMismatch(
                    f"Chunk {chunk.id} belongs to {chunk.collection_id!r}, not {collection_id!r}"
                )

        inserted = await asyncio.to_thread(
            self._insert_sync, collection_id, chunks, vectors, dim, encrypt, password
        )
        logger.info(
            "Stored %s chunks in collection %s",
            inserted,
            collection_id,
            extra={"ctx_collection": collection_id, "ctx_encrypted": encrypt},
        )
        await self._after_write(collection_id)
        return inserted

    async def search(
        self,
        collection_id: str,
        query_vector: Sequence[float],
        limit: int,
        encrypted: bool = False,
        password: str | None = None,
    ) -> list[SearchResult]:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        started = time.perf_counter()
        results = await asyncio.to_thread(
            self._search_sync, collection_id, query_vector, limit, encrypted, password
        )
        SEARCH_LATENCY.observe(time.perf_counter() - started)
        return results

    async def get_context(
        self,
        collection_id: str,
        query_vector: Sequence[float],
        max_chunks: int,
        encrypted: bool = False,
        password: str | None = None,
    ) -> str:
        results = await self.search(collection_id, query_vector, max_chunks, encrypted, password)
        if not results:
            return ""
        return format_context(results)

    async def delete_collection(self, collection_id: str) -> None:
        await asyncio.to_thread(self._delete_collection_sync, collection_id)

    async def stats(self, collection_id: str) -> CollectionStats:
        return await asyncio.to_thread(self._stats_sync, collection_id)

    async def list_collections(self) -> list[str]:
        return await asyncio.to_thread(self._list_collections_sync)

    async def clear_all(self) -> None:
        """Drop every collection. Destructive; meant for a full reset."""
        await asyncio.to_thread(self._clear_all_sync)

    # Internal helpers -------------------------------------------------

    def _open(self) -> SQLiteDatabase:
        db = SQLiteDatabase(self.db_path)
        if not self._schema_ready:
            db.ensure_schema(_META_SCHEMA)
            self._schema_ready = True
        return db

    @contextmanager
    def _storage_errors(self, collection_id: str | None = None) -> Iterator[None]:
        try:
            yield
        except sqlite3.OperationalError as exc:
            if collection_id is not None and "no such table" in str(exc):
                self._registry.pop(collection_id, None)
                raise CollectionNotFound(collection_id) from exc
            raise StorageError(f"Storage operation failed: {exc}") from exc
        except sqlite3.IntegrityError as exc:
            raise StorageError(f"Constraint violated, batch rolled back: {exc}") from exc
        except sqlite3.Error as exc:
            raise StorageError(f"Storage operation failed: {exc}") from exc

    def _read_handle(self, cursor: sqlite3.Cursor, collection_id: str) -> CollectionHandle | None:
        """Load the collection's metadata row and refresh the registry from it.

        The ``collections`` table is authoritative; another store on the same
        file may have dropped or recreated the collection since it was cached.
        """
        row = cursor.execute(
            "SELECT table_name, dimension FROM collections WHERE collection_id = ?",
            [collection_id],
        ).fetchone()
        if row is None:
            self._registry.pop(collection_id, None)
            return None
        handle = CollectionHandle(collection_id, row["table_name"], row["dimension"])
        self._registry[collection_id] = handle
        return handle

    def _ensure_in_transaction(
        self, cursor: sqlite3.Cursor, collection_id: str, dim: int
    ) -> tuple[CollectionHandle, bool]:
        handle = self._read_handle(cursor, collection_id)
        if handle is not None:
            return handle, False
        if dim < 1:
            raise ValueError("dimension must be at least 1")
        table = table_name_for(collection_id)
        now = _now_ms()
        cursor.execute(
            "INSERT INTO collections (collection_id, table_name, dimension, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            [collection_id, table, dim, now, now],
        )
        cursor.execute(
            f"""
            CREATE TABLE "{table}" (
              id TEXT PRIMARY KEY,
              collection_id TEXT NOT NULL,
              chunk_text TEXT NOT NULL,
              chunk_index INTEGER NOT NULL,
              file_name TEXT NOT NULL,
              embedding BLOB NOT NULL CHECK (length(embedding) = {dim * _FLOAT_BYTES}),
              created_at INTEGER NOT NULL
            )
            """
        )
        return CollectionHandle(collection_id, table, dim), True

    def _ensure_collection_sync(self, collection_id: str, dim: int) -> CollectionHandle:
        with self._storage_errors(), self._open() as db, db.transaction() as cursor:
            handle, created = self._ensure_in_transaction(cursor, collection_id, dim)
        if created:
            logger.info("Created collection %s with dimension %s", collection_id, dim)
        self._registry[collection_id] = handle
        return handle

    def _insert_sync(
        self,
        collection_id: str,
        chunks: Sequence[IndexedChunk],
        vectors: Sequence[Sequence[float]],
        dim: int,
        encrypt: bool,
        password: str | None,
    ) -> int:
        if encrypt and password:
            texts = [self.encryption.encrypt(chunk.chunk_text, password) for chunk in chunks]
        else:
            texts = [chunk.chunk_text for chunk in chunks]
        blobs = [np.asarray(vector, dtype=np.float32).tobytes() for vector in vectors]
        now = _now_ms()

        with self._storage_errors(), self._open() as db, db.transaction() as cursor:
            handle, created = self._ensure_in_transaction(cursor, collection_id, dim)
            if handle.dimension != dim:
                raise DimensionMismatch(expected=handle.dimension, actual=dim)
            cursor.executemany(
                "INSERT INTO chunk_ids (id, collection_id) VALUES (?, ?)",
                [(chunk.id, collection_id) for chunk in chunks],
            )
            cursor.executemany(
                f"""
                INSERT INTO "{handle.table_name}"
                  (id, collection_id, chunk_text, chunk_index, file_name, embedding, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (chunk.id, collection_id, text, chunk.chunk_index, chunk.file_name, blob, now)
                    for chunk, text, blob in zip(chunks, texts, blobs)
                ],
            )
        if created:
            logger.info("Created collection %s with dimension %s", collection_id, dim)
        self._registry[collection_id] = handle
        return len(chunks)

    def _search_sync(
        self,
        collection_id: str,
        query_vector: Sequence[float],
        limit: int,
        encrypted: bool,
        password: str | None,
    ) -> list[SearchResult]:
        # Dimension and rows are read from one snapshot.
        with self._storage_errors(collection_id), self._open() as db, db.transaction(immediate=False) as cursor:
            handle = self._read_handle(cursor, collection_id)
            if handle is None:
                raise CollectionNotFound(collection_id)
            if len(query_vector) != handle.dimension:
                raise DimensionMismatch(expected=handle.dimension, actual=len(query_vector))
            if encrypted and not password:
                raise MissingPassword("Password required for decryption")
            rows = cursor.execute(
                f'SELECT chunk_text, chunk_index, file_name, embedding FROM "{handle.table_name}" ORDER BY rowid'
            ).fetchall()
        if not rows:
            return []

        blob = b"".join(row["embedding"] for row in rows)
        if len(blob) != len(rows) * handle.dimension * _FLOAT_BYTES:
            raise StorageError(
                f"Stored vectors in {collection_id} do not match dimension {handle.dimension}"
            )
        matrix = np.frombuffer(blob, dtype=np.float32)
        matrix = matrix.reshape(len(rows), handle.dimension).astype(np.float64)
        query = np.asarray(query_vector, dtype=np.float64)
        order, scores, approximate = rank_vectors(matrix, query, limit)
        if approximate:
            logger.debug("Zero query vector for %s; using rank-based scores", collection_id)

        results: list[SearchResult] = []
        for row_idx, score in zip(order.tolist(), scores.tolist()):
            row = rows[row_idx]
            text = row["chunk_text"]
            if encrypted and password:
                # DecryptionFailed propagates and aborts the whole search
                text = self.encryption.decrypt(text, password)
            results.append(
                SearchResult(
                    chunk_text=text,
                    similarity=float(score),
                    file_name=row["file_name"],
                    chunk_index=row["chunk_index"],
                    approximate=approximate,
                )
            )
        return results

    def _delete_collection_sync(self, collection_id: str) -> None:
        table = table_name_for(collection_id)
        with self._storage_errors(), self._open() as db, db.transaction() as cursor:
            row = cursor.execute(
                "SELECT table_name FROM collections WHERE collection_id = ?",
                [collection_id],
            ).fetchone()
            if row is not None:
                table = row["table_name"]
            cursor.execute(f'DROP TABLE IF EXISTS "{table}"')
            cursor.execute("DELETE FROM collections WHERE collection_id = ?", [collection_id])
            cursor.execute("DELETE FROM chunk_ids WHERE collection_id = ?", [collection_id])
        self._registry.pop(collection_id, None)
        INDEX_SIZE.labels(collection=collection_id).set(0)
        if row is not None:
            logger.info("Deleted collection %s", collection_id)

    def _stats_sync(self, collection_id: str) -> CollectionStats:
        with self._storage_errors(collection_id), self._open() as db, db.transaction(immediate=False) as cursor:
            handle = self._read_handle(cursor, collection_id)
            if handle is None:
                return CollectionStats()
            row = cursor.execute(
                f"""
                SELECT
                  COUNT(*) AS total,
                  COUNT(DISTINCT file_name) AS files,
                  COALESCE(SUM(length(CAST(chunk_text AS BLOB)) + length(embedding)), 0) AS bytes
                FROM "{handle.table_name}"
                """
            ).fetchone()
        return CollectionStats(
            total_chunks=int(row["total"]),
            approx_total_files=int(row["files"]),
            approx_size_mb=round(int(row["bytes"]) / (1024 * 1024), 4),
        )

    def _list_collections_sync(self) -> list[str]:
        with self._storage_errors(), self._open() as db:
            names = db.table_names(TABLE_PREFIX)
        collection_ids: list[str] = []
        for name in names:
            try:
                collection_ids.append(collection_id_for(name))
            except ValueError:
                logger.warning("Ignoring table with undecodable name %s", name)
        return collection_ids

    def _clear_all_sync(self) -> None:
        with self._storage_errors(), self._open() as db, db.transaction() as cursor:
            tables = db.table_names(TABLE_PREFIX)
            for table in tables:
                cursor.execute(f'DROP TABLE IF EXISTS "{table}"')
            cursor.execute("DELETE FROM collections")
            cursor.execute("DELETE FROM chunk_ids")
        self._registry.clear()
        INDEX_SIZE.clear()
        logger.warning("Cleared %s collections", len(tables))

    async def _after_write(self, collection_id: str) -> None:
        """Best-effort bookkeeping after a committed insert; never raises."""
        try:
            await asyncio.to_thread(self._touch_sync, collection_id)
        except Exception:  # noqa: BLE001
            logger.warning("Post-write bookkeeping failed for %s", collection_id, exc_info=True)

    def _touch_sync(self, collection_id: str) -> None:
        handle = self._registry.get(collection_id)
        if handle is None:
            return
        with self._open() as db:
            db.execute(
                "UPDATE collections SET updated_at = ? WHERE collection_id = ?",
                [_now_ms(), collection_id],
            )
            row = db.execute(f'SELECT COUNT(*) AS count FROM "{handle.table_name}"').fetchone()
        INDEX_SIZE.labels(collection=collection_id).set(int(row["count"]) if row else 0)


__all__ = [
    "VectorStore",
    "IndexedChunk",
    "SearchResult",
    "CollectionStats",
    "CollectionHandle",
    "table_name_for",
    "collection_id_for",
    "format_context",
    "rank_vectors",
]
