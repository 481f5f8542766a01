"""Embedding providers."""

from __future__ import annotations

import asyncio
import hashlib
import math
import re
from typing import Any, Protocol, Sequence, runtime_checkable

import requests

from local_rag.core.errors import ProviderError, ProviderUnavailable
from local_rag.core.logging import get_logger

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"\w+")


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns text into fixed-length vectors.

    ``model`` overrides the provider's default model for a single call.
    """

    @property
    def model_name(self) -> str:
        ...

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        ...

    async def embed_batch(self, texts: Sequence[str], model: str | None = None) -> list[list[float]]:
        """Embed every text, preserving input order."""
        ...


class HashedEmbeddingProvider:
    """Lightweight hashed embedding model with deterministic output.

    Needs no network or model download, which makes it the offline backend
    and the one used by the test-suite.
    """

    def __init__(self, model_name: str = "hashed", dim: int = 384) -> None:
        self._model_name = model_name
        self._dim = dim

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dim(self) -> int:
        return self._dim

    def encode(self, text: str) -> list[float]:
        vector = [0.0] * self._dim
        for token in _tokenize(text):
            vector[_hash_token(token, self._dim)] += 1.0
        _normalize(vector)
        return vector

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        return self.encode(text)

    async def embed_batch(self, texts: Sequence[str], model: str | None = None) -> list[list[float]]:
        return [self.encode(text) for text in texts]


class OllamaEmbeddingProvider:
    """Embeddings from a local Ollama server.

    Requests run in a worker thread so the event loop keeps serving other
    operations while the model computes. ``timeout`` bounds every HTTP call.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model_name: str = "nomic-embed-text",
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._model_name = model_name
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def model_name(self) -> str:
        return self._model_name

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        return await asyncio.to_thread(self._embed_sync, text, model or self._model_name)

    async def embed_batch(self, texts: Sequence[str], model: str | None = None) -> list[list[float]]:
        vectors: list[list[float]] = []
        for text in texts:
            vectors.append(await self.embed(text, model=model))
        return vectors

    async def check_status(self) -> bool:
        """Return True when the server answers ``/api/tags``."""
        try:
            resp = await asyncio.to_thread(
                self._session.get, f"{self.base_url}/api/tags", timeout=self.timeout
            )
        except requests.RequestException:
            return False
        return resp.ok

    def _embed_sync(self, text: str, model: str) -> list[float]:
        url = f"{self.base_url}/api/embeddings"
        try:
            resp = self._session.post(url, json={"model": model, "prompt": text}, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise ProviderUnavailable(f"Embedding provider unreachable at {self.base_url}: {exc}") from exc
        except requests.RequestException as exc:
            raise ProviderError(f"Embedding request failed: {exc}") from exc

        if not resp.ok:
            raise ProviderError(f"Embedding request failed ({resp.status_code}): {resp.text[:200]}")
        try:
            payload: Any = resp.json()
        except ValueError as exc:
            raise ProviderError("Embedding response is not valid JSON") from exc
        return _parse_embedding(payload)


def _parse_embedding(payload: Any) -> list[float]:
    if isinstance(payload, dict):
        if isinstance(payload.get("embedding"), list) and payload["embedding"]:
            return [float(value) for value in payload["embedding"]]
        embeddings = payload.get("embeddings")
        if isinstance(embeddings, list) and embeddings and isinstance(embeddings[0], list):
            return [float(value) for value in embeddings[0]]
    raise ProviderError("Unexpected embeddings response from provider")


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "big")
    return value % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = ["EmbeddingProvider", "HashedEmbeddingProvider", "OllamaEmbeddingProvider"]
