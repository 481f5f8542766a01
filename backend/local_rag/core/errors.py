"""Error taxonomy shared by the ingest and retrieval layers."""

from __future__ import annotations


class RagError(Exception):
    """Base class for all errors raised by Local RAG."""

    code: str = "rag_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "detail": self.message}


class UnsupportedFormat(RagError):
    code = "unsupported_format"


class ExtractionFailed(RagError):
    code = "extraction_failed"


class FileTooLarge(ExtractionFailed):
    code = "file_too_large"


class InputMismatch(RagError):
    code = "input_mismatch"


class DimensionMismatch(RagError):
    """Vector dimension differs from the batch or the collection."""

    code = "dimension_mismatch"

    def __init__(self, expected: int, actual: int, index: int | None = None) -> None:
        if index is None:
            message = f"Embedding dimension mismatch: expected {expected}, got {actual}"
        else:
            message = f"Embedding dimension mismatch at index {index}: expected {expected}, got {actual}"
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.index = index


class MissingPassword(RagError):
    code = "missing_password"


class DecryptionFailed(RagError):
    code = "decryption_failed"


class EncryptionError(RagError):
    code = "encryption_error"


class CollectionNotFound(RagError):
    code = "collection_not_found"

    def __init__(self, collection_id: str) -> None:
        super().__init__(f"Collection not found: {collection_id}")
        self.collection_id = collection_id


class ProviderError(RagError):
    code = "provider_error"


class ProviderUnavailable(ProviderError):
    code = "provider_unavailable"


class StorageError(RagError):
    code = "storage_error"


class DocumentIOError(RagError, OSError):
    code = "io_error"


__all__ = [
    "RagError",
    "UnsupportedFormat",
    "ExtractionFailed",
    "FileTooLarge",
    "InputMismatch",
    "DimensionMismatch",
    "MissingPassword",
    "DecryptionFailed",
    "EncryptionError",
    "CollectionNotFound",
    "ProviderError",
    "ProviderUnavailable",
    "StorageError",
    "DocumentIOError",
]
