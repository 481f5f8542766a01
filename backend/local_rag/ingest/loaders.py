"""Document loaders for supported formats."""

from __future__ import annotations

import zipfile
from pathlib import Path

import fitz  # PyMuPDF
from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from local_rag.core.errors import DocumentIOError, ExtractionFailed, FileTooLarge, UnsupportedFormat
from local_rag.core.logging import get_logger
from local_rag.ingest.types import DocumentFormat, FileInfo, RawDocument

logger = get_logger(__name__)


class BaseLoader:
    """Common loader interface."""

    suffixes: tuple[str, ...] = ()

    def can_load(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes

    def detect(self, path: Path) -> DocumentFormat:  # pragma: no cover - interface
        raise NotImplementedError

    def load(self, path: Path) -> RawDocument:  # pragma: no cover - interface
        raise NotImplementedError


class TextLoader(BaseLoader):
    """Plain text, markdown and csv files, read verbatim."""

    suffixes = (".txt", ".md", ".csv")
    _formats = {
        ".txt": DocumentFormat.TEXT,
        ".md": DocumentFormat.MARKDOWN,
        ".csv": DocumentFormat.CSV,
    }

    def detect(self, path: Path) -> DocumentFormat:
        return self._formats[path.suffix.lower()]

    def load(self, path: Path) -> RawDocument:
        raw = _read_bytes(path)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExtractionFailed(f"{path.name} is not valid UTF-8 text: {exc}") from exc
        if not text.strip():
            raise ExtractionFailed(f"No text could be extracted from {path.name}")
        return RawDocument(path=path, format=self.detect(path), text=text, size_bytes=len(raw))


class PDFLoader(BaseLoader):
    suffixes = (".pdf",)

    def detect(self, path: Path) -> DocumentFormat:
        return DocumentFormat.PDF

    def load(self, path: Path) -> RawDocument:
        raw = _read_bytes(path)
        try:
            doc = fitz.open(stream=raw, filetype="pdf")
        except (fitz.FileDataError, RuntimeError, ValueError) as exc:
            raise ExtractionFailed(f"Failed to load PDF {path.name}: {exc}") from exc

        parts: list[str] = []
        with doc:
            for page in doc:
                try:
                    parts.append(page.get_text("text"))
                except Exception as exc:  # noqa: BLE001
                    logger.warning("Skipping page %s of %s: %s", page.number, path.name, exc)
                    continue
                parts.append("\n")
        text = "".join(parts)
        if not text.strip():
            raise ExtractionFailed(f"No text could be extracted from PDF {path.name}")
        return RawDocument(path=path, format=DocumentFormat.PDF, text=text, size_bytes=len(raw))


class DocxLoader(BaseLoader):
    suffixes = (".docx",)

    def detect(self, path: Path) -> DocumentFormat:
        return DocumentFormat.DOCX

    def load(self, path: Path) -> RawDocument:
        if not path.is_file():
            raise DocumentIOError(f"Cannot read {path}: not a file")
        try:
            document = Document(str(path))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
            raise ExtractionFailed(f"Failed to read DOCX {path.name}: {exc}") from exc
        except OSError as exc:
            raise DocumentIOError(f"Cannot read {path}: {exc}") from exc

        text = "".join(
            "".join(run.text for run in paragraph.runs) + "\n"
            for paragraph in document.paragraphs
        )
        if not text.strip():
            raise ExtractionFailed(f"No text could be extracted from DOCX {path.name}")
        return RawDocument(
            path=path,
            format=DocumentFormat.DOCX,
            text=text,
            size_bytes=path.stat().st_size,
        )


class LoaderRegistry:
    """Registry that selects an appropriate loader for a path."""

    def __init__(self) -> None:
        self._loaders: list[BaseLoader] = [
            TextLoader(),
            PDFLoader(),
            DocxLoader(),
        ]

    def register(self, loader: BaseLoader) -> None:
        self._loaders.append(loader)

    def for_path(self, path: Path) -> BaseLoader:
        for loader in self._loaders:
            if loader.can_load(path):
                return loader
        if not path.suffix:
            raise UnsupportedFormat(f"No file extension: {path.name}")
        raise UnsupportedFormat(f"Unsupported file type: {path.suffix.lstrip('.')}")

    def detect(self, path: Path) -> DocumentFormat:
        return self.for_path(path).detect(path)

    def extract(self, path: Path) -> RawDocument:
        loader = self.for_path(path)
        document = loader.load(path)
        logger.debug(
            "Extracted %s characters from %s",
            len(document.text),
            path.name,
            extra={"ctx_format": document.format.value},
        )
        return document

    def file_info(self, path: Path) -> FileInfo:
        file_format = self.detect(path)
        try:
            size_bytes = path.stat().st_size
        except OSError as exc:
            raise DocumentIOError(f"Cannot stat {path}: {exc}") from exc
        return FileInfo(name=path.name, format=file_format, size_bytes=size_bytes)

    def validate_file_size(self, path: Path, max_size_mb: int) -> FileInfo:
        """Return file info, raising FileTooLarge above ``max_size_mb``."""
        info = self.file_info(path)
        if info.size_bytes > max_size_mb * 1024 * 1024:
            raise FileTooLarge(
                f"{info.name} is {info.size_mb:.1f} MB, limit is {max_size_mb} MB"
            )
        return info


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise DocumentIOError(f"Cannot read {path}: {exc}") from exc


__all__ = [
    "BaseLoader",
    "TextLoader",
    "PDFLoader",
    "DocxLoader",
    "LoaderRegistry",
]
