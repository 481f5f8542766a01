"""Tests for document loaders."""

from __future__ import annotations

from pathlib import Path

import docx
import fitz
import pytest

from local_rag.core.errors import DocumentIOError, ExtractionFailed, FileTooLarge, UnsupportedFormat
from local_rag.ingest.loaders import LoaderRegistry
from local_rag.ingest.types import DocumentFormat


@pytest.fixture
def registry() -> LoaderRegistry:
    return LoaderRegistry()


@pytest.mark.parametrize(
    "name,expected",
    [
        ("notes.txt", DocumentFormat.TEXT),
        ("README.MD", DocumentFormat.MARKDOWN),
        ("table.Csv", DocumentFormat.CSV),
        ("paper.PDF", DocumentFormat.PDF),
        ("letter.docx", DocumentFormat.DOCX),
    ],
)
def test_detects_format_case_insensitively(registry: LoaderRegistry, name: str, expected: DocumentFormat) -> None:
    assert registry.detect(Path(name)) is expected


@pytest.mark.parametrize("name", ["archive.xyz", "image.png", "Makefile"])
def test_unknown_extension_rejected(registry: LoaderRegistry, name: str) -> None:
    with pytest.raises(UnsupportedFormat):
        registry.detect(Path(name))


def test_plain_text_read_verbatim(registry: LoaderRegistry, tmp_path: Path) -> None:
    path = tmp_path / "test_file.txt"
    content = "Hello, this is a test file!\n  indented line"
    path.write_text(content, encoding="utf-8")
    document = registry.extract(path)
    assert document.text == content
    assert document.format is DocumentFormat.TEXT
    assert document.size_bytes == len(content.encode("utf-8"))


def test_whitespace_only_text_fails(registry: LoaderRegistry, tmp_path: Path) -> None:
    path = tmp_path / "blank.md"
    path.write_text(" \n\t\n ", encoding="utf-8")
    with pytest.raises(ExtractionFailed):
        registry.extract(path)


def test_invalid_utf8_text_fails(registry: LoaderRegistry, tmp_path: Path) -> None:
    path = tmp_path / "bad.txt"
    path.write_bytes(b"caf\xe9 \xff\xfe menu")
    with pytest.raises(ExtractionFailed, match="not valid UTF-8"):
        registry.extract(path)


def test_missing_file_is_io_error(registry: LoaderRegistry, tmp_path: Path) -> None:
    with pytest.raises(DocumentIOError):
        registry.extract(tmp_path / "nope.txt")


def test_pdf_pages_joined_with_newlines(registry: LoaderRegistry, tmp_path: Path) -> None:
    path = tmp_path / "two_pages.pdf"
    with fitz.open() as doc:
        for text in ("First page text", "Second page text"):
            page = doc.new_page()
            page.insert_text((72, 72), text)
        doc.save(str(path))
    document = registry.extract(path)
    assert document.format is DocumentFormat.PDF
    assert "First page text" in document.text
    assert "Second page text" in document.text
    assert document.text.index("First") < document.text.index("Second")
    assert document.text.endswith("\n")


def test_pdf_without_text_fails(registry: LoaderRegistry, tmp_path: Path) -> None:
    path = tmp_path / "blank.pdf"
    with fitz.open() as doc:
        doc.new_page()
        doc.save(str(path))
    with pytest.raises(ExtractionFailed):
        registry.extract(path)


def test_corrupt_pdf_fails(registry: LoaderRegistry, tmp_path: Path) -> None:
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf")
    with pytest.raises(ExtractionFailed):
        registry.extract(path)


def test_docx_one_line_per_paragraph(registry: LoaderRegistry, tmp_path: Path) -> None:
    path = tmp_path / "letter.docx"
    document = docx.Document()
    paragraph = document.add_paragraph("Dear ")
    paragraph.add_run("reader,")
    document.add_paragraph("")
    document.add_paragraph("Regards")
    document.save(path)

    extracted = registry.extract(path)
    assert extracted.format is DocumentFormat.DOCX
    assert extracted.text.endswith("Dear reader,\n\nRegards\n")


def test_empty_docx_fails(registry: LoaderRegistry, tmp_path: Path) -> None:
    path = tmp_path / "empty.docx"
    docx.Document().save(path)
    with pytest.raises(ExtractionFailed):
        registry.extract(path)


def test_file_size_limit(registry: LoaderRegistry, tmp_path: Path) -> None:
    path = tmp_path / "big.txt"
    path.write_bytes(b"a" * (1024 * 1024 + 1))
    info = registry.validate_file_size(path, max_size_mb=2)
    assert info.name == "big.txt"
    assert info.size_mb > 1
    with pytest.raises(FileTooLarge):
        registry.validate_file_size(path, max_size_mb=1)
