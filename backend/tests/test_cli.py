"""Tests for the lrag command-line client."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import requests
from typer.testing import CliRunner

from local_rag.cli import main as cli

runner = CliRunner()


class StubResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload if payload is not None else {}

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return self._payload

    @property
    def text(self) -> str:
        return str(self._payload)


class Recorder:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.responses: dict[str, StubResponse] = {}

    def request(self, method: str, url: str, timeout: float, **kwargs: Any) -> StubResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        return self.responses.get(url, StubResponse(payload={"status": "ok"}))


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> Recorder:
    recorder = Recorder()
    monkeypatch.setattr(cli.requests, "request", recorder.request)
    monkeypatch.delenv("LRAG_HOST", raising=False)
    return recorder


def test_ingest_posts_resolved_path(backend: Recorder, tmp_path: Path) -> None:
    doc = tmp_path / "notes.txt"
    doc.write_text("hello", encoding="utf-8")
    result = runner.invoke(cli.app, ["ingest", "notes", str(doc), "--chunk-size", "300", "--overlap", "30"])
    assert result.exit_code == 0, result.output
    call = backend.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://127.0.0.1:5180/ingest"
    assert call["json"] == {
        "collection_id": "notes",
        "path": str(doc.resolve()),
        "encrypt": False,
        "chunk_size": 300,
        "overlap": 30,
    }


def test_query_context_prints_block(backend: Recorder, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LRAG_HOST", "http://backend:9000/")
    backend.responses["http://backend:9000/collections/notes/context"] = StubResponse(
        payload={"collection_id": "notes", "context": "From a.txt (chunk 0):\nhello"}
    )
    result = runner.invoke(cli.app, ["query", "notes", "hello", "--context", "--k", "2"])
    assert result.exit_code == 0, result.output
    assert "From a.txt (chunk 0):" in result.output
    assert backend.calls[0]["json"] == {"query": "hello", "encrypted": False, "limit": 2}


def test_clear_requires_confirmation(backend: Recorder) -> None:
    result = runner.invoke(cli.app, ["collections", "clear"], input="n\n")
    assert result.exit_code != 0
    assert backend.calls == []

    result = runner.invoke(cli.app, ["collections", "clear", "--yes"])
    assert result.exit_code == 0
    assert backend.calls[0]["method"] == "DELETE"
    assert backend.calls[0]["params"] == {"confirm": "true"}


def test_error_response_exits_nonzero(backend: Recorder) -> None:
    backend.responses["http://127.0.0.1:5180/collections/missing/stats"] = StubResponse(
        404, {"error": "collection_not_found", "detail": "Collection not found: missing"}
    )
    result = runner.invoke(cli.app, ["collections", "stats", "missing"])
    assert result.exit_code == 1


def test_unreachable_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(*args: Any, **kwargs: Any) -> None:
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(cli.requests, "request", refuse)
    result = runner.invoke(cli.app, ["collections", "list", "--host", "http://127.0.0.1:1"])
    assert result.exit_code == 1
