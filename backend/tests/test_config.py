"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from local_rag.core.config import Settings, get_settings


def test_yaml_sections_map_to_fields(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LRAG_STORE_PATH")
    monkeypatch.delenv("LRAG_EMBEDDING_BACKEND")
    config = tmp_path / "config.yaml"
    config.write_text(
        yaml.safe_dump(
            {
                "storage": {"path": str(tmp_path / "custom.db"), "max_file_size_mb": 25},
                "embeddings": {"backend": "hashed", "model": "mini", "hashed_dim": 128},
                "ollama": {"url": "http://gpu-box:11434/"},
                "chunking": {"size": 500, "overlap": 50},
                "retrieval": {"max_chunks": 8},
            }
        ),
        encoding="utf-8",
    )
    settings = Settings.from_yaml(config)
    assert settings.store_path == tmp_path / "custom.db"
    assert settings.max_file_size_mb == 25
    assert settings.embedding_backend == "hashed"
    assert settings.embedding_model == "mini"
    assert settings.hashed_dim == 128
    assert settings.ollama_url == "http://gpu-box:11434"
    assert (settings.chunk_size, settings.chunk_overlap) == (500, 50)
    assert settings.max_context_chunks == 8


def test_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("chunking:\n  size: 500\n", encoding="utf-8")
    monkeypatch.setenv("LRAG_CONFIG", str(config))
    monkeypatch.setenv("LRAG_CHUNK_SIZE", "640")
    monkeypatch.setenv("LRAG_UNKNOWN_SETTING", "ignored")

    settings = get_settings()
    assert settings.chunk_size == 640
    assert settings.store_path == tmp_path / "vectors.db"
    assert get_settings() is settings


def test_defaults() -> None:
    settings = Settings()
    assert settings.chunk_size == 1000
    assert settings.chunk_overlap == 200
    assert settings.max_context_chunks == 5
    assert settings.embedding_model == "nomic-embed-text"
    assert settings.store_path.name == "vectors.db"


def test_invalid_values_rejected() -> None:
    with pytest.raises(ValueError):
        Settings(chunk_size=0)
    with pytest.raises(ValueError):
        Settings(embedding_backend="openai")
