"""Identifier helpers."""

from __future__ import annotations

import uuid

CHUNK_ID_PREFIX = "chk"


def new_chunk_id() -> str:
    """Return a fresh chunk id, ``chk_`` followed by 32 hex characters."""
    return f"{CHUNK_ID_PREFIX}_{uuid.uuid4().hex}"


__all__ = ["CHUNK_ID_PREFIX", "new_chunk_id"]
