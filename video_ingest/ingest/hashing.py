from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO

from video_ingest.errors import ReadError

HASH_CHUNK_SIZE = 1024 * 1024


def hash_stream(stream: BinaryIO, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Return the SHA-256 hex digest of everything left in ``stream``."""

    hasher = hashlib.sha256()
    try:
        for chunk in iter(lambda: stream.read(chunk_size), b""):
            hasher.update(chunk)
    except OSError as exc:
        raise ReadError(f"Failed to read source bytes for hashing: {exc}") from exc
    return hasher.hexdigest()


def compute_cache_key(source_path: str | Path) -> str:
    """Content-derived cache key: identical bytes share a key wherever they live."""

    try:
        with Path(source_path).open("rb") as handle:
            return hash_stream(handle)
    except ReadError:
        raise
    except OSError as exc:
        raise ReadError(f"Failed to open {source_path} for hashing: {exc}") from exc
