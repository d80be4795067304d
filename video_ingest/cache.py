from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from video_ingest.errors import CacheReadError
from video_ingest.models import CACHE_SCHEMA_VERSION, CacheManifest, IngestOptions, IngestResult

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"


class ManifestStore:
    """Key-value persistence for cache manifest documents."""

    def get(self, cache_key: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def put(self, cache_key: str, document: dict[str, Any]) -> None:
        raise NotImplementedError


class FileManifestStore(ManifestStore):
    """Stores one ``manifest.json`` per cache key under ``root``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def cache_dir(self, cache_key: str) -> Path:
        return self.root / cache_key

    def manifest_path(self, cache_key: str) -> Path:
        return self.cache_dir(cache_key) / MANIFEST_FILENAME

    def get(self, cache_key: str) -> dict[str, Any] | None:
        path = self.manifest_path(cache_key)
        if not path.exists():
            return None

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CacheReadError(f"Failed to read cache manifest at {path}: {exc}") from exc

        if not isinstance(payload, dict):
            raise CacheReadError(f"Cache manifest at {path} is not a JSON object.")
        return payload

    def put(self, cache_key: str, document: dict[str, Any]) -> None:
        path = self.manifest_path(cache_key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # readers never see a half-written manifest
        tmp_path = path.with_name(f"{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
        tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)


class InMemoryManifestStore(ManifestStore):
    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}

    def get(self, cache_key: str) -> dict[str, Any] | None:
        document = self.documents.get(cache_key)
        return json.loads(json.dumps(document)) if document is not None else None

    def put(self, cache_key: str, document: dict[str, Any]) -> None:
        self.documents[cache_key] = json.loads(json.dumps(document))


class CacheManager:
    """Validates and persists manifests; unreadable entries count as misses."""

    def __init__(self, store: ManifestStore) -> None:
        self.store = store

    def lookup(self, cache_key: str, options: IngestOptions) -> IngestResult | None:
        try:
            document = self.store.get(cache_key)
            if document is None:
                return None

            if document.get("version") != CACHE_SCHEMA_VERSION:
                logger.info(
                    "Cache manifest for %s has schema version %r (expected %d); recomputing.",
                    cache_key,
                    document.get("version"),
                    CACHE_SCHEMA_VERSION,
                )
                return None

            manifest = CacheManifest.from_dict(document)
            if manifest.options != options:
                logger.info("Cache manifest for %s was built with different options; recomputing.", cache_key)
                return None

            missing = [path for path in manifest.result.referenced_paths() if not Path(path).exists()]
            if missing:
                logger.info("Cache entry %s references %d missing file(s); recomputing.", cache_key, len(missing))
                return None
        except Exception as exc:
            logger.warning("Failed to load cached video ingest result for %s (%s); recomputing.", cache_key, exc)
            return None

        return manifest.result

    def persist(self, cache_key: str, manifest: CacheManifest) -> None:
        self.store.put(cache_key, manifest.to_dict())
