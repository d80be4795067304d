from __future__ import annotations

import json
import logging
import math
import os
import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from video_ingest.cache import CacheManager, FileManifestStore, ManifestStore
from video_ingest.config import Settings
from video_ingest.errors import SourceNotFound, UnsupportedFileType
from video_ingest.ingest.extract_audio import extract_audio
from video_ingest.ingest.frames import extract_frames
from video_ingest.ingest.hashing import compute_cache_key
from video_ingest.ingest.probe import probe_duration
from video_ingest.ingest.transcript import load_sidecar_transcript
from video_ingest.models import CacheManifest, IngestOptions, IngestResult, SourceDescriptor
from video_ingest.outcome import value_or
from video_ingest.singleflight import KeyedLocks, SingleFlight
from video_ingest.timeline.segment_builder import build_segments

logger = logging.getLogger(__name__)

OptionsInput = IngestOptions | Mapping[str, Any] | None


def default_options(settings: Settings) -> IngestOptions:
    return IngestOptions(
        frame_interval_sec=float(settings.ingest.frame_interval_sec),
        max_frames=int(settings.ingest.max_frames),
        segment_duration_sec=float(settings.ingest.segment_duration_sec),
        max_audio_duration_sec=float(settings.ingest.max_audio_duration_sec),
    )


def normalize_options(options: OptionsInput, defaults: IngestOptions) -> IngestOptions:
    """Merge caller options over defaults, replacing invalid values with the default."""

    if options is None:
        raw: Mapping[str, Any] = {}
    elif isinstance(options, IngestOptions):
        raw = options.to_dict()
    else:
        raw = options

    max_frames = _finite_number(raw.get("max_frames"))
    return IngestOptions(
        frame_interval_sec=_positive_or(raw.get("frame_interval_sec"), defaults.frame_interval_sec),
        max_frames=math.floor(max_frames) if max_frames is not None and max_frames >= 0 else defaults.max_frames,
        segment_duration_sec=_positive_or(raw.get("segment_duration_sec"), defaults.segment_duration_sec),
        max_audio_duration_sec=_positive_or(raw.get("max_audio_duration_sec"), defaults.max_audio_duration_sec),
    )


def resolve_source_path(source: SourceDescriptor, files_dir: str | Path) -> Path:
    """Prefer the descriptor's own path, then ``<files_dir>/<file_id><ext>``."""

    candidates: list[Path] = []
    if source.path:
        candidates.append(Path(source.path).expanduser())
    candidates.append(Path(files_dir).expanduser() / f"{source.file_id}{source.ext}")

    for candidate in candidates:
        if candidate.is_file() and os.access(candidate, os.R_OK):
            return candidate.resolve()

    raise SourceNotFound(
        f"Video file not found: {source.path or source.origin_name}",
        candidates=[str(candidate) for candidate in candidates],
    )


class VideoIngestor:
    """Turns a video into frames, audio, transcript and timeline, cached by content.

    Concurrent ``ingest`` calls on one instance for the same file and options
    share a single computation. Separate processes sharing a cache root do not
    coordinate and may both recompute a missing entry.
    """

    def __init__(self, settings: Settings | None = None, store: ManifestStore | None = None) -> None:
        self.settings = settings or Settings()
        self.cache_root = self.settings.paths.cache_root
        self.cache = CacheManager(store or FileManifestStore(self.cache_root))
        self._flights: SingleFlight[IngestResult] = SingleFlight()
        self._dir_locks = KeyedLocks()

    @property
    def default_options(self) -> IngestOptions:
        return default_options(self.settings)

    def ingest(self, source: SourceDescriptor, options: OptionsInput = None) -> IngestResult:
        source_path = self._checked_source_path(source)
        normalized = normalize_options(options, self.default_options)
        cache_key = compute_cache_key(source_path)
        flight_key = f"{cache_key}:{json.dumps(normalized.to_dict(), sort_keys=True)}"

        return self._flights.do(
            flight_key,
            lambda: self._lookup_or_build(source, source_path, cache_key, normalized),
        )

    def lookup(self, source: SourceDescriptor, options: OptionsInput = None) -> IngestResult | None:
        """Cache check only; never runs external tools."""

        source_path = self._checked_source_path(source)
        normalized = normalize_options(options, self.default_options)
        return self.cache.lookup(compute_cache_key(source_path), normalized)

    def _checked_source_path(self, source: SourceDescriptor) -> Path:
        if not source.is_video:
            raise UnsupportedFileType(source.origin_name, str(getattr(source.file_type, "value", source.file_type)))
        return resolve_source_path(source, self.settings.paths.files_dir)

    def _lookup_or_build(
        self,
        source: SourceDescriptor,
        source_path: Path,
        cache_key: str,
        options: IngestOptions,
    ) -> IngestResult:
        with self._dir_locks.hold(cache_key):
            cached = self.cache.lookup(cache_key, options)
            if cached is not None:
                logger.info("Serving %s from cache entry %s", source.origin_name, cache_key)
                return cached

            result = self._build(source, source_path, cache_key, options)
            self.cache.persist(cache_key, CacheManifest(options=options, result=result))
            logger.info(
                "Ingested %s: %d frame(s), %d segment(s), audio=%s, transcript=%s",
                source.origin_name,
                len(result.frames),
                len(result.segments),
                "yes" if result.audio else "no",
                "yes" if result.transcript else "no",
            )
            return result

    def _build(
        self,
        source: SourceDescriptor,
        source_path: Path,
        cache_key: str,
        options: IngestOptions,
    ) -> IngestResult:
        cache_dir = self.cache_root / cache_key
        cache_dir.mkdir(parents=True, exist_ok=True)

        tools = self.settings.tools
        extract_timeout = tools.extract_timeout_seconds if tools.extract_timeout_seconds > 0 else None

        # leaving the pool waits for every step, so a frame failure never orphans the others
        with ThreadPoolExecutor(
            max_workers=max(1, self.settings.ingest.max_workers),
            thread_name_prefix=f"ingest-{cache_key[:8]}",
        ) as pool:
            probe_future = pool.submit(
                probe_duration,
                source_path,
                ffprobe=tools.ffprobe,
                timeout_seconds=tools.probe_timeout_seconds,
            )
            frames_future = pool.submit(
                extract_frames,
                source_path,
                cache_dir,
                options,
                ffmpeg=tools.ffmpeg,
                timeout_seconds=extract_timeout,
            )
            transcript_future = pool.submit(load_sidecar_transcript, source_path)
            audio_future = pool.submit(
                extract_audio,
                source_path,
                cache_dir,
                options.max_audio_duration_sec,
                ffmpeg=tools.ffmpeg,
                timeout_seconds=extract_timeout,
            )

        frames = frames_future.result()
        duration_sec = value_or(probe_future.result(), 0.0)
        transcript = value_or(transcript_future.result(), None)
        audio = value_or(audio_future.result(), None)

        segments = build_segments(
            frames=frames,
            transcript_segments=transcript.segments if transcript else (),
            duration_seconds=duration_sec,
            segment_duration_seconds=options.segment_duration_sec,
        )

        return IngestResult(
            source_file_id=source.file_id,
            cache_key=cache_key,
            source_path=str(source_path),
            created_at=datetime.now(timezone.utc).isoformat(),
            cache_dir=str(cache_dir),
            duration_sec=duration_sec,
            frame_interval_sec=options.frame_interval_sec,
            segment_duration_sec=options.segment_duration_sec,
            frames=tuple(frames),
            segments=tuple(segments),
            audio=audio,
            transcript=transcript,
        )


_shared_ingestors: dict[str, VideoIngestor] = {}
_shared_ingestors_lock = threading.Lock()


def shared_ingestor(settings: Settings | None = None) -> VideoIngestor:
    """Return the process-wide ingestor for these settings, creating it once.

    Callers passing equal settings share single-flight and cache-directory locks.
    """

    resolved = settings or Settings()
    key = resolved.model_dump_json()
    with _shared_ingestors_lock:
        ingestor = _shared_ingestors.get(key)
        if ingestor is None:
            ingestor = VideoIngestor(resolved)
            _shared_ingestors[key] = ingestor
    return ingestor


def ingest_video(
    source: SourceDescriptor,
    options: OptionsInput = None,
    settings: Settings | None = None,
) -> IngestResult:
    """Public entry point; returns a complete result or raises."""

    return shared_ingestor(settings).ingest(source, options)


def _finite_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _positive_or(value: Any, default: float) -> float:
    number = _finite_number(value)
    if number is None or number <= 0:
        return default
    return number
