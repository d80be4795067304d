from __future__ import annotations

import mimetypes
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from video_ingest.errors import CacheReadError

CACHE_SCHEMA_VERSION = 1

AUDIO_SAMPLE_RATE = 16000
AUDIO_CHANNEL_COUNT = 1

# containers mimetypes misreports (.ts maps to a Qt translation file)
VIDEO_EXTENSIONS = frozenset({".ts", ".m2ts", ".mts", ".mkv", ".webm", ".flv"})


class FileType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    DOCUMENT = "document"
    TEXT = "text"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    """Caller-owned identity of a file to ingest."""

    file_id: str
    origin_name: str
    file_type: FileType | str
    path: str | None
    ext: str

    @classmethod
    def from_path(cls, path: str | Path, file_id: str | None = None) -> SourceDescriptor:
        resolved = Path(path).expanduser().resolve()
        return cls(
            file_id=file_id or resolved.stem,
            origin_name=resolved.name,
            file_type=_guess_file_type(resolved),
            path=str(resolved),
            ext=resolved.suffix,
        )

    @property
    def is_video(self) -> bool:
        return self.file_type == FileType.VIDEO


@dataclass(frozen=True, slots=True)
class IngestOptions:
    """Normalized ingestion knobs; compared field by field for cache validity."""

    frame_interval_sec: float
    max_frames: int
    segment_duration_sec: float
    max_audio_duration_sec: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> IngestOptions:
        return cls(
            frame_interval_sec=float(payload["frame_interval_sec"]),
            max_frames=int(payload["max_frames"]),
            segment_duration_sec=float(payload["segment_duration_sec"]),
            max_audio_duration_sec=float(payload["max_audio_duration_sec"]),
        )


@dataclass(frozen=True, slots=True)
class Frame:
    path: str
    mime_type: str
    timestamp_sec: float


@dataclass(frozen=True, slots=True)
class TranscriptSegment:
    start_sec: float
    end_sec: float
    text: str


@dataclass(frozen=True, slots=True)
class Transcript:
    path: str
    format: Literal["srt", "vtt"]
    segments: tuple[TranscriptSegment, ...]


@dataclass(frozen=True, slots=True)
class AudioTrack:
    path: str
    size_bytes: int
    mime_type: str = "audio/wav"
    sample_rate: int = AUDIO_SAMPLE_RATE
    channel_count: int = AUDIO_CHANNEL_COUNT


@dataclass(frozen=True, slots=True)
class TimelineSegment:
    """Fixed-width time bucket with the frames and transcript text inside it."""

    index: int
    start_sec: float
    end_sec: float
    frame_paths: tuple[str, ...] = ()
    representative_frame_path: str | None = None
    transcript_text: str | None = None


@dataclass(frozen=True, slots=True)
class IngestResult:
    """Complete output of one ingestion run; this is what the cache stores."""

    source_file_id: str
    cache_key: str
    source_path: str
    created_at: str
    cache_dir: str
    duration_sec: float
    frame_interval_sec: float
    segment_duration_sec: float
    frames: tuple[Frame, ...] = ()
    segments: tuple[TimelineSegment, ...] = ()
    audio: AudioTrack | None = None
    transcript: Transcript | None = None

    def referenced_paths(self) -> list[str]:
        paths = [frame.path for frame in self.frames]
        if self.audio is not None:
            paths.append(self.audio.path)
        if self.transcript is not None:
            paths.append(self.transcript.path)
        return paths

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> IngestResult:
        audio = payload.get("audio")
        transcript = payload.get("transcript")
        return cls(
            source_file_id=str(payload["source_file_id"]),
            cache_key=str(payload["cache_key"]),
            source_path=str(payload["source_path"]),
            created_at=str(payload["created_at"]),
            cache_dir=str(payload["cache_dir"]),
            duration_sec=float(payload["duration_sec"]),
            frame_interval_sec=float(payload["frame_interval_sec"]),
            segment_duration_sec=float(payload["segment_duration_sec"]),
            frames=tuple(
                Frame(
                    path=str(row["path"]),
                    mime_type=str(row["mime_type"]),
                    timestamp_sec=float(row["timestamp_sec"]),
                )
                for row in payload.get("frames", [])
            ),
            segments=tuple(
                TimelineSegment(
                    index=int(row["index"]),
                    start_sec=float(row["start_sec"]),
                    end_sec=float(row["end_sec"]),
                    frame_paths=tuple(str(path) for path in row.get("frame_paths", [])),
                    representative_frame_path=row.get("representative_frame_path"),
                    transcript_text=row.get("transcript_text"),
                )
                for row in payload.get("segments", [])
            ),
            audio=AudioTrack(
                path=str(audio["path"]),
                size_bytes=int(audio["size_bytes"]),
                mime_type=str(audio.get("mime_type", "audio/wav")),
                sample_rate=int(audio.get("sample_rate", AUDIO_SAMPLE_RATE)),
                channel_count=int(audio.get("channel_count", AUDIO_CHANNEL_COUNT)),
            )
            if audio
            else None,
            transcript=Transcript(
                path=str(transcript["path"]),
                format=transcript["format"],
                segments=tuple(
                    TranscriptSegment(
                        start_sec=float(row["start_sec"]),
                        end_sec=float(row["end_sec"]),
                        text=str(row["text"]),
                    )
                    for row in transcript.get("segments", [])
                ),
            )
            if transcript
            else None,
        )


@dataclass(frozen=True, slots=True)
class CacheManifest:
    options: IngestOptions
    result: IngestResult
    schema_version: int = field(default=CACHE_SCHEMA_VERSION)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.schema_version,
            "options": self.options.to_dict(),
            "result": self.result.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Any) -> CacheManifest:
        if not isinstance(payload, dict):
            raise CacheReadError("Cache manifest must be a JSON object.")
        try:
            return cls(
                schema_version=int(payload["version"]),
                options=IngestOptions.from_dict(payload["options"]),
                result=IngestResult.from_dict(payload["result"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise CacheReadError(f"Cache manifest is malformed: {exc}") from exc


def _guess_file_type(path: Path) -> FileType:
    if path.suffix.lower() in VIDEO_EXTENSIONS:
        return FileType.VIDEO

    mime_type, _ = mimetypes.guess_type(str(path))
    if not mime_type:
        return FileType.OTHER

    major = mime_type.split("/", 1)[0]
    if major in {"video", "audio", "image", "text"}:
        return FileType(major)
    if mime_type in {"application/pdf", "application/msword"}:
        return FileType.DOCUMENT
    return FileType.OTHER
