from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from video_ingest.cache import CacheManager, FileManifestStore, InMemoryManifestStore
from video_ingest.errors import CacheReadError
from video_ingest.models import (
    AudioTrack,
    CacheManifest,
    Frame,
    IngestOptions,
    IngestResult,
    TimelineSegment,
    Transcript,
    TranscriptSegment,
)

CACHE_KEY = "ab" * 32
OPTIONS = IngestOptions(frame_interval_sec=2.0, max_frames=12, segment_duration_sec=20.0, max_audio_duration_sec=600.0)


def _result(tmp_path: Path) -> IngestResult:
    frames_dir = tmp_path / CACHE_KEY / "frames"
    frames_dir.mkdir(parents=True)
    frames = []
    for index in range(3):
        path = frames_dir / f"frame_{index + 1:06d}.jpg"
        path.write_bytes(b"jpg")
        frames.append(Frame(path=str(path), mime_type="image/jpeg", timestamp_sec=index * 2.0))

    audio_path = tmp_path / CACHE_KEY / "audio.wav"
    audio_path.write_bytes(b"RIFF")
    subtitle_path = tmp_path / "clip.srt"
    subtitle_path.write_text("00:00:01,000 --> 00:00:02,000\nhi\n", encoding="utf-8")

    return IngestResult(
        source_file_id="clip",
        cache_key=CACHE_KEY,
        source_path=str(tmp_path / "clip.mp4"),
        created_at="2026-01-01T00:00:00+00:00",
        cache_dir=str(tmp_path / CACHE_KEY),
        duration_sec=6.0,
        frame_interval_sec=2.0,
        segment_duration_sec=20.0,
        frames=tuple(frames),
        segments=(
            TimelineSegment(
                index=0,
                start_sec=0.0,
                end_sec=20.0,
                frame_paths=tuple(frame.path for frame in frames),
                representative_frame_path=frames[0].path,
                transcript_text="hi",
            ),
        ),
        audio=AudioTrack(path=str(audio_path), size_bytes=4),
        transcript=Transcript(
            path=str(subtitle_path),
            format="srt",
            segments=(TranscriptSegment(start_sec=1.0, end_sec=2.0, text="hi"),),
        ),
    )


@pytest.fixture(params=["memory", "file"])
def manager(request: pytest.FixtureRequest, tmp_path: Path) -> CacheManager:
    if request.param == "memory":
        return CacheManager(InMemoryManifestStore())
    return CacheManager(FileManifestStore(tmp_path / "video-ingest"))


def test_lookup_hit_returns_equal_result(manager: CacheManager, tmp_path: Path) -> None:
    result = _result(tmp_path)
    manager.persist(CACHE_KEY, CacheManifest(options=OPTIONS, result=result))

    assert manager.lookup(CACHE_KEY, OPTIONS) == result


def test_lookup_unknown_key_is_miss(manager: CacheManager) -> None:
    assert manager.lookup("cd" * 32, OPTIONS) is None


@pytest.mark.parametrize(
    "changed",
    [
        {"frame_interval_sec": 1.0},
        {"max_frames": 11},
        {"segment_duration_sec": 10.0},
        {"max_audio_duration_sec": 60.0},
    ],
)
def test_any_option_change_forces_miss(manager: CacheManager, tmp_path: Path, changed: dict[str, float]) -> None:
    manager.persist(CACHE_KEY, CacheManifest(options=OPTIONS, result=_result(tmp_path)))

    assert manager.lookup(CACHE_KEY, replace(OPTIONS, **changed)) is None


def test_missing_frame_file_forces_miss(manager: CacheManager, tmp_path: Path) -> None:
    result = _result(tmp_path)
    manager.persist(CACHE_KEY, CacheManifest(options=OPTIONS, result=result))

    Path(result.frames[1].path).unlink()

    assert manager.lookup(CACHE_KEY, OPTIONS) is None


@pytest.mark.parametrize("attribute", ["audio", "transcript"])
def test_missing_audio_or_transcript_file_forces_miss(manager: CacheManager, tmp_path: Path, attribute: str) -> None:
    result = _result(tmp_path)
    manager.persist(CACHE_KEY, CacheManifest(options=OPTIONS, result=result))

    Path(getattr(result, attribute).path).unlink()

    assert manager.lookup(CACHE_KEY, OPTIONS) is None


def test_schema_version_mismatch_forces_miss(manager: CacheManager, tmp_path: Path) -> None:
    manager.persist(CACHE_KEY, CacheManifest(options=OPTIONS, result=_result(tmp_path), schema_version=0))

    assert manager.lookup(CACHE_KEY, OPTIONS) is None


def test_corrupted_manifest_is_treated_as_miss(tmp_path: Path) -> None:
    store = FileManifestStore(tmp_path / "video-ingest")
    manifest_path = store.manifest_path(CACHE_KEY)
    manifest_path.parent.mkdir(parents=True)
    manifest_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(CacheReadError):
        store.get(CACHE_KEY)
    assert CacheManager(store).lookup(CACHE_KEY, OPTIONS) is None


def test_manifest_missing_fields_is_treated_as_miss() -> None:
    store = InMemoryManifestStore()
    store.put(CACHE_KEY, {"version": 1, "options": {"max_frames": 3}, "result": {}})

    assert CacheManager(store).lookup(CACHE_KEY, OPTIONS) is None


def test_file_store_writes_documented_layout(tmp_path: Path) -> None:
    store = FileManifestStore(tmp_path / "video-ingest")
    result = _result(tmp_path)

    CacheManager(store).persist(CACHE_KEY, CacheManifest(options=OPTIONS, result=result))

    manifest_path = tmp_path / "video-ingest" / CACHE_KEY / "manifest.json"
    payload = json.loads(manifest_path.read_text(encoding="utf-8"))
    assert set(payload) == {"version", "options", "result"}
    assert payload["version"] == 1
    assert payload["options"] == {
        "frame_interval_sec": 2.0,
        "max_frames": 12,
        "segment_duration_sec": 20.0,
        "max_audio_duration_sec": 600.0,
    }
    assert payload["result"]["frames"][0]["path"] == result.frames[0].path
    assert list(manifest_path.parent.glob("*.tmp")) == []


def test_persist_overwrites_previous_manifest(tmp_path: Path) -> None:
    manager = CacheManager(FileManifestStore(tmp_path / "video-ingest"))
    result = _result(tmp_path)
    manager.persist(CACHE_KEY, CacheManifest(options=OPTIONS, result=result))

    updated_options = replace(OPTIONS, max_frames=3)
    manager.persist(CACHE_KEY, CacheManifest(options=updated_options, result=result))

    assert manager.lookup(CACHE_KEY, OPTIONS) is None
    assert manager.lookup(CACHE_KEY, updated_options) == result
