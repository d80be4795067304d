from __future__ import annotations

from pathlib import Path

import pytest

from video_ingest.models import FileType, SourceDescriptor


@pytest.mark.parametrize("name", ["recording.ts", "broadcast.M2TS", "camcorder.mts", "clip.mkv", "clip.mp4", "clip.mov"])
def test_from_path_recognises_video_containers(tmp_path: Path, name: str) -> None:
    descriptor = SourceDescriptor.from_path(tmp_path / name)

    assert descriptor.file_type == FileType.VIDEO
    assert descriptor.is_video


@pytest.mark.parametrize(
    ("name", "expected"),
    [("notes.txt", FileType.TEXT), ("track.mp3", FileType.AUDIO), ("cover.png", FileType.IMAGE), ("blob.xyz123", FileType.OTHER)],
)
def test_from_path_classifies_non_video_files(tmp_path: Path, name: str, expected: FileType) -> None:
    descriptor = SourceDescriptor.from_path(tmp_path / name, file_id="given-id")

    assert descriptor.file_type == expected
    assert descriptor.file_id == "given-id"
    assert not descriptor.is_video
