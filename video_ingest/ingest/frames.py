from __future__ import annotations

import mimetypes
import shutil
from pathlib import Path

from video_ingest.ingest.process_runner import run_tool
from video_ingest.models import Frame, IngestOptions

FRAMES_DIRNAME = "frames"
FRAME_PATTERN = "frame_%06d.jpg"
FRAME_SUFFIXES = (".jpg", ".jpeg", ".png")


def extract_frames(
    source_path: str | Path,
    cache_dir: str | Path,
    options: IngestOptions,
    ffmpeg: str = "ffmpeg",
    timeout_seconds: float | None = None,
) -> list[Frame]:
    """Sample up to ``options.max_frames`` stills, one every ``frame_interval_sec``.

    Tool failures propagate: a request without its frames is not cached.
    """

    if options.max_frames <= 0:
        return []

    frames_dir = Path(cache_dir) / FRAMES_DIRNAME
    # stale frames from an earlier failed run must not leak into this one
    shutil.rmtree(frames_dir, ignore_errors=True)
    frames_dir.mkdir(parents=True, exist_ok=True)

    run_tool(
        ffmpeg,
        [
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-i",
            str(source_path),
            "-vf",
            f"fps={1 / options.frame_interval_sec}",
            "-frames:v",
            str(options.max_frames),
            "-q:v",
            "4",
            str(frames_dir / FRAME_PATTERN),
        ],
        timeout_seconds=timeout_seconds,
    )

    frame_files = sorted(
        entry.name
        for entry in frames_dir.iterdir()
        if entry.is_file() and entry.suffix.lower() in FRAME_SUFFIXES
    )

    frames: list[Frame] = []
    for index, file_name in enumerate(frame_files):
        frame_path = frames_dir / file_name
        mime_type, _ = mimetypes.guess_type(str(frame_path))
        frames.append(
            Frame(
                path=str(frame_path),
                mime_type=mime_type or "image/jpeg",
                timestamp_sec=index * options.frame_interval_sec,
            )
        )
    return frames
