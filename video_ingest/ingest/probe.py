from __future__ import annotations

import logging
import math
from pathlib import Path

from video_ingest.errors import VideoIngestError
from video_ingest.ingest.process_runner import run_tool
from video_ingest.outcome import Degraded, Ok

logger = logging.getLogger(__name__)


def probe_duration(
    source_path: str | Path,
    ffprobe: str = "ffprobe",
    timeout_seconds: float | None = 30.0,
) -> Ok[float] | Degraded:
    """Probe container duration in seconds.

    Duration is advisory: tool failures and unusable values degrade instead of
    failing the ingestion.
    """

    try:
        output = run_tool(
            ffprobe,
            [
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=nokey=1:noprint_wrappers=1",
                str(source_path),
            ],
            timeout_seconds=timeout_seconds,
        )
    except VideoIngestError as exc:
        logger.warning("Failed to probe video duration for %s: %s", source_path, exc)
        return Degraded(str(exc))

    duration = _parse_duration(output.stdout)
    if duration is None:
        logger.warning("ffprobe returned no usable duration for %s: %r", source_path, output.stdout.strip())
        return Degraded(f"unusable duration output: {output.stdout.strip()!r}")

    return Ok(duration)


def _parse_duration(raw_output: str) -> float | None:
    lines = raw_output.strip().splitlines()
    if not lines:
        return None

    try:
        value = float(lines[0].strip())
    except ValueError:
        return None

    if not math.isfinite(value) or value <= 0:
        return None
    return value
