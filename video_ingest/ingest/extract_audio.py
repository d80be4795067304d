from __future__ import annotations

import logging
from pathlib import Path

from video_ingest.ingest.process_runner import run_tool
from video_ingest.models import AUDIO_CHANNEL_COUNT, AUDIO_SAMPLE_RATE, AudioTrack
from video_ingest.outcome import Degraded, Ok

logger = logging.getLogger(__name__)

AUDIO_FILENAME = "audio.wav"


def extract_audio(
    source_path: str | Path,
    cache_dir: str | Path,
    max_duration_seconds: float,
    ffmpeg: str = "ffmpeg",
    timeout_seconds: float | None = None,
) -> Ok[AudioTrack] | Degraded:
    """Extract a mono 16 kHz PCM WAV track, capped at ``max_duration_seconds``.

    Audio is an enrichment: every failure is logged and reported as degraded.
    """

    output_path = Path(cache_dir) / AUDIO_FILENAME

    try:
        output_path.unlink(missing_ok=True)
        run_tool(
            ffmpeg,
            [
                "-hide_banner",
                "-loglevel",
                "error",
                "-y",
                "-i",
                str(source_path),
                "-vn",
                "-ac",
                str(AUDIO_CHANNEL_COUNT),
                "-ar",
                str(AUDIO_SAMPLE_RATE),
                "-c:a",
                "pcm_s16le",
                "-t",
                _format_seconds(max_duration_seconds),
                str(output_path),
            ],
            timeout_seconds=timeout_seconds,
        )
        size_bytes = output_path.stat().st_size
    except Exception as exc:
        logger.warning("Failed to extract audio track from %s: %s", source_path, exc)
        return Degraded(str(exc))

    return Ok(AudioTrack(path=str(output_path), size_bytes=size_bytes))


def _format_seconds(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")
