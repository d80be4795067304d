from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from video_ingest.ingest.subtitles import parse_subtitle
from video_ingest.models import Transcript
from video_ingest.outcome import Degraded, Ok

logger = logging.getLogger(__name__)

SIDECAR_FORMATS: tuple[Literal["srt", "vtt"], ...] = ("srt", "vtt")


def sidecar_candidates(source_path: str | Path) -> list[tuple[Path, Literal["srt", "vtt"]]]:
    """Same-directory, same-stem subtitle paths in lookup order."""

    source = Path(source_path)
    return [(source.with_suffix(f".{fmt}"), fmt) for fmt in SIDECAR_FORMATS]


def load_sidecar_transcript(source_path: str | Path) -> Ok[Transcript] | Degraded:
    """Load the first sidecar subtitle file that yields at least one cue."""

    for candidate_path, fmt in sidecar_candidates(source_path):
        if not candidate_path.is_file():
            continue

        try:
            segments = parse_subtitle(candidate_path.read_text(encoding="utf-8", errors="replace"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to parse sidecar subtitle file %s: %s", candidate_path, exc)
            continue

        if not segments:
            logger.warning("Sidecar subtitle file %s has no usable cues; skipping.", candidate_path)
            continue

        return Ok(Transcript(path=str(candidate_path), format=fmt, segments=tuple(segments)))

    return Degraded("no sidecar subtitles")
