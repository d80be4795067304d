from __future__ import annotations

import math
import re

from video_ingest.models import TranscriptSegment

TIMING_SEPARATOR = "-->"

_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")
_TAG_RE = re.compile(r"<[^>]+>")
_VTT_HEADER_RE = re.compile(r"^WEBVTT[^\n]*(\n|$)", re.IGNORECASE)


def parse_subtitle(content: str) -> list[TranscriptSegment]:
    """Parse SRT or WebVTT text into cues ordered by start time.

    Malformed cues (bad timecodes, ``end <= start``, empty text) are dropped
    individually; the rest of the file is still parsed.
    """

    normalized = content.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    normalized = _VTT_HEADER_RE.sub("", normalized, count=1)

    segments: list[TranscriptSegment] = []
    for raw_block in _BLOCK_SPLIT_RE.split(normalized):
        segment = _parse_block(raw_block)
        if segment is not None:
            segments.append(segment)

    return sorted(segments, key=lambda segment: segment.start_sec)


def parse_timecode(token: str) -> float | None:
    """Parse ``[hh:]mm:ss[.,]mmm`` into seconds; ``None`` when malformed."""

    parts = token.strip().replace(",", ".").split(":")
    if len(parts) not in (2, 3):
        return None

    try:
        seconds = float(parts[-1])
        minutes = int(parts[-2])
        hours = int(parts[0]) if len(parts) == 3 else 0
    except ValueError:
        return None

    if not math.isfinite(seconds):
        return None
    return hours * 3600 + minutes * 60 + seconds


def _parse_block(raw_block: str) -> TranscriptSegment | None:
    lines = [line.strip() for line in raw_block.split("\n") if line.strip()]
    timing_index = next((idx for idx, line in enumerate(lines) if TIMING_SEPARATOR in line), None)
    if timing_index is None:
        return None

    raw_start, _, raw_end = lines[timing_index].partition(TIMING_SEPARATOR)
    start_tokens = raw_start.split()
    end_tokens = raw_end.split()
    if not start_tokens or not end_tokens:
        return None

    # VTT cue settings ("align:start position:10%") follow the end timecode
    start_sec = parse_timecode(start_tokens[0])
    end_sec = parse_timecode(end_tokens[0])
    if start_sec is None or end_sec is None or end_sec <= start_sec:
        return None

    text = _TAG_RE.sub("", " ".join(lines[timing_index + 1 :])).strip()
    if not text:
        return None

    return TranscriptSegment(start_sec=start_sec, end_sec=end_sec, text=text)
