from __future__ import annotations

import csv
import json
import math
from pathlib import Path

from video_ingest.models import CacheManifest, IngestResult, TimelineSegment

MAX_TIMELINE_LINES = 24
MAX_SEGMENT_TEXT_CHARS = 160
MAX_TRANSCRIPT_CHARS = 10000


def format_timestamp(seconds: float) -> str:
    """Render seconds as ``mm:ss``, or ``hh:mm:ss`` from one hour on."""

    safe_seconds = max(0, math.floor(seconds)) if seconds and math.isfinite(seconds) else 0
    hours, remainder = divmod(safe_seconds, 3600)
    minutes, remain_seconds = divmod(remainder, 60)

    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{remain_seconds:02d}"
    return f"{minutes:02d}:{remain_seconds:02d}"


def build_summary_text(result: IngestResult, display_name: str | None = None) -> str:
    transcript_count = len(result.transcript.segments) if result.transcript else 0
    lines = [
        f"Video: {display_name or Path(result.source_path).name}",
        f"Duration: {format_timestamp(result.duration_sec)}",
        f"Segments: {len(result.segments)}",
        f"Frames extracted: {len(result.frames)}",
        "Audio extracted: yes" if result.audio else "Audio extracted: no",
        f"Transcript segments: {transcript_count}",
    ]
    return "\n".join(lines)


def build_timeline_text(result: IngestResult) -> str | None:
    lines = [
        f"{_range_label(segment.start_sec, segment.end_sec)} "
        f"{(segment.transcript_text or 'No transcript')[:MAX_SEGMENT_TEXT_CHARS]}"
        for segment in result.segments[:MAX_TIMELINE_LINES]
    ]
    if not lines:
        return None
    return "Video timeline:\n" + "\n".join(lines)


def build_transcript_text(result: IngestResult) -> str | None:
    if not result.transcript or not result.transcript.segments:
        return None

    lines = [
        f"{_range_label(cue.start_sec, cue.end_sec)} {cue.text}"
        for cue in result.transcript.segments[:MAX_TIMELINE_LINES]
    ]
    transcript_text = "\n".join(lines)[:MAX_TRANSCRIPT_CHARS]
    if not transcript_text:
        return None
    return "Video transcript:\n" + transcript_text


def export_timeline(
    result: IngestResult,
    output_dir: str | Path,
    *,
    basename: str = "timeline",
) -> dict[str, Path]:
    """Export the ingest result as JSON, a per-segment CSV and a text summary."""

    resolved_output_dir = Path(output_dir)
    resolved_output_dir.mkdir(parents=True, exist_ok=True)

    json_path = resolved_output_dir / f"{basename}.json"
    csv_path = resolved_output_dir / f"{basename}.csv"
    summary_path = resolved_output_dir / f"{basename}_summary.txt"

    json_path.write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    _write_csv(result.segments, csv_path)

    sections = [
        build_summary_text(result),
        build_timeline_text(result),
        build_transcript_text(result),
    ]
    summary_path.write_text("\n\n".join(section for section in sections if section) + "\n", encoding="utf-8")

    return {
        "json": json_path,
        "csv": csv_path,
        "summary": summary_path,
    }


def load_manifest_result(path: str | Path) -> IngestResult:
    """Load the result stored in a cache ``manifest.json``."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return CacheManifest.from_dict(payload).result


def _write_csv(segments: tuple[TimelineSegment, ...], path: Path) -> None:
    fields = [
        "index",
        "start_seconds",
        "end_seconds",
        "start",
        "end",
        "frame_count",
        "representative_frame_path",
        "transcript_text",
    ]

    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=fields)
        writer.writeheader()
        for segment in segments:
            writer.writerow(
                {
                    "index": segment.index,
                    "start_seconds": f"{segment.start_sec:.3f}",
                    "end_seconds": f"{segment.end_sec:.3f}",
                    "start": format_timestamp(segment.start_sec),
                    "end": format_timestamp(segment.end_sec),
                    "frame_count": len(segment.frame_paths),
                    "representative_frame_path": segment.representative_frame_path or "",
                    "transcript_text": segment.transcript_text or "",
                }
            )


def _range_label(start_sec: float, end_sec: float) -> str:
    return f"[{format_timestamp(start_sec)} - {format_timestamp(end_sec)}]"
