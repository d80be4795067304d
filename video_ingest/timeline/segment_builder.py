from __future__ import annotations

import math
from dataclasses import dataclass, field

from video_ingest.models import Frame, TimelineSegment, TranscriptSegment


@dataclass(slots=True)
class _SegmentDraft:
    index: int
    start_sec: float
    end_sec: float
    frame_paths: list[str] = field(default_factory=list)
    transcript_text: str | None = None

    def freeze(self) -> TimelineSegment:
        return TimelineSegment(
            index=self.index,
            start_sec=self.start_sec,
            end_sec=self.end_sec,
            frame_paths=tuple(self.frame_paths),
            representative_frame_path=self.frame_paths[0] if self.frame_paths else None,
            transcript_text=self.transcript_text,
        )


def build_segments(
    frames: list[Frame] | tuple[Frame, ...],
    transcript_segments: list[TranscriptSegment] | tuple[TranscriptSegment, ...],
    duration_seconds: float,
    segment_duration_seconds: float,
) -> list[TimelineSegment]:
    """Bucket frames and transcript cues into fixed-width timeline segments.

    Pipeline:
    1) effective duration covers probe, frames, transcript and one full segment
    2) contiguous segments of ``segment_duration_seconds``; the last one ends at
       the effective duration
    3) frames go to the segment their timestamp falls in (clamped to the last)
    4) cue text is appended to every segment the cue overlaps
    5) segment 0 is always kept, later segments only with a frame or text
    """

    effective_duration = compute_effective_duration(
        frames=frames,
        transcript_segments=transcript_segments,
        duration_seconds=duration_seconds,
        segment_duration_seconds=segment_duration_seconds,
    )
    segment_count = max(1, math.ceil(effective_duration / segment_duration_seconds))

    drafts = [
        _SegmentDraft(
            index=index,
            start_sec=index * segment_duration_seconds,
            end_sec=min((index + 1) * segment_duration_seconds, effective_duration),
        )
        for index in range(segment_count)
    ]

    for frame in frames:
        # rounding can put a frame exactly on the final boundary
        segment_index = min(int(frame.timestamp_sec // segment_duration_seconds), segment_count - 1)
        drafts[max(segment_index, 0)].frame_paths.append(frame.path)

    for cue in transcript_segments:
        for draft in drafts:
            if cue.start_sec < draft.end_sec and cue.end_sec > draft.start_sec:
                joined = " ".join(part for part in (draft.transcript_text, cue.text) if part).strip()
                draft.transcript_text = joined or None

    return [
        draft.freeze()
        for draft in drafts
        if draft.index == 0 or draft.frame_paths or draft.transcript_text
    ]


def compute_effective_duration(
    frames: list[Frame] | tuple[Frame, ...],
    transcript_segments: list[TranscriptSegment] | tuple[TranscriptSegment, ...],
    duration_seconds: float,
    segment_duration_seconds: float,
) -> float:
    last_frame_timestamp = frames[-1].timestamp_sec if frames else 0.0
    max_transcript_end = max((cue.end_sec for cue in transcript_segments), default=0.0)
    return max(duration_seconds, last_frame_timestamp, max_transcript_end, segment_duration_seconds)
