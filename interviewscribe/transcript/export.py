"""
Transcript export: plain text, SRT subtitles, JSON.

Speaker labels are shown with display names; unknown labels (e.g. the
placeholder before diarization) are shown as-is.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Sequence

from interviewscribe.models import INTERVIEWEE, INTERVIEWER, Segment

SPEAKER_NAMES = {
    INTERVIEWER: "Interviewer",
    INTERVIEWEE: "Interviewee",
}


def speaker_name(label: str) -> str:
    return SPEAKER_NAMES.get(label, label)


def format_time(seconds: float) -> str:
    """M:SS, or H:MM:SS from one hour on."""
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_srt_time(seconds: float) -> str:
    """HH:MM:SS,mmm"""
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    millis = int((seconds % 1) * 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def _format_speaker_line(index: int, segment: Segment) -> str:
    time_range = f"{format_time(segment.start_time)} - {format_time(segment.end_time)}"
    confidence = f"{round(segment.confidence * 100)}%"
    return f"[{index}] {time_range} | {speaker_name(segment.speaker_label)} ({confidence})"


def to_text(segments: Sequence[Segment], filename: str, exported_at: datetime | None = None) -> str:
    """Header (file, date, count), rule, then one numbered block per segment."""
    exported_at = exported_at or datetime.now()
    lines = [
        f"Transcript: {filename}",
        f"Date: {exported_at:%Y-%m-%d %H:%M:%S}",
        f"Total segments: {len(segments)}",
        "",
        "=" * 80,
        "",
    ]
    for index, segment in enumerate(segments, start=1):
        lines.append(_format_speaker_line(index, segment))
        lines.append(segment.text)
        lines.append("")
    return "\n".join(lines) + "\n"


def to_srt(segments: Sequence[Segment]) -> str:
    blocks = []
    for index, segment in enumerate(segments, start=1):
        blocks.append(
            f"{index}\n"
            f"{format_srt_time(segment.start_time)} --> {format_srt_time(segment.end_time)}\n"
            f"[{speaker_name(segment.speaker_label)}] {segment.text}\n"
        )
    return "\n".join(blocks)


def to_json(segments: Sequence[Segment], filename: str, exported_at: datetime | None = None) -> str:
    exported_at = exported_at or datetime.now(timezone.utc)
    payload = {
        "filename": filename,
        "exportDate": exported_at.isoformat(),
        "totalSegments": len(segments),
        "transcriptions": [
            {
                "speaker": s.speaker_label,
                "text": s.text,
                "startTime": s.start_time,
                "endTime": s.end_time,
                "confidence": s.confidence,
            }
            for s in segments
        ],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)
