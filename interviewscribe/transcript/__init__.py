"""Transcript export formats."""
from .export import format_srt_time, format_time, speaker_name, to_json, to_srt, to_text

__all__ = ["format_srt_time", "format_time", "speaker_name", "to_json", "to_srt", "to_text"]
