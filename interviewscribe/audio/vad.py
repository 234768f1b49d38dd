"""
Speech/silence classification of the synthetic input stream.

webrtcvad only accepts 10, 20 or 30 ms frames of 8/16/32/48 kHz PCM16; the
playback graph emits FRAME_MS frames at SAMPLE_RATE, so frames are passed
straight through. The trailing partial frame of a recording is silence.
"""
from __future__ import annotations

import webrtcvad

from interviewscribe.config import Settings, get_settings


class VADProcessor:
    """Per-frame speech detector used by ContinuousRecognizer."""

    def __init__(self, aggressiveness: int | None = None, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        # 0 keeps the most frames as speech, 3 the fewest
        mode = settings.VAD_AGGRESSIVENESS if aggressiveness is None else aggressiveness
        self._vad = webrtcvad.Vad(mode)
        self._expected_len = settings.FRAME_BYTES
        self._sample_rate = settings.SAMPLE_RATE

    def is_speech(self, frame: bytes) -> bool:
        if len(frame) != self._expected_len:
            return False
        return self._vad.is_speech(frame, self._sample_rate)
