"""
UtteranceChunker: groups VAD-classified frames into utterances for ASR.

- Frame size: 20ms.
- Pre-roll: OVERLAP_MS of audio before speech onset is kept so word starts are not clipped.
- An utterance closes when silence exceeds SILENCE_COMMIT_MS after speech and
  the utterance is at least CHUNK_DURATION_MS long (shorter bursts keep growing).

Logic:
1. While idle, keep only the last pre-roll frames.
2. On the first speech frame, start an utterance with the pre-roll.
3. Append every frame; count consecutive silence; emit when committed.
"""
from __future__ import annotations

from collections import deque

from interviewscribe.config import Settings, get_settings


class UtteranceChunker:
    """
    Accumulates frames of one utterance. push() returns the utterance bytes when
    it closes, else None. flush() returns any open utterance (e.g. end of stream).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        chunk_duration_ms: int | None = None,
        overlap_ms: int | None = None,
        silence_commit_ms: int | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._frame_ms = settings.FRAME_MS
        chunk_duration_ms = chunk_duration_ms or settings.CHUNK_DURATION_MS
        overlap_ms = overlap_ms if overlap_ms is not None else settings.OVERLAP_MS
        silence_commit_ms = silence_commit_ms or settings.SILENCE_COMMIT_MS

        # Minimum utterance in frames (e.g. 1500/20 = 75)
        self._min_frames = chunk_duration_ms // self._frame_ms
        # Pre-roll in frames (e.g. 300/20 = 15)
        self._preroll: deque[bytes] = deque(maxlen=max(1, overlap_ms // self._frame_ms))
        # Silence commit in frames (e.g. 600/20 = 30)
        self._silence_commit_frames = silence_commit_ms // self._frame_ms

        self._frames: list[bytes] = []
        self._silence_frames = 0
        self._had_speech = False

    def push(self, frame: bytes, is_speech: bool) -> bytes | None:
        """Push one frame and its VAD result; returns a closed utterance or None."""
        if not self._had_speech:
            if not is_speech:
                self._preroll.append(frame)
                return None
            self._frames = list(self._preroll)
            self._preroll.clear()
            self._had_speech = True

        self._frames.append(frame)
        if is_speech:
            self._silence_frames = 0
        else:
            self._silence_frames += 1

        if len(self._frames) >= self._min_frames and self._silence_frames >= self._silence_commit_frames:
            return self._take()
        return None

    def flush(self) -> bytes | None:
        """Return the open utterance if it contained speech, else None."""
        if not self._had_speech:
            self._preroll.clear()
            return None
        return self._take()

    def _take(self) -> bytes:
        chunk = b"".join(self._frames)
        self._frames = []
        self._silence_frames = 0
        self._had_speech = False
        return chunk

    @property
    def in_utterance(self) -> bool:
        return self._had_speech
