"""
LocalWhisperBackend: closed utterances transcribed by faster-whisper.

- One WhisperModel per process, loaded at startup and shared by every engine.
- Input is a float32 mono utterance [-1, 1] cut from the synthetic stream.
- Decoding runs in the default executor; the event loop only awaits it.
"""
from __future__ import annotations

import asyncio
import math
from typing import Any

import numpy as np

from interviewscribe.asr.base import ASRBackend, ASRResult
from interviewscribe.config import Settings, get_settings

# Type for shared WhisperModel (loaded at startup)
WhisperModelT = Any


def load_whisper_model(settings: Settings | None = None) -> WhisperModelT:
    """
    Load faster-whisper model once.

    Raises:
        ImportError: If faster-whisper is not installed.
    """
    try:
        from faster_whisper import WhisperModel
    except ImportError as err:
        raise ImportError(
            "faster-whisper is required for ASR_BACKEND=local. "
            "Install with: pip install faster-whisper"
        ) from err
    settings = settings or get_settings()
    return WhisperModel(
        settings.LOCAL_WHISPER_MODEL,
        device=settings.LOCAL_WHISPER_DEVICE,
        compute_type=settings.LOCAL_WHISPER_COMPUTE_TYPE,
    )


class LocalWhisperBackend(ASRBackend):
    """Whisper over a shared faster-whisper model, language from RECOGNITION_LANGUAGE."""

    def __init__(self, model: WhisperModelT, settings: Settings | None = None) -> None:
        self._model = model
        self._settings = settings or get_settings()

    def _transcribe_sync(self, audio: np.ndarray) -> ASRResult:
        """
        Synchronous transcribe; run from executor.
        Confidence: mean of exp(avg_logprob) over segments, None when no segments.
        """
        segments, _ = self._model.transcribe(
            audio,
            language=self._settings.RECOGNITION_LANGUAGE or None,
            beam_size=self._settings.LOCAL_WHISPER_BEAM_SIZE,
            vad_filter=False,  # utterances are already VAD-gated
            condition_on_previous_text=False,
        )

        parts: list[str] = []
        probs: list[float] = []
        for seg in segments:
            t = (seg.text or "").strip()
            if t:
                parts.append(t)
                logprob = getattr(seg, "avg_logprob", None)
                if logprob is not None:
                    probs.append(min(1.0, max(0.0, math.exp(logprob))))

        text = " ".join(parts).strip() if parts else ""
        confidence = sum(probs) / len(probs) if probs else None
        return ASRResult(text=text, confidence=confidence)

    async def transcribe(self, audio: np.ndarray) -> ASRResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._transcribe_sync, audio)

    @property
    def sample_rate(self) -> int:
        return self._settings.SAMPLE_RATE
