"""
ContinuousRecognizer: restart-prone continuous recognition over an InputStream.

One session reads frames until one of:
- the stream is exhausted (open utterance is flushed first) -> EngineEnded
- RECOGNITION_WINDOW_SEC elapsed -> EngineEnded (owner decides whether to restart)
- NO_SPEECH_TIMEOUT_SEC elapsed without any speech frame -> no-speech error
- the backend fails: auth rejection -> not-allowed, anything else -> network
- stop() while an utterance is being transcribed -> aborted

Utterances are closed by webrtcvad + UtteranceChunker and transcribed by an
ASRBackend; every non-empty transcript is reported as a RecognitionResult.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import TYPE_CHECKING

from interviewscribe.asr.base import (
    ASRBackend,
    EngineEnded,
    EngineStarted,
    RecognitionEngine,
    RecognitionEngineError,
    RecognitionError,
    RecognitionErrorKind,
    RecognitionResult,
)
from interviewscribe.audio.chunker import UtteranceChunker
from interviewscribe.audio.decoder import pcm_bytes_to_float32
from interviewscribe.audio.vad import VADProcessor
from interviewscribe.config import Settings, get_settings
from interviewscribe.errors import TransientRecognitionError

if TYPE_CHECKING:
    from interviewscribe.audio.playback import InputStream

logger = logging.getLogger(__name__)


class ContinuousRecognizer(RecognitionEngine):
    """VAD-gated utterance recognition; one asyncio task per session."""

    def __init__(
        self,
        backend: ASRBackend,
        settings: Settings | None = None,
        vad: VADProcessor | None = None,
    ) -> None:
        super().__init__()
        self._backend = backend
        self._settings = settings or get_settings()
        self._vad = vad or VADProcessor(settings=self._settings)
        self._task: asyncio.Task | None = None
        self._transcribing = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, stream: "InputStream") -> None:
        if self.active:
            raise RecognitionEngineError("recognition already started")
        self._task = asyncio.create_task(self._run(stream))
        self.emit(EngineStarted())

    async def stop(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _recognize(self, utterance: bytes) -> None:
        audio = pcm_bytes_to_float32(utterance)
        # Left set when cancelled mid-call so _run can report the abort
        self._transcribing = True
        result = await self._backend.transcribe(audio)
        self._transcribing = False
        text = (result.text or "").strip()
        if text:
            self.emit(RecognitionResult(transcript=text, confidence=result.confidence))

    async def _run(self, stream: "InputStream") -> None:
        settings = self._settings
        loop = asyncio.get_running_loop()
        started = loop.time()
        heard_speech = False
        chunker = UtteranceChunker(settings)
        error: RecognitionError | None = None
        self._transcribing = False
        try:
            while True:
                frame = await stream.read()
                if frame is None:
                    utterance = chunker.flush()
                    if utterance:
                        await self._recognize(utterance)
                    break

                speech = self._vad.is_speech(frame)
                heard_speech = heard_speech or speech
                utterance = chunker.push(frame, speech)
                if utterance:
                    await self._recognize(utterance)

                elapsed = loop.time() - started
                if not heard_speech and elapsed >= settings.NO_SPEECH_TIMEOUT_SEC:
                    error = RecognitionError(RecognitionErrorKind.NO_SPEECH)
                    break
                if elapsed >= settings.RECOGNITION_WINDOW_SEC and not chunker.in_utterance:
                    break
        except TransientRecognitionError as e:
            kind = RecognitionErrorKind.NOT_ALLOWED if e.is_auth_failure else RecognitionErrorKind.NETWORK
            logger.warning("Recognition backend error (%s): %s", kind.value, e)
            error = RecognitionError(kind, str(e))
        except asyncio.CancelledError:
            if self._transcribing:
                error = RecognitionError(RecognitionErrorKind.ABORTED, "stopped during transcription")
            raise
        finally:
            if error is not None:
                self.emit(error)
            self.emit(EngineEnded())
