"""
TranscriptionPipeline: capture loop -> diarization -> persistence.

- The capture loop decodes the audio and hands the samples on to the diarizer,
  so stop() reaches the loop from the moment transcribe() is called.
- Empty capture result is not an error: one placeholder segment spanning the
  whole recording is produced instead, so persistence always gets a batch.
- Diarization finishes before anything is written.
"""
from __future__ import annotations

import asyncio
import logging

from interviewscribe.asr.base import RecognitionEngine
from interviewscribe.audio.decoder import decode_audio
from interviewscribe.audio.playback import PlaybackGraph
from interviewscribe.capture.loop import CaptureLoop, Decoder, PlaybackFactory
from interviewscribe.capture.session import ProgressCallback, SegmentCallback
from interviewscribe.config import Settings, get_settings
from interviewscribe.diarization.engine import SpeakerDiarizer, get_speaker_diarizer
from interviewscribe.models import RecordingStatus, Segment
from interviewscribe.store import TranscriptStore

logger = logging.getLogger(__name__)

NOT_RECOGNIZED_TEXT = (
    "[Audio processed, but no speech was recognized. "
    "Try improving the recording quality or use a different file]"
)


class TranscriptionPipeline:
    """One pipeline per engine; transcriptions on it run one at a time."""

    def __init__(
        self,
        engine: RecognitionEngine | None,
        settings: Settings | None = None,
        diarizer: SpeakerDiarizer | None = None,
        decoder: Decoder = decode_audio,
        playback_factory: PlaybackFactory = PlaybackGraph,
    ) -> None:
        self._settings = settings or get_settings()
        self._capture = CaptureLoop(engine, self._settings, decoder, playback_factory)
        self._diarizer = diarizer or get_speaker_diarizer()

    def placeholder_segment(self, duration: float) -> Segment:
        return Segment(
            text=NOT_RECOGNIZED_TEXT,
            start_time=0.0,
            end_time=duration,
            speaker_label=self._settings.PLACEHOLDER_LABEL,
            confidence=self._settings.PLACEHOLDER_CONFIDENCE,
        )

    async def transcribe(
        self,
        audio_bytes: bytes,
        on_progress: ProgressCallback | None = None,
        on_segment: SegmentCallback | None = None,
    ) -> list[Segment]:
        """
        Recognize and diarize a recording. Always returns at least one segment.

        Raises:
            DecodeError, PermissionDenied: fatal, nothing is returned.
        """
        result = await self._capture.capture(audio_bytes, on_progress, on_segment)
        audio, segments = result.audio, result.segments
        if not segments:
            logger.warning("No speech recognized in %.2fs of audio; storing placeholder", audio.duration)
            return [self.placeholder_segment(audio.duration)]
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self._diarizer.diarize, audio.samples, audio.sample_rate, segments
        )

    def stop(self) -> None:
        """Cancel a running transcription, including one still decoding; idempotent. No-op when idle."""
        self._capture.stop()

    async def process_recording(
        self,
        recording_id: str,
        audio_bytes: bytes,
        store: TranscriptStore,
        on_progress: ProgressCallback | None = None,
        on_segment: SegmentCallback | None = None,
    ) -> list[Segment]:
        """
        Transcribe and persist: status processing -> segments batch -> completed.
        Any failure sets status error (with the message) and re-raises.
        """
        store.set_status(recording_id, RecordingStatus.PROCESSING)
        try:
            segments = await self.transcribe(audio_bytes, on_progress, on_segment)
            store.insert(recording_id, segments)
            store.set_status(recording_id, RecordingStatus.COMPLETED)
            logger.info("Recording %s completed: %d segments", recording_id, len(segments))
            return segments
        except Exception as e:
            logger.error("Transcription failed for recording %s: %s", recording_id, e)
            store.set_status(recording_id, RecordingStatus.ERROR, str(e))
            raise
        finally:
            self.stop()
