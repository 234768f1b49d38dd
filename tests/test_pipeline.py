"""
Tests for TranscriptionPipeline: placeholder, diarization hand-off and persistence.
"""
from __future__ import annotations

import asyncio
import time

import pytest

from conftest import EndPlayback, FakeEngine, FakePlayback, SetClock
from interviewscribe.asr.base import EngineEnded, RecognitionError, RecognitionErrorKind, RecognitionResult
from interviewscribe.errors import DecodeError, PermissionDenied
from interviewscribe.models import INTERVIEWEE, INTERVIEWER, RecordingStatus
from interviewscribe.pipeline import NOT_RECOGNIZED_TEXT, TranscriptionPipeline
from interviewscribe.store import MemoryTranscriptStore

NO_SPEECH = [RecognitionError(RecognitionErrorKind.NO_SPEECH), EngineEnded()]


@pytest.fixture
def make_pipeline(fast_settings, ten_second_audio):
    def make(sessions=(), idle=NO_SPEECH, decoder=None):
        engine = FakeEngine(sessions, idle)
        return TranscriptionPipeline(
            engine,
            fast_settings,
            decoder=decoder or (lambda data: ten_second_audio),
            playback_factory=FakePlayback,
        )

    return make


class TestTranscribe:
    def test_no_speech_yields_placeholder(self, make_pipeline, fast_settings):
        segments = asyncio.run(make_pipeline().transcribe(b"audio"))
        assert len(segments) == 1
        placeholder = segments[0]
        assert placeholder.text == NOT_RECOGNIZED_TEXT
        assert placeholder.start_time == 0.0
        assert placeholder.end_time == pytest.approx(10.0)
        assert placeholder.speaker_label == fast_settings.PLACEHOLDER_LABEL
        assert placeholder.confidence == pytest.approx(0.5)

    def test_segments_are_diarized(self, make_pipeline):
        pipeline = make_pipeline(
            sessions=[[
                SetClock(3.0),
                RecognitionResult("first question here"),
                SetClock(6.0),
                RecognitionResult("and the answer there"),
                EndPlayback(),
            ]]
        )
        segments = asyncio.run(pipeline.transcribe(b"audio"))
        assert [s.text for s in segments] == ["first question here", "and the answer there"]
        assert all(s.speaker_label in (INTERVIEWER, INTERVIEWEE) for s in segments)

    def test_progress_and_segment_callbacks(self, make_pipeline):
        progress, seen = [], []
        pipeline = make_pipeline(sessions=[[SetClock(3.0), RecognitionResult("hello"), EndPlayback()]])
        asyncio.run(pipeline.transcribe(b"audio", progress.append, seen.append))
        assert progress[0] == 10
        assert progress[-1] == 100
        assert [s.text for s in seen] == ["hello"]
        # streamed before diarization
        assert seen[0].speaker_label == "speaker_1"

    def test_decode_error_propagates(self, make_pipeline):
        def bad_decoder(data):
            raise DecodeError("Failed to decode audio: garbage")

        with pytest.raises(DecodeError):
            asyncio.run(make_pipeline(decoder=bad_decoder).transcribe(b"garbage"))


class TestProcessRecording:
    def test_success_persists_batch(self, make_pipeline):
        store = MemoryTranscriptStore()
        recording_id = store.create_recording("interview.wav")
        pipeline = make_pipeline(sessions=[[SetClock(3.0), RecognitionResult("hello there"), EndPlayback()]])

        segments = asyncio.run(pipeline.process_recording(recording_id, b"audio", store))

        assert store.get_status(recording_id) is RecordingStatus.COMPLETED
        stored = store.get_segments(recording_id)
        assert [s.text for s in stored] == [s.text for s in segments] == ["hello there"]

    def test_placeholder_is_persisted(self, make_pipeline):
        store = MemoryTranscriptStore()
        recording_id = store.create_recording("quiet.wav")
        asyncio.run(make_pipeline().process_recording(recording_id, b"audio", store))
        assert store.get_status(recording_id) is RecordingStatus.COMPLETED
        assert store.get_segments(recording_id)[0].text == NOT_RECOGNIZED_TEXT

    def test_failure_sets_error_status(self, make_pipeline):
        store = MemoryTranscriptStore()
        recording_id = store.create_recording("denied.wav")
        pipeline = make_pipeline(
            sessions=[[RecognitionError(RecognitionErrorKind.NOT_ALLOWED, "denied"), EngineEnded()]]
        )
        with pytest.raises(PermissionDenied):
            asyncio.run(pipeline.process_recording(recording_id, b"audio", store))
        record = store.get_recording(recording_id)
        assert record["status"] == RecordingStatus.ERROR.value
        assert "denied" in record["error"]
        assert record["segments"] == []

    def test_pipeline_reusable_after_failure(self, make_pipeline):
        store = MemoryTranscriptStore()
        pipeline = make_pipeline(
            sessions=[
                [RecognitionError(RecognitionErrorKind.NOT_ALLOWED), EngineEnded()],
                [SetClock(3.0), RecognitionResult("second try"), EndPlayback()],
            ]
        )
        first = store.create_recording("a.wav")
        with pytest.raises(PermissionDenied):
            asyncio.run(pipeline.process_recording(first, b"audio", store))
        second = store.create_recording("b.wav")
        asyncio.run(pipeline.process_recording(second, b"audio", store))
        assert store.get_status(second) is RecordingStatus.COMPLETED


class TestStop:
    """stop() reaches the transcription in every phase, including decode."""

    def _pipeline(self, settings, audio, decode_delay=0.0, sessions=(), idle=NO_SPEECH):
        def decoder(data):
            time.sleep(decode_delay)
            return audio

        engine = FakeEngine(sessions, idle)
        pipeline = TranscriptionPipeline(engine, settings, decoder=decoder, playback_factory=FakePlayback)
        return pipeline, engine

    def test_stop_during_decode(self, fast_settings, ten_second_audio):
        pipeline, engine = self._pipeline(fast_settings, ten_second_audio, decode_delay=0.2)

        async def scenario():
            task = asyncio.create_task(pipeline.transcribe(b"audio"))
            await asyncio.sleep(0.05)
            pipeline.stop()
            return await asyncio.wait_for(task, timeout=1.0)

        segments = asyncio.run(scenario())
        assert engine.start_calls == 0
        assert [s.text for s in segments] == [NOT_RECOGNIZED_TEXT]

    def test_stop_before_capture_starts(self, fast_settings, ten_second_audio):
        """Stopped during the start delay: playback and recognition never begin."""
        settings = fast_settings.model_copy(update={"CAPTURE_START_DELAY_SEC": 0.5})
        pipeline, engine = self._pipeline(settings, ten_second_audio)
        progress = []

        async def scenario():
            task = asyncio.create_task(pipeline.transcribe(b"audio", progress.append))
            await asyncio.sleep(0.05)
            pipeline.stop()
            pipeline.stop()
            return await asyncio.wait_for(task, timeout=1.0)

        segments = asyncio.run(scenario())
        assert engine.start_calls == 0
        assert segments[0].text == NOT_RECOGNIZED_TEXT
        assert progress[-1] == 100
        assert progress.count(100) == 1

    def test_stop_after_completion_is_noop(self, fast_settings, ten_second_audio):
        pipeline, engine = self._pipeline(
            fast_settings,
            ten_second_audio,
            sessions=[
                [SetClock(3.0), RecognitionResult("first run"), EndPlayback()],
                [SetClock(3.0), RecognitionResult("second run"), EndPlayback()],
            ],
        )

        async def scenario():
            first = await pipeline.transcribe(b"audio")
            pipeline.stop()
            pipeline.stop()
            second = await pipeline.transcribe(b"audio")
            return first, second

        first, second = asyncio.run(scenario())
        assert [s.text for s in first] == ["first run"]
        assert [s.text for s in second] == ["second run"]
        assert engine.start_calls == 2
