"""
CaptureLoop: drives a restart-prone continuous recognizer over a sped-up
playback of one recording and assembles timestamped segments.

States: idle -> priming -> listening <-> restarting -> finished (or failed).

Every transition runs in capture()'s own task, which drains one message
queue. Engine events, timers (start delay, restarts, grace period, progress
sampler), playback end and stop() only post messages. Handlers check
should_continue before acting, so a timer that fires after stop() is a no-op.

Restart policy when the engine halts:
- no-speech: restart after RESTART_NO_SPEECH_SEC until NO_SPEECH_MAX consecutive
- aborted: restart after RESTART_ABORTED_SEC
- not-allowed: fail with PermissionDenied, no restart
- network: restart after RESTART_NETWORK_SEC until NETWORK_ERROR_MAX consecutive (0 = no cap)
- natural end: restart after RESTART_END_SEC unless within END_GUARD_SEC of playback end
Playback end stops restarts; after PLAYBACK_GRACE_SEC the loop finishes regardless.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Callable

from interviewscribe.asr.base import (
    EngineEnded,
    EngineEvent,
    EngineStarted,
    RecognitionEngine,
    RecognitionEngineError,
    RecognitionError,
    RecognitionErrorKind,
    RecognitionResult,
)
from interviewscribe.audio.decoder import decode_audio
from interviewscribe.audio.playback import InputStream, PlaybackGraph
from interviewscribe.capture.events import (
    BeginCapture,
    EngineStartFailed,
    GraceExpired,
    LoopMessage,
    PlaybackEnded,
    ProgressTick,
    RestartDue,
    StopRequested,
)
from interviewscribe.capture.session import (
    CaptureResult,
    CaptureSession,
    CaptureState,
    ProgressCallback,
    SegmentCallback,
)
from interviewscribe.config import Settings, get_settings
from interviewscribe.errors import EngineUnavailable, PermissionDenied
from interviewscribe.models import DecodedAudio, Segment

logger = logging.getLogger(__name__)

PRIMED_PROGRESS = 10.0
MAX_SAMPLED_PROGRESS = 99.0
COMPLETE_PROGRESS = 100.0

Decoder = Callable[[bytes], DecodedAudio]
PlaybackFactory = Callable[..., PlaybackGraph]


class CaptureLoop:
    """
    One instance owns one recognition engine; one transcribe() at a time.
    stop() may be called from any task at any point and more than once.
    """

    def __init__(
        self,
        engine: RecognitionEngine | None,
        settings: Settings | None = None,
        decoder: Decoder = decode_audio,
        playback_factory: PlaybackFactory = PlaybackGraph,
    ) -> None:
        if engine is None:
            raise EngineUnavailable("no recognition engine configured")
        self._engine = engine
        self._settings = settings or get_settings()
        self._decoder = decoder
        self._playback_factory = playback_factory
        self._session: CaptureSession | None = None
        self._playback: PlaybackGraph | None = None
        self._queue: asyncio.Queue[LoopMessage] | None = None
        self._busy = False
        self._tasks: set[asyncio.Task] = set()
        self._engine.bind(self._on_engine_event)

    @property
    def state(self) -> CaptureState:
        return self._session.state if self._session else CaptureState.IDLE

    def _post(self, message: LoopMessage) -> None:
        if self._queue is not None:
            self._queue.put_nowait(message)

    def _on_engine_event(self, event: EngineEvent) -> None:
        self._post(event)

    async def transcribe(
        self,
        audio_bytes: bytes,
        on_progress: ProgressCallback | None = None,
        on_segment: SegmentCallback | None = None,
    ) -> list[Segment]:
        """Recognize the whole recording. Returns segments in order (possibly empty)."""
        result = await self.capture(audio_bytes, on_progress, on_segment)
        return result.segments

    async def capture(
        self,
        audio_bytes: bytes,
        on_progress: ProgressCallback | None = None,
        on_segment: SegmentCallback | None = None,
    ) -> CaptureResult:
        """
        Decode and recognize one recording. The session exists before decoding
        starts, so stop() during decode ends the call as soon as decoding returns.

        Raises:
            DecodeError: audio bytes could not be decoded.
            PermissionDenied: recognizer refused access to the input stream.
            RuntimeError: another transcription is running on this instance.
        """
        if self._busy:
            raise RuntimeError("transcription already in progress")
        self._busy = True
        session = CaptureSession(on_progress=on_progress, on_segment=on_segment)
        self._session = session
        self._queue = asyncio.Queue()
        loop = asyncio.get_running_loop()
        try:
            session.state = CaptureState.PRIMING
            audio = await loop.run_in_executor(None, self._decoder, audio_bytes)
            if not session.should_continue:
                logger.info("Capture stopped before playback started")
                self._finish(session)
                return CaptureResult(audio, list(session.segments))

            self._playback = self._playback_factory(
                audio, self._settings, on_ended=lambda: self._post(PlaybackEnded())
            )
            session.report_progress(PRIMED_PROGRESS)
            logger.info("Capture primed: %.2fs of audio at %.2fx", audio.duration, self._settings.PLAYBACK_RATE)

            session.start_handle = loop.call_later(
                self._settings.CAPTURE_START_DELAY_SEC, self._post, BeginCapture()
            )
            session.sampler_task = asyncio.create_task(self._sample_progress())

            while not session.state.terminal:
                message = await self._queue.get()
                self._dispatch(session, message)

            if session.state is CaptureState.FAILED and session.error is not None:
                raise session.error
            logger.info("Capture finished with %d segments", len(session.segments))
            return CaptureResult(audio, list(session.segments))
        except BaseException:
            if not session.state.terminal:
                session.state = CaptureState.FAILED
            raise
        finally:
            await self._release(session)
            self._session = None
            self._busy = False

    def stop(self) -> None:
        """
        Halt capture: no further restarts, playback and input stream closed, the
        running transcribe() finishes with what it has and stops the engine on exit.
        """
        session = self._session
        if session is not None:
            session.should_continue = False
            session.cancel_restart()
        if self._playback is not None:
            self._playback.close()
        self._post(StopRequested())

    # --- transitions ---

    def _dispatch(self, session: CaptureSession, message: LoopMessage) -> None:
        if session.state.terminal:
            return
        if isinstance(message, RecognitionResult):
            self._on_result(session, message)
        elif isinstance(message, RecognitionError):
            self._on_error(session, message)
        elif isinstance(message, EngineEnded):
            self._on_end(session)
        elif isinstance(message, EngineStarted):
            session.engine_active = True
            session.halt_handled = False
            session.state = CaptureState.LISTENING
        elif isinstance(message, ProgressTick):
            self._on_progress_tick(session)
        elif isinstance(message, BeginCapture):
            session.start_handle = None
            if session.should_continue:
                self._playback.start()
                session.state = CaptureState.LISTENING
                self._start_recognition(session)
        elif isinstance(message, RestartDue):
            session.restart_handle = None
            if session.should_continue:
                self._start_recognition(session)
        elif isinstance(message, EngineStartFailed):
            logger.warning("Recognition start error: %s", message.reason)
            session.engine_active = False
        elif isinstance(message, PlaybackEnded):
            self._on_playback_ended(session)
        elif isinstance(message, GraceExpired):
            session.grace_handle = None
            self._finish(session)
        elif isinstance(message, StopRequested):
            logger.info("Capture stopped by caller")
            self._finish(session)

    def _on_result(self, session: CaptureSession, result: RecognitionResult) -> None:
        text = result.transcript.strip()
        if not text:
            return
        now = self._playback.current_time / self._playback.rate
        session.no_speech_count = 0
        session.network_error_count = 0
        if now <= session.cursor:
            # No time has passed since the last segment (clock pinned at the end
            # of playback, or not started): the words belong to the previous span.
            if session.segments:
                last = session.segments[-1]
                last.text = f"{last.text} {text}"
            else:
                session.pending_text = f"{session.pending_text} {text}".lstrip()
            return
        if session.pending_text:
            text = f"{session.pending_text} {text}"
            session.pending_text = ""
        segment = Segment(
            text=text,
            start_time=session.cursor,
            end_time=now,
            confidence=result.confidence or self._settings.DEFAULT_CONFIDENCE,
            speaker_label=self._settings.PLACEHOLDER_LABEL,
        )
        session.segments.append(segment)
        session.cursor = now
        if session.on_segment is not None:
            session.on_segment(segment)

    def _on_error(self, session: CaptureSession, error: RecognitionError) -> None:
        session.engine_active = False
        settings = self._settings
        kind = error.kind
        if kind is RecognitionErrorKind.NOT_ALLOWED:
            session.halt_handled = True
            self._fail(session, PermissionDenied(error.message))
        elif kind is RecognitionErrorKind.NO_SPEECH:
            session.halt_handled = True
            session.no_speech_count += 1
            if session.no_speech_count < settings.NO_SPEECH_MAX and session.should_continue:
                self._schedule_restart(session, settings.RESTART_NO_SPEECH_SEC)
            else:
                logger.info("No speech after %d attempts; finishing", session.no_speech_count)
                self._finish(session)
        elif kind is RecognitionErrorKind.ABORTED:
            session.halt_handled = True
            if session.should_continue:
                self._schedule_restart(session, settings.RESTART_ABORTED_SEC)
            else:
                self._finish(session)
        elif kind is RecognitionErrorKind.NETWORK:
            session.halt_handled = True
            session.network_error_count += 1
            capped = 0 < settings.NETWORK_ERROR_MAX <= session.network_error_count
            if session.should_continue and not capped:
                self._schedule_restart(session, settings.RESTART_NETWORK_SEC)
            else:
                if capped:
                    logger.warning("Network errors: %d consecutive; finishing", session.network_error_count)
                self._finish(session)

    def _on_end(self, session: CaptureSession) -> None:
        session.engine_active = False
        if session.halt_handled:
            session.halt_handled = False
            return
        playback = self._playback
        remaining_ok = playback.current_time < playback.duration * playback.rate - self._settings.END_GUARD_SEC
        if session.should_continue and remaining_ok:
            self._schedule_restart(session, self._settings.RESTART_END_SEC)
        else:
            self._finish(session)

    def _on_playback_ended(self, session: CaptureSession) -> None:
        session.should_continue = False
        session.cancel_restart()
        if session.grace_handle is None:
            loop = asyncio.get_running_loop()
            session.grace_handle = loop.call_later(
                self._settings.PLAYBACK_GRACE_SEC, self._post, GraceExpired()
            )

    def _on_progress_tick(self, session: CaptureSession) -> None:
        if session.state not in (CaptureState.LISTENING, CaptureState.RESTARTING):
            return
        playback = self._playback
        if playback is None or playback.duration <= 0:
            return
        position = playback.current_time / playback.rate
        progress = min(position / playback.duration * 100, MAX_SAMPLED_PROGRESS)
        if progress - session.last_progress >= 1:
            session.report_progress(progress)

    def _start_recognition(self, session: CaptureSession) -> None:
        if not session.should_continue or session.engine_active:
            return
        session.engine_active = True
        session.state = CaptureState.LISTENING
        task = asyncio.create_task(self._start_engine(self._playback.stream))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _start_engine(self, stream: InputStream) -> None:
        try:
            await self._engine.start(stream)
        except RecognitionEngineError as e:
            self._post(EngineStartFailed(str(e)))

    def _schedule_restart(self, session: CaptureSession, delay: float) -> None:
        session.state = CaptureState.RESTARTING
        session.cancel_restart()
        loop = asyncio.get_running_loop()
        session.restart_handle = loop.call_later(delay, self._post, RestartDue())

    def _finish(self, session: CaptureSession) -> None:
        if session.state.terminal:
            return
        session.state = CaptureState.FINISHED
        session.should_continue = False
        session.cancel_timers()
        if session.pending_text:
            logger.warning("Dropping %r: recognized before the playback clock advanced", session.pending_text)
            session.pending_text = ""
        if not session.completed_reported:
            session.completed_reported = True
            session.report_progress(COMPLETE_PROGRESS)

    def _fail(self, session: CaptureSession, error: BaseException) -> None:
        logger.error("Capture failed: %s", error)
        session.state = CaptureState.FAILED
        session.should_continue = False
        session.error = error
        session.cancel_timers()

    async def _sample_progress(self) -> None:
        while True:
            await asyncio.sleep(self._settings.PROGRESS_INTERVAL_SEC)
            self._post(ProgressTick())

    async def _release(self, session: CaptureSession) -> None:
        """Release timers, sampler, playback graph, input stream and the engine."""
        session.should_continue = False
        session.cancel_timers()
        self._queue = None
        if session.sampler_task is not None:
            session.sampler_task.cancel()
            with suppress(asyncio.CancelledError):
                await session.sampler_task
            session.sampler_task = None
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._playback is not None:
            self._playback.close()
            self._playback = None
        try:
            await self._engine.stop()
        except RecognitionEngineError as e:
            logger.warning("Stop recognition error: %s", e)
