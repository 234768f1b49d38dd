"""
WebSocketManager: one WebSocket = one recording transcription.

The client sends the whole recording as one binary message. Progress and
recognized segments are pushed from pipeline callbacks into a queue and sent
by a writer task, so callbacks never await the socket. A disconnect stops the
pipeline; segments recognized so far are still stored.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from interviewscribe.errors import TranscriptionError
from interviewscribe.models import Segment
from interviewscribe.pipeline import TranscriptionPipeline
from interviewscribe.schemas import (
    ErrorMessage,
    FinalMessage,
    ProgressMessage,
    SegmentMessage,
    SegmentOut,
)
from interviewscribe.store import TranscriptStore

logger = logging.getLogger(__name__)

_DONE = object()


class WebSocketManager:
    """Receive audio, run the pipeline, stream progress/segment, then final or error."""

    def __init__(
        self,
        websocket: WebSocket,
        pipeline: TranscriptionPipeline,
        store: TranscriptStore,
        filename: str = "recording",
    ) -> None:
        self._ws = websocket
        self._pipeline = pipeline
        self._store = store
        self._filename = filename
        self._outbox: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    async def _send_json(self, message: Any) -> None:
        if self._closed:
            return
        try:
            await self._ws.send_text(message.model_dump_json())
        except Exception as e:
            logger.debug("WebSocket send failed, stopping transcription: %s", e)
            self._closed = True
            self._pipeline.stop()

    def _on_progress(self, value: float) -> None:
        self._outbox.put_nowait(ProgressMessage(progress=value))

    def _on_segment(self, segment: Segment) -> None:
        self._outbox.put_nowait(SegmentMessage(segment=SegmentOut.from_segment(segment)))

    async def _writer(self) -> None:
        while True:
            message = await self._outbox.get()
            if message is _DONE:
                break
            await self._send_json(message)

    async def _watch_disconnect(self) -> None:
        """Messages after the audio are ignored; a disconnect cancels the transcription."""
        try:
            while True:
                msg = await self._ws.receive()
                if msg.get("type") == "websocket.disconnect":
                    break
        except Exception as e:
            logger.debug("WebSocket receive failed: %s", e)
        self._closed = True
        self._pipeline.stop()

    async def _receive_audio(self) -> bytes | None:
        while True:
            msg = await self._ws.receive()
            if msg.get("type") == "websocket.disconnect":
                return None
            data = msg.get("bytes")
            if data:
                return data

    async def run(self) -> None:
        audio = await self._receive_audio()
        if audio is None:
            return
        recording_id = self._store.create_recording(self._filename)
        logger.info("WebSocket recording %s: %d bytes", recording_id, len(audio))

        writer = asyncio.create_task(self._writer())
        watcher = asyncio.create_task(self._watch_disconnect())
        final: Any
        try:
            segments = await self._pipeline.process_recording(
                recording_id, audio, self._store, self._on_progress, self._on_segment
            )
            final = FinalMessage(
                recording_id=recording_id,
                segments=[SegmentOut.from_segment(s) for s in segments],
            )
        except TranscriptionError as e:
            final = ErrorMessage(message=str(e))
        except Exception as e:
            logger.exception("WebSocket transcription failed: %s", e)
            final = ErrorMessage(message="Transcription failed")
        finally:
            watcher.cancel()
            try:
                await watcher
            except asyncio.CancelledError:
                pass

        self._outbox.put_nowait(final)
        self._outbox.put_nowait(_DONE)
        await writer
