"""
FastAPI app: interview recording transcription with speaker diarization.

HTTP API:
- POST /api/recordings          raw audio body -> recognized, diarized segments
- GET  /api/recordings/{id}     status + segments
- GET  /api/recordings/{id}/export?format=text|srt|json

WebSocket /ws/transcribe: client sends the recording as one binary message.
Server sends JSON: { "type": "progress" | "segment" | "final" | "error", ... }
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable, Literal

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response

from interviewscribe.asr.factory import resolve_engine
from interviewscribe.asr.local_whisper import load_whisper_model
from interviewscribe.config import get_settings
from interviewscribe.errors import DecodeError, EngineUnavailable, PermissionDenied
from interviewscribe.logging_setup import configure_logging
from interviewscribe.pipeline import TranscriptionPipeline
from interviewscribe.schemas import ErrorMessage, RecordingResponse, SegmentOut
from interviewscribe.store import RecordingNotFound, TranscriptStore, create_transcript_store
from interviewscribe.transcript import to_json, to_srt, to_text
from interviewscribe.websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[], TranscriptionPipeline]

# Set in lifespan so dependencies can reach app.state without Request
_current_app: FastAPI | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _current_app
    _current_app = app
    configure_logging()
    settings = get_settings()
    app.state.store = create_transcript_store()
    # Load Whisper model once at startup when using local backend (singleton)
    app.state.whisper_model = None
    if settings.ASR_BACKEND == "local":
        try:
            app.state.whisper_model = load_whisper_model(settings)
        except (ImportError, RuntimeError, OSError, ValueError) as e:
            logger.warning("Whisper model not loaded, recognition unavailable: %s", e)
    yield
    app.state.whisper_model = None
    _current_app = None


app = FastAPI(
    title="Interview Transcription",
    description="Recording transcription with two-speaker diarization",
    lifespan=lifespan,
)


def _require_app() -> FastAPI:
    if _current_app is None:
        raise RuntimeError("App not initialized (lifespan not run?)")
    return _current_app


def get_store() -> TranscriptStore:
    return _require_app().state.store


def get_pipeline_factory() -> PipelineFactory:
    """New engine + pipeline per transcription; the Whisper model is shared."""
    model = getattr(_require_app().state, "whisper_model", None)

    def build() -> TranscriptionPipeline:
        return TranscriptionPipeline(resolve_engine(get_settings(), model))

    return build


def _error_response(status_code: int, e: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(e)})


@app.exception_handler(DecodeError)
async def decode_error_handler(request: Request, e: DecodeError) -> JSONResponse:
    return _error_response(400, e)


@app.exception_handler(PermissionDenied)
async def permission_denied_handler(request: Request, e: PermissionDenied) -> JSONResponse:
    return _error_response(403, e)


@app.exception_handler(EngineUnavailable)
async def engine_unavailable_handler(request: Request, e: EngineUnavailable) -> JSONResponse:
    logger.error("Recognition engine unavailable: %s", e)
    return _error_response(503, e)


def _get_record(store: TranscriptStore, recording_id: str) -> dict:
    try:
        return store.get_recording(recording_id)
    except RecordingNotFound:
        raise HTTPException(status_code=404, detail="Recording not found")


def _recording_response(store: TranscriptStore, recording_id: str) -> RecordingResponse:
    record = _get_record(store, recording_id)
    return RecordingResponse(
        recording_id=record["id"],
        filename=record["filename"],
        status=record["status"],
        error=record.get("error"),
        segments=[SegmentOut.from_segment(s) for s in store.get_segments(recording_id)],
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.post("/api/recordings", response_model=RecordingResponse)
async def create_recording(
    request: Request,
    filename: str = Query("recording"),
    store: TranscriptStore = Depends(get_store),
    make_pipeline: PipelineFactory = Depends(get_pipeline_factory),
) -> RecordingResponse:
    """
    Transcribe the request body (any format ffmpeg decodes) and store the result.

    Errors: 400 undecodable audio, 403 input access denied, 503 no engine.
    """
    audio = await request.body()
    if not audio:
        raise HTTPException(status_code=400, detail="Request body must contain audio")
    pipeline = make_pipeline()
    recording_id = store.create_recording(filename)
    await pipeline.process_recording(recording_id, audio, store)
    return _recording_response(store, recording_id)


@app.get("/api/recordings/{recording_id}", response_model=RecordingResponse)
async def get_recording(recording_id: str, store: TranscriptStore = Depends(get_store)) -> RecordingResponse:
    return _recording_response(store, recording_id)


@app.get("/api/recordings/{recording_id}/export")
async def export_recording(
    recording_id: str,
    format: Literal["text", "srt", "json"] = Query("text"),
    store: TranscriptStore = Depends(get_store),
) -> Response:
    record = _get_record(store, recording_id)
    segments = store.get_segments(recording_id)
    filename = record["filename"]
    stem = filename.rsplit(".", 1)[0] or recording_id
    if format == "json":
        body, media_type, ext = to_json(segments, filename), "application/json", "json"
    elif format == "srt":
        body, media_type, ext = to_srt(segments), "application/x-subrip", "srt"
    else:
        body, media_type, ext = to_text(segments, filename), "text/plain", "txt"
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{stem}.{ext}"'},
    )


@app.websocket("/ws/transcribe")
async def websocket_transcribe(
    websocket: WebSocket,
    filename: str = "recording",
    store: TranscriptStore = Depends(get_store),
    make_pipeline: PipelineFactory = Depends(get_pipeline_factory),
) -> None:
    """
    WebSocket: client sends one binary message with the recording.
    Server sends progress/segment JSON while recognizing, then final or error.
    """
    await websocket.accept()
    try:
        pipeline = make_pipeline()
    except EngineUnavailable as e:
        await websocket.send_text(ErrorMessage(message=str(e)).model_dump_json())
        await websocket.close()
        return
    manager = WebSocketManager(websocket, pipeline, store, filename)
    try:
        await manager.run()
    except WebSocketDisconnect:
        pipeline.stop()
        return
    try:
        await websocket.close()
    except RuntimeError:
        pass


def run() -> None:
    """Console entry point: serve the app with uvicorn on HOST:PORT."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
