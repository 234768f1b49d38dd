"""
Tests for the HTTP and WebSocket endpoints with injected fake pipelines.
"""
from __future__ import annotations

import asyncio
import json
import logging

import pytest
from fastapi.testclient import TestClient

from conftest import EndPlayback, FakeEngine, FakePlayback, SetClock
from interviewscribe.asr.base import EngineEnded, RecognitionError, RecognitionErrorKind, RecognitionResult
from interviewscribe.errors import DecodeError, EngineUnavailable
from interviewscribe.main import app, get_pipeline_factory, get_store
from interviewscribe.pipeline import NOT_RECOGNIZED_TEXT, TranscriptionPipeline
from interviewscribe.store import MemoryTranscriptStore
from interviewscribe.websocket_manager import WebSocketManager

SPOKEN = [[
    SetClock(3.0),
    RecognitionResult("Добрый день, начнём", 0.92),
    SetClock(6.0),
    RecognitionResult("Да, конечно", None),
    EndPlayback(),
]]


@pytest.fixture
def store():
    return MemoryTranscriptStore()


@pytest.fixture
def client_for(store, fast_settings, ten_second_audio):
    """TestClient whose pipelines replay `sessions` through a FakeEngine."""

    def make(sessions=SPOKEN, decoder=None, factory=None):
        def build():
            return TranscriptionPipeline(
                FakeEngine(sessions, [RecognitionError(RecognitionErrorKind.NO_SPEECH), EngineEnded()]),
                fast_settings,
                decoder=decoder or (lambda data: ten_second_audio),
                playback_factory=FakePlayback,
            )

        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_pipeline_factory] = lambda: factory or build
        return TestClient(app)

    yield make
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client_for):
        assert client_for().get("/health").json() == {"status": "ok"}


class TestRecordings:
    def test_create_recording(self, client_for):
        response = client_for().post("/api/recordings?filename=talk.wav", content=b"audio bytes")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["filename"] == "talk.wav"
        assert [s["text"] for s in body["segments"]] == ["Добрый день, начнём", "Да, конечно"]
        assert body["segments"][0]["end_time"] == pytest.approx(2.0)
        assert {s["speaker_label"] for s in body["segments"]} <= {"interviewer", "interviewee"}

    def test_get_recording(self, client_for):
        client = client_for()
        recording_id = client.post("/api/recordings", content=b"audio").json()["recording_id"]
        body = client.get(f"/api/recordings/{recording_id}").json()
        assert body["recording_id"] == recording_id
        assert len(body["segments"]) == 2

    def test_unknown_recording(self, client_for):
        assert client_for().get("/api/recordings/nope").status_code == 404

    def test_empty_body(self, client_for):
        assert client_for().post("/api/recordings", content=b"").status_code == 400

    def test_undecodable_audio(self, client_for, store):
        def bad_decoder(data):
            raise DecodeError("Failed to decode audio: garbage")

        response = client_for(decoder=bad_decoder).post("/api/recordings", content=b"garbage")
        assert response.status_code == 400
        assert "decode" in response.json()["detail"]

    def test_permission_denied(self, client_for, store):
        sessions = [[RecognitionError(RecognitionErrorKind.NOT_ALLOWED, "denied"), EngineEnded()]]
        response = client_for(sessions=sessions).post("/api/recordings", content=b"audio")
        assert response.status_code == 403

    def test_engine_unavailable(self, client_for):
        def factory():
            raise EngineUnavailable("no backend")

        response = client_for(factory=factory).post("/api/recordings", content=b"audio")
        assert response.status_code == 503


class TestExport:
    @pytest.fixture
    def recorded(self, client_for):
        client = client_for()
        recording_id = client.post("/api/recordings?filename=talk.wav", content=b"audio").json()["recording_id"]
        return client, recording_id

    def test_text(self, recorded):
        client, recording_id = recorded
        response = client.get(f"/api/recordings/{recording_id}/export")
        assert response.status_code == 200
        assert response.text.startswith("Transcript: talk.wav")
        assert 'filename="talk.txt"' in response.headers["content-disposition"]

    def test_srt(self, recorded):
        client, recording_id = recorded
        response = client.get(f"/api/recordings/{recording_id}/export", params={"format": "srt"})
        assert response.text.startswith("1\n00:00:00,000 --> 00:00:02,000\n")

    def test_json(self, recorded):
        client, recording_id = recorded
        response = client.get(f"/api/recordings/{recording_id}/export", params={"format": "json"})
        data = json.loads(response.text)
        assert data["totalSegments"] == 2
        assert data["transcriptions"][0]["confidence"] == pytest.approx(0.92)

    def test_unknown_format(self, recorded):
        client, recording_id = recorded
        response = client.get(f"/api/recordings/{recording_id}/export", params={"format": "docx"})
        assert response.status_code == 422


def collect(ws) -> list[dict]:
    messages = []
    while True:
        message = ws.receive_json()
        messages.append(message)
        if message["type"] in ("final", "error"):
            return messages


class TestWebSocket:
    def test_streams_progress_segments_then_final(self, client_for, store):
        with client_for().websocket_connect("/ws/transcribe?filename=talk.wav") as ws:
            ws.send_bytes(b"audio")
            messages = collect(ws)

        types = [m["type"] for m in messages]
        assert types[-1] == "final"
        assert types.count("segment") == 2
        progress = [m["progress"] for m in messages if m["type"] == "progress"]
        assert progress[0] == 10
        assert progress[-1] == 100

        final = messages[-1]
        assert [s["text"] for s in final["segments"]] == ["Добрый день, начнём", "Да, конечно"]
        assert store.get_recording(final["recording_id"])["status"] == "completed"

    def test_error_message(self, client_for):
        def bad_decoder(data):
            raise DecodeError("Failed to decode audio: garbage")

        with client_for(decoder=bad_decoder).websocket_connect("/ws/transcribe") as ws:
            ws.send_bytes(b"garbage")
            messages = collect(ws)
        assert messages[-1]["type"] == "error"
        assert "decode" in messages[-1]["message"]

    def test_engine_unavailable(self, client_for):
        def factory():
            raise EngineUnavailable("no backend")

        with client_for(factory=factory).websocket_connect("/ws/transcribe") as ws:
            message = ws.receive_json()
        assert message["type"] == "error"


class ScriptedSocket:
    """Delivers the audio once; later receives either block or raise. Sends may fail."""

    def __init__(self, receive_error: Exception | None = None, send_error: Exception | None = None) -> None:
        self.receive_error = receive_error
        self.send_error = send_error
        self.sent: list[dict] = []
        self._delivered = False

    async def receive(self):
        if not self._delivered:
            self._delivered = True
            return {"type": "websocket.receive", "bytes": b"audio"}
        if self.receive_error is not None:
            raise self.receive_error
        await asyncio.Event().wait()

    async def send_text(self, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(json.loads(text))


class TestWebSocketManagerErrors:
    def _run(self, socket, store, fast_settings, ten_second_audio):
        pipeline = TranscriptionPipeline(
            FakeEngine([[SetClock(3.0), RecognitionResult("hello"), EndPlayback()]]),
            fast_settings,
            decoder=lambda data: ten_second_audio,
            playback_factory=FakePlayback,
        )
        asyncio.run(WebSocketManager(socket, pipeline, store, "talk.wav").run())

    def test_send_failure_is_logged_and_stops(self, caplog, store, fast_settings, ten_second_audio):
        socket = ScriptedSocket(send_error=RuntimeError("socket gone"))
        with caplog.at_level(logging.DEBUG, logger="interviewscribe.websocket_manager"):
            self._run(socket, store, fast_settings, ten_second_audio)
        assert "WebSocket send failed" in caplog.text
        assert "socket gone" in caplog.text
        assert socket.sent == []

    def test_receive_failure_is_logged_and_stops(self, caplog, store, fast_settings, ten_second_audio):
        socket = ScriptedSocket(receive_error=RuntimeError("connection reset"))
        with caplog.at_level(logging.DEBUG, logger="interviewscribe.websocket_manager"):
            self._run(socket, store, fast_settings, ten_second_audio)
        assert "WebSocket receive failed: connection reset" in caplog.text
        # stopped before playback started: the placeholder is stored and sent as final
        assert socket.sent[-1]["type"] == "final"
        assert socket.sent[-1]["segments"][0]["text"] == NOT_RECOGNIZED_TEXT
