"""
Recording and transcript persistence.

A recording moves uploaded -> processing -> completed | error. Segments are
written once per recording as a single batch after diarization; a batch is
never partially stored.

Backends: MemoryTranscriptStore (in-process dict, default) and
JsonTranscriptStore (one {STORE_DIR}/{recording_id}.json per recording).
"""
from __future__ import annotations

import json
import logging
import os
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Any, Sequence

from interviewscribe.config import get_settings
from interviewscribe.models import RecordingStatus, Segment

logger = logging.getLogger(__name__)


def generate_recording_id() -> str:
    """Generate a new recording_id (UUID hex, 12 chars)."""
    return uuid.uuid4().hex[:12]


class RecordingNotFound(KeyError):
    """Raised for an unknown recording_id."""


class TranscriptStore(ABC):
    """Persistence collaborator of the pipeline."""

    @abstractmethod
    def create_recording(self, filename: str, recording_id: str | None = None) -> str:
        """Register a recording with status uploaded. Returns its id."""
        ...

    @abstractmethod
    def set_status(self, recording_id: str, status: RecordingStatus, error: str | None = None) -> None:
        ...

    @abstractmethod
    def insert(self, recording_id: str, segments: Sequence[Segment]) -> None:
        """Store the full segment batch for a recording (replaces any previous batch)."""
        ...

    @abstractmethod
    def get_recording(self, recording_id: str) -> dict[str, Any]:
        """Return the recording record. Raises RecordingNotFound."""
        ...

    def get_status(self, recording_id: str) -> RecordingStatus:
        return RecordingStatus(self.get_recording(recording_id)["status"])

    def get_segments(self, recording_id: str) -> list[Segment]:
        return [Segment(**s) for s in self.get_recording(recording_id)["segments"]]


def _new_record(recording_id: str, filename: str) -> dict[str, Any]:
    return {
        "id": recording_id,
        "filename": filename,
        "status": RecordingStatus.UPLOADED.value,
        "error": None,
        "segments": [],
        "created_at": time.time(),
    }


class MemoryTranscriptStore(TranscriptStore):
    """recording_id -> record dict, kept in process memory."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    def create_recording(self, filename: str, recording_id: str | None = None) -> str:
        recording_id = recording_id or generate_recording_id()
        self._records[recording_id] = _new_record(recording_id, filename)
        return recording_id

    def _get(self, recording_id: str) -> dict[str, Any]:
        record = self._records.get(recording_id)
        if record is None:
            raise RecordingNotFound(recording_id)
        return record

    def set_status(self, recording_id: str, status: RecordingStatus, error: str | None = None) -> None:
        record = self._get(recording_id)
        record["status"] = RecordingStatus(status).value
        record["error"] = error

    def insert(self, recording_id: str, segments: Sequence[Segment]) -> None:
        self._get(recording_id)["segments"] = [asdict(s) for s in segments]

    def get_recording(self, recording_id: str) -> dict[str, Any]:
        return dict(self._get(recording_id))


class JsonTranscriptStore(TranscriptStore):
    """One JSON file per recording under store_dir; whole file rewritten on each change."""

    def __init__(self, store_dir: str | None = None) -> None:
        self._dir = store_dir or get_settings().STORE_DIR

    def _path(self, recording_id: str) -> str:
        return os.path.join(self._dir, f"{recording_id}.json")

    def _write(self, record: dict[str, Any]) -> None:
        os.makedirs(self._dir, exist_ok=True)
        path = self._path(record["id"])
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(record, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)

    def get_recording(self, recording_id: str) -> dict[str, Any]:
        try:
            with open(self._path(recording_id), "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise RecordingNotFound(recording_id) from e

    def create_recording(self, filename: str, recording_id: str | None = None) -> str:
        recording_id = recording_id or generate_recording_id()
        self._write(_new_record(recording_id, filename))
        logger.info("Recording created: %s", self._path(recording_id))
        return recording_id

    def set_status(self, recording_id: str, status: RecordingStatus, error: str | None = None) -> None:
        record = self.get_recording(recording_id)
        record["status"] = RecordingStatus(status).value
        record["error"] = error
        self._write(record)

    def insert(self, recording_id: str, segments: Sequence[Segment]) -> None:
        record = self.get_recording(recording_id)
        record["segments"] = [asdict(s) for s in segments]
        self._write(record)


def create_transcript_store() -> TranscriptStore:
    """JSON files when STORE_BACKEND=json; else in-memory."""
    settings = get_settings()
    if settings.STORE_BACKEND == "json":
        return JsonTranscriptStore(settings.STORE_DIR)
    return MemoryTranscriptStore()
