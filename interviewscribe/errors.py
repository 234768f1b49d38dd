"""Error taxonomy for the transcription pipeline.

Fatal errors (EngineUnavailable, PermissionDenied, DecodeError) end a
transcription and surface to the caller. TransientRecognitionError is raised by
ASR backends and recovered inside the capture loop by restarting recognition.
"""
from __future__ import annotations


class TranscriptionError(RuntimeError):
    """Base for all pipeline errors."""


class EngineUnavailable(TranscriptionError):
    """Raised when no speech recognition engine can be built."""

    def __init__(self, detail: str = "") -> None:
        message = "Speech recognition engine is not available"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class PermissionDenied(TranscriptionError):
    """Raised when the recognizer refuses access to the input stream. Never retried."""

    def __init__(self, detail: str = "") -> None:
        message = "Access to the audio input was denied"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class DecodeError(TranscriptionError):
    """Raised when audio bytes are malformed or in an unsupported format."""


class TransientRecognitionError(TranscriptionError):
    """Recoverable recognition failure (network hiccup, rejected request)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code in (401, 403)
