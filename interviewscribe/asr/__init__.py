"""ASR: swappable Whisper-compatible backends behind a continuous recognition engine."""
from .base import (
    ASRBackend,
    ASRResult,
    EngineEnded,
    EngineEvent,
    EngineStarted,
    RecognitionEngine,
    RecognitionEngineError,
    RecognitionError,
    RecognitionErrorKind,
    RecognitionResult,
)
from .cloudflare import CloudflareWhisperBackend
from .continuous import ContinuousRecognizer
from .factory import resolve_engine
from .local_whisper import LocalWhisperBackend, load_whisper_model

__all__ = [
    "ASRBackend",
    "ASRResult",
    "EngineEnded",
    "EngineEvent",
    "EngineStarted",
    "RecognitionEngine",
    "RecognitionEngineError",
    "RecognitionError",
    "RecognitionErrorKind",
    "RecognitionResult",
    "CloudflareWhisperBackend",
    "ContinuousRecognizer",
    "LocalWhisperBackend",
    "load_whisper_model",
    "resolve_engine",
]
