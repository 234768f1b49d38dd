"""
Recognition interfaces.

Two layers:
- ASRBackend: transcribes one closed utterance (float32 mono [-1, 1]) and returns
  an ASRResult. Implementations: LocalWhisperBackend (faster-whisper),
  CloudflareWhisperBackend. Heavy work runs in an executor.
- RecognitionEngine: a continuous recognizer over an InputStream. It does not
  return results; it reports typed events (started / result / error / ended)
  to a sink bound by the capture loop, mirroring a browser-style
  start()/stop() recognizer that halts on its own and must be restarted.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Union

if TYPE_CHECKING:
    import numpy as np

    from interviewscribe.audio.playback import InputStream


@dataclass
class ASRResult:
    """Result of one ASR transcribe call."""

    text: str
    confidence: float | None  # 0.0–1.0 estimate; None when the backend reports none


class ASRBackend(ABC):
    """
    Abstract utterance transcriber. Accepts float32 mono audio (normalized [-1, 1]).
    transcribe() is async; implementations may run sync work in executor.
    Raises TransientRecognitionError on recoverable failures.
    """

    @abstractmethod
    async def transcribe(self, audio: "np.ndarray") -> ASRResult:
        """Transcribe one utterance. Must not block event loop."""
        ...

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Expected sample rate (e.g. 16000)."""
        ...


class RecognitionErrorKind(str, Enum):
    """Error classes reported by a recognition engine."""

    NO_SPEECH = "no-speech"
    ABORTED = "aborted"
    NOT_ALLOWED = "not-allowed"
    NETWORK = "network"


@dataclass(frozen=True)
class EngineStarted:
    """Engine began listening."""


@dataclass(frozen=True)
class RecognitionResult:
    """One finalized transcript."""

    transcript: str
    confidence: float | None = None


@dataclass(frozen=True)
class RecognitionError:
    """Engine halted with an error; an EngineEnded normally follows."""

    kind: RecognitionErrorKind
    message: str = ""


@dataclass(frozen=True)
class EngineEnded:
    """Engine stopped listening (utterance window over, stream exhausted, or stopped)."""


EngineEvent = Union[EngineStarted, RecognitionResult, RecognitionError, EngineEnded]
EventSink = Callable[[EngineEvent], None]


class RecognitionEngineError(RuntimeError):
    """Raised by start() when the engine cannot start (e.g. already started)."""


class RecognitionEngine(ABC):
    """
    Continuous recognizer. One session = start() ... EngineEnded. The owner binds
    a sink once, then restarts sessions as the engine halts.
    """

    def __init__(self) -> None:
        self._sink: EventSink | None = None

    def bind(self, sink: EventSink) -> None:
        """Register the event sink. Events are delivered on the event loop thread."""
        self._sink = sink

    def emit(self, event: EngineEvent) -> None:
        if self._sink is not None:
            self._sink(event)

    @abstractmethod
    async def start(self, stream: "InputStream") -> None:
        """Begin a recognition session over stream. Raises RecognitionEngineError if already running."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the current session (if any). Safe to call when idle."""
        ...

    @property
    @abstractmethod
    def active(self) -> bool:
        """True while a session is running."""
        ...
