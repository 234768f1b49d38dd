"""Build the recognition engine from config; fail fast when no backend is usable."""
from __future__ import annotations

import logging

from interviewscribe.asr.base import RecognitionEngine
from interviewscribe.asr.cloudflare import CloudflareWhisperBackend
from interviewscribe.asr.continuous import ContinuousRecognizer
from interviewscribe.asr.local_whisper import LocalWhisperBackend, WhisperModelT, load_whisper_model
from interviewscribe.config import Settings, get_settings
from interviewscribe.errors import EngineUnavailable

logger = logging.getLogger(__name__)


def resolve_engine(settings: Settings | None = None, whisper_model: WhisperModelT | None = None) -> RecognitionEngine:
    """
    Return a ContinuousRecognizer for ASR_BACKEND. Local uses whisper_model when
    given (singleton loaded at startup), else loads one.

    Raises:
        EngineUnavailable: faster-whisper missing/unloadable, or Cloudflare credentials unset.
    """
    settings = settings or get_settings()
    if settings.ASR_BACKEND == "cloudflare":
        backend = CloudflareWhisperBackend(settings)
        if not backend.configured:
            raise EngineUnavailable("CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN must be set")
        return ContinuousRecognizer(backend, settings)

    if whisper_model is None:
        try:
            whisper_model = load_whisper_model(settings)
        except ImportError as e:
            raise EngineUnavailable(str(e)) from e
        except (RuntimeError, OSError, ValueError) as e:
            logger.error("Failed to load Whisper model %s: %s", settings.LOCAL_WHISPER_MODEL, e)
            raise EngineUnavailable(f"cannot load Whisper model {settings.LOCAL_WHISPER_MODEL}") from e
    return ContinuousRecognizer(LocalWhisperBackend(whisper_model, settings), settings)
