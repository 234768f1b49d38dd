"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Audio: PCM 16-bit mono, 16kHz (synthetic input stream fed to the recognizer)
    SAMPLE_RATE: int = 16000
    SAMPLE_WIDTH: int = 2  # 16-bit
    CHANNELS: int = 1

    # Frame: 20ms @ 16kHz = 320 samples = 640 bytes
    FRAME_MS: int = 20
    FRAME_BYTES: int = 640  # 320 * 2

    # Playback graph: audio is re-rendered faster than real time to shorten capture
    PLAYBACK_RATE: float = 1.5
    PLAYBACK_GAIN: float = 3.0
    CAPTURE_START_DELAY_SEC: float = 0.3  # playback + recognition start together after this

    # Capture loop restart policy
    NO_SPEECH_MAX: int = 30  # consecutive no-speech errors before giving up
    NETWORK_ERROR_MAX: int = 20  # consecutive network errors before giving up; 0 = unlimited
    RESTART_NO_SPEECH_SEC: float = 0.1
    RESTART_ABORTED_SEC: float = 0.15
    RESTART_NETWORK_SEC: float = 0.5
    RESTART_END_SEC: float = 0.05
    END_GUARD_SEC: float = 0.3  # natural end within this much of playback end -> finish
    PLAYBACK_GRACE_SEC: float = 0.8  # wait for in-flight results after playback ends
    PROGRESS_INTERVAL_SEC: float = 0.3

    # Segment defaults
    DEFAULT_CONFIDENCE: float = 0.85  # when recognizer reports none
    PLACEHOLDER_CONFIDENCE: float = 0.5
    PLACEHOLDER_LABEL: str = "speaker_1"

    # Recognition engine: VAD-gated utterances over the synthetic stream
    RECOGNITION_LANGUAGE: str = "ru"
    VAD_AGGRESSIVENESS: int = 2
    CHUNK_DURATION_MS: int = 1500
    OVERLAP_MS: int = 300
    SILENCE_COMMIT_MS: int = 600
    NO_SPEECH_TIMEOUT_SEC: float = 8.0  # session without speech -> no-speech error
    RECOGNITION_WINDOW_SEC: float = 60.0  # session length before a natural end

    # ASR backend: "local" | "cloudflare"
    ASR_BACKEND: Literal["local", "cloudflare"] = "local"

    # Cloudflare Workers AI Whisper (when ASR_BACKEND=cloudflare)
    CLOUDFLARE_ACCOUNT_ID: str = ""
    CLOUDFLARE_API_TOKEN: str = ""
    CLOUDFLARE_TIMEOUT_SEC: float = 30.0

    # Local Whisper (when ASR_BACKEND=local); model loaded once at startup
    LOCAL_WHISPER_MODEL: str = "base"  # base | small | medium | large-v3
    LOCAL_WHISPER_DEVICE: Literal["cpu", "cuda"] = "cpu"
    LOCAL_WHISPER_COMPUTE_TYPE: Literal["int8", "float16"] = "int8"
    LOCAL_WHISPER_BEAM_SIZE: int = 5

    # Persistence: "memory" keeps transcripts in-process; "json" writes one file per recording
    STORE_BACKEND: Literal["memory", "json"] = "memory"
    STORE_DIR: str = "./transcripts"

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path empty = console only
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # Server (interviewscribe console script)
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
