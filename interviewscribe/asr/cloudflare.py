"""
CloudflareWhisperBackend: utterance ASR via Cloudflare Workers AI.

Accepts float32 audio; converts to PCM bytes for API.
Runs HTTP call in executor to avoid blocking event loop. Transport failures and
non-200 responses raise TransientRecognitionError (status_code set when known).
"""
from __future__ import annotations

import asyncio

import httpx
import numpy as np

from interviewscribe.asr.base import ASRBackend, ASRResult
from interviewscribe.audio.decoder import float32_to_pcm_bytes
from interviewscribe.config import Settings, get_settings
from interviewscribe.errors import TransientRecognitionError

CLOUDFLARE_WHISPER_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/@cf/openai/whisper"


def _parse_text(data: dict) -> str:
    result = data.get("result", data)
    if isinstance(result, dict):
        text = result.get("text", result.get("transcript", ""))
    elif isinstance(result, str):
        text = result
    else:
        text = ""
    return (text or "").strip()


class CloudflareWhisperBackend(ASRBackend):
    """
    Remote Whisper via Cloudflare Workers AI.
    async transcribe() runs HTTP in executor.
    """

    def __init__(self, settings: Settings | None = None, transport: httpx.BaseTransport | None = None) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._settings.CLOUDFLARE_ACCOUNT_ID and self._settings.CLOUDFLARE_API_TOKEN)

    def _transcribe_sync(self, pcm_bytes: bytes) -> ASRResult:
        """Blocking HTTP call; run in executor."""
        settings = self._settings
        url = CLOUDFLARE_WHISPER_URL.format(account_id=settings.CLOUDFLARE_ACCOUNT_ID)
        headers = {"Authorization": f"Bearer {settings.CLOUDFLARE_API_TOKEN}"}
        body = {"audio": list(pcm_bytes)}

        try:
            with httpx.Client(timeout=settings.CLOUDFLARE_TIMEOUT_SEC, transport=self._transport) as client:
                resp = client.post(url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise TransientRecognitionError(f"Cloudflare Whisper request failed: {e}") from e
        if resp.status_code != 200:
            raise TransientRecognitionError(
                f"Cloudflare Whisper returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        text = _parse_text(resp.json())
        # Workers AI Whisper reports no confidence
        return ASRResult(text=text, confidence=None)

    async def transcribe(self, audio: np.ndarray) -> ASRResult:
        """Convert audio to PCM, run HTTP in executor."""
        pcm_bytes = float32_to_pcm_bytes(audio)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._transcribe_sync, pcm_bytes)

    @property
    def sample_rate(self) -> int:
        return self._settings.SAMPLE_RATE
