"""
Audio decode: uploaded bytes -> first channel as float32 [-1, 1] at native rate.

WAV (RIFF) is read directly; other containers go through pydub's FFmpeg path.
"""
from __future__ import annotations

import io
import logging

import numpy as np
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from interviewscribe.errors import DecodeError
from interviewscribe.models import DecodedAudio

logger = logging.getLogger(__name__)


def _is_wav(data: bytes) -> bool:
    return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WAVE"


def _segment_to_float32(segment: AudioSegment) -> np.ndarray:
    """First channel of an AudioSegment as float32 normalized by sample width."""
    samples = np.array(segment.get_array_of_samples(), dtype=np.float32)
    if segment.channels > 1:
        samples = samples[:: segment.channels]
    full_scale = float(1 << (8 * segment.sample_width - 1))
    return samples / full_scale


def decode_audio(data: bytes) -> DecodedAudio:
    """
    Decode an audio file held in memory.

    Raises:
        DecodeError: If the bytes are empty, malformed or in an unsupported format.
    """
    if not data:
        raise DecodeError("Failed to decode audio: empty input")
    fmt = "wav" if _is_wav(data) else None
    try:
        segment = AudioSegment.from_file(io.BytesIO(data), format=fmt)
    except (CouldntDecodeError, OSError, ValueError, IndexError, KeyError) as e:
        raise DecodeError(f"Failed to decode audio: {e}") from e

    samples = _segment_to_float32(segment)
    sample_rate = int(segment.frame_rate)
    if sample_rate <= 0:
        raise DecodeError("Failed to decode audio: invalid sample rate")
    duration = len(samples) / sample_rate
    logger.debug(
        "Decoded audio: %.2fs, %d Hz, %d channel(s)", duration, sample_rate, segment.channels
    )
    return DecodedAudio(sample_rate=sample_rate, samples=samples, duration=duration)


def float32_to_pcm_bytes(audio: np.ndarray) -> bytes:
    """Convert float32 [-1, 1] to PCM 16-bit mono bytes."""
    samples = (audio * 32767).clip(-32768, 32767).astype(np.int16)
    return samples.tobytes()


def pcm_bytes_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """Convert PCM 16-bit mono bytes to float32 [-1.0, 1.0]."""
    samples = np.frombuffer(pcm_bytes, dtype=np.int16)
    return samples.astype(np.float32) / 32768.0
