"""Audio pipeline: decode, sped-up playback into a synthetic stream, VAD, utterance chunking."""
from .decoder import decode_audio, float32_to_pcm_bytes, pcm_bytes_to_float32
from .playback import InputStream, PlaybackGraph, render_playback
from .vad import VADProcessor
from .chunker import UtteranceChunker

__all__ = [
    "decode_audio",
    "float32_to_pcm_bytes",
    "pcm_bytes_to_float32",
    "InputStream",
    "PlaybackGraph",
    "render_playback",
    "VADProcessor",
    "UtteranceChunker",
]
